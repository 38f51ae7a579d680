"""
Snapshot Filter Models

Attribute and spatial filters shared by the map listing and the reporting
engine.
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from src.publicmap.errors import ValidationError
from src.publicmap.models.bounds import Bounds

PRECISIONS = ("approx", "exact")
STATUSES = ("active", "inactive")


@dataclass(frozen=True)
class SnapshotFilters:
    """
    Filters over one day of the public snapshot.

    Attributes:
        snapshot_date: Calendar day to read
        bounds: Optional spatial box (inclusive)
        status: active / inactive
        precision: approx / exact
        region: Case-insensitive substring match on region
        updated_from: Lower bound on refresh timestamp (inclusive)
        updated_to: Upper bound on refresh timestamp (inclusive)
    """
    snapshot_date: date
    bounds: Optional[Bounds] = None
    status: Optional[str] = None
    precision: Optional[str] = None
    region: Optional[str] = None
    updated_from: Optional[datetime] = None
    updated_to: Optional[datetime] = None

    def __post_init__(self):
        if self.status and self.status not in STATUSES:
            raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
        if self.precision and self.precision not in PRECISIONS:
            raise ValidationError(f"precision must be one of {', '.join(PRECISIONS)}")
        if (
            self.updated_from is not None
            and self.updated_to is not None
            and self.updated_from > self.updated_to
        ):
            raise ValidationError("updated_from must not be after updated_to")


def parse_timestamp(value: Optional[str], field: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime into an aware UTC datetime.

    Naive values are taken as UTC.

    Raises:
        ValidationError: value is present but not ISO-8601
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 timestamp")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
