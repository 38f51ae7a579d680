"""
Public Map Reads

Cursor-paginated listing of today's snapshot and per-point detail lookups.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from src.publicmap.db.models import PublicMapSnapshot
from src.publicmap.db.repository import SnapshotRepository
from src.publicmap.db.session import read_session
from src.publicmap.errors import NotFound
from src.publicmap.models.bounds import Bounds
from src.publicmap.models.filters import SnapshotFilters
from src.publicmap.pagination.cursor import clamp_limit, decode_cursor, encode_cursor
from src.publicmap.utils.clock import Clock, utcnow


@dataclass
class SnapshotPage:
    items: List[PublicMapSnapshot]
    next_cursor: Optional[str]
    last_sync_at: Optional[datetime]


class PublicMapService:
    """Read side of the public snapshot; never writes."""

    def __init__(self, session_factory: sessionmaker, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock or utcnow
        self.snapshots = SnapshotRepository()

    def list_points(
        self,
        bounds: Bounds,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        status: Optional[str] = None,
        precision: Optional[str] = None,
        updated_since: Optional[datetime] = None
    ) -> SnapshotPage:
        """
        Read one page of today's snapshot inside ``bounds``.

        Fetches limit + 1 rows; the extra row only signals that another page
        exists and is not returned.
        """
        page_size = clamp_limit(limit)
        offset = decode_cursor(cursor)
        today = self.clock().date()
        filters = SnapshotFilters(
            snapshot_date=today,
            bounds=bounds,
            status=status,
            precision=precision,
            updated_from=updated_since,
        )

        with read_session(self.session_factory) as session:
            rows = self.snapshots.page(session, filters, offset, page_size + 1)
            last_sync_at = self.snapshots.last_refreshed_at(session, today)

        has_more = len(rows) > page_size
        return SnapshotPage(
            items=rows[:page_size],
            next_cursor=encode_cursor(offset + page_size) if has_more else None,
            last_sync_at=last_sync_at,
        )

    def get_point(self, point_id: str) -> PublicMapSnapshot:
        """
        Latest snapshot row for one point (most recent snapshot date).

        Raises:
            NotFound: unknown id, malformed id, or point never snapshotted
        """
        try:
            key = uuid.UUID(str(point_id))
        except ValueError:
            raise NotFound("Point not found")

        with read_session(self.session_factory) as session:
            row = self.snapshots.latest_for_point(session, key)
        if row is None:
            raise NotFound("Point not found")
        return row
