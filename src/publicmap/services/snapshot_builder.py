"""
Snapshot Cache Builder

Rebuilds today's public map snapshot from current points and active
assignments. Each rebuild deletes the day's rows and reinserts one row per
live point inside a single transaction, so readers only ever observe the
previous snapshot or the complete new one.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import sessionmaker

from src.publicmap.db.repository import (
    AssignmentRepository,
    PointRepository,
    SnapshotRepository,
)
from src.publicmap.db.session import transaction
from src.publicmap.utils.clock import Clock, utcnow
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SnapshotRefreshResult:
    snapshot_date: date
    refreshed_at: datetime
    rows_deleted: int
    rows_written: int


class SnapshotBuilder:
    """
    Materializes the daily public snapshot.

    Safe to re-run on the same date: the result depends only on the
    underlying points and assignments. Concurrent refreshes are not
    serialized here; the last commit wins.
    """

    def __init__(self, session_factory: sessionmaker, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock or utcnow
        self.points = PointRepository()
        self.assignments = AssignmentRepository()
        self.snapshots = SnapshotRepository()

    def refresh(self) -> SnapshotRefreshResult:
        """
        Rebuild the snapshot for today.

        Returns:
            Refresh result with row counts

        Raises:
            TransactionFailure: storage error; the transaction was rolled back
        """
        refreshed_at = self.clock()
        snapshot_date = refreshed_at.date()
        logger.info("snapshot_refresh_started", snapshot_date=str(snapshot_date))

        with transaction(self.session_factory, "snapshot_refresh") as session:
            deleted = self.snapshots.delete_for_date(session, snapshot_date)
            counts = self.assignments.active_counts_by_point(session)
            rows = [
                {
                    "point_id": point.id,
                    "public_lat": point.public_lat,
                    "public_lng": point.public_lng,
                    "status": point.status,
                    "precision": point.precision,
                    "region": point.region,
                    "residents": counts.get(point.id, 0),
                    "public_note": point.public_note,
                    "snapshot_date": snapshot_date,
                    "refreshed_at": refreshed_at,
                }
                for point in self.points.get_live_points(session)
            ]
            written = self.snapshots.bulk_insert(session, rows)

        logger.info(
            "snapshot_refresh_completed",
            snapshot_date=str(snapshot_date),
            rows_deleted=deleted,
            rows_written=written,
        )
        return SnapshotRefreshResult(
            snapshot_date=snapshot_date,
            refreshed_at=refreshed_at,
            rows_deleted=deleted,
            rows_written=written,
        )
