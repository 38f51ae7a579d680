"""
Repository Pattern for Data Access

Provides CRUD operations and domain-specific queries for all models.
"""
import uuid
from datetime import date, datetime
from typing import List, Optional, Dict, Any, Type, TypeVar

from sqlalchemy import select, update, delete, func, and_, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from src.publicmap.db.models import (
    AppUser,
    Resident,
    MapPoint,
    ResidentPointAssignment,
    PublicMapSnapshot,
    GeocodeCacheEntry,
    AuditLogEntry,
)
from src.publicmap.models.bounds import Bounds
from src.publicmap.models.filters import SnapshotFilters
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=str(id_value),
            found=result is not None
        )
        return result

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.info("repository_created", model=self.model.__name__, id=str(getattr(instance, 'id', None)))
        return instance

    def update(self, session: Session, id_value: Any, **kwargs) -> Optional[T]:
        """
        Update existing record.

        Args:
            session: Database session
            id_value: Primary key value
            **kwargs: Fields to update

        Returns:
            Updated model instance or None
        """
        instance = self.get_by_id(session, id_value)
        if not instance:
            logger.warning("repository_update_not_found", model=self.model.__name__, id=str(id_value))
            return None

        for key, value in kwargs.items():
            setattr(instance, key, value)

        session.flush()
        logger.info("repository_updated", model=self.model.__name__, id=str(id_value))
        return instance

    def count(self, session: Session) -> int:
        """
        Count total records.

        Args:
            session: Database session

        Returns:
            Total count
        """
        count = session.scalar(select(func.count()).select_from(self.model))
        logger.debug("repository_count", model=self.model.__name__, count=count)
        return count


class AppUserRepository(BaseRepository):
    """Repository for AppUser model."""

    def __init__(self):
        super().__init__(AppUser)

    def get_by_subject(self, session: Session, subject: str) -> Optional[AppUser]:
        return session.execute(
            select(AppUser).where(AppUser.subject == subject).limit(1)
        ).scalar_one_or_none()


class ResidentRepository(BaseRepository):
    """Repository for Resident model."""

    def __init__(self):
        super().__init__(Resident)

    def get_live(self, session: Session, resident_id: uuid.UUID) -> Optional[Resident]:
        """Get resident unless soft deleted."""
        resident = self.get_by_id(session, resident_id)
        if resident is None or resident.is_deleted:
            return None
        return resident


class PointRepository(BaseRepository):
    """Repository for MapPoint model."""

    def __init__(self):
        super().__init__(MapPoint)

    def get_live(self, session: Session, point_id: uuid.UUID) -> Optional[MapPoint]:
        """Get point unless soft deleted."""
        point = self.get_by_id(session, point_id)
        if point is None or point.is_deleted:
            return None
        return point

    def get_live_points(self, session: Session) -> List[MapPoint]:
        """All points that have not been soft deleted."""
        return session.execute(
            select(MapPoint).where(MapPoint.deleted_at.is_(None))
        ).scalars().all()


class AssignmentRepository(BaseRepository):
    """Repository for ResidentPointAssignment model."""

    def __init__(self):
        super().__init__(ResidentPointAssignment)

    def deactivate_for_resident(self, session: Session, resident_id: uuid.UUID, at: datetime) -> int:
        """Deactivate the active row touching a resident, if any."""
        result = session.execute(
            update(ResidentPointAssignment)
            .where(
                and_(
                    ResidentPointAssignment.resident_id == resident_id,
                    ResidentPointAssignment.active.is_(True),
                )
            )
            .values(active=False, unassigned_at=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def deactivate_for_point(self, session: Session, point_id: uuid.UUID, at: datetime) -> int:
        """Deactivate the active row touching a point, if any."""
        result = session.execute(
            update(ResidentPointAssignment)
            .where(
                and_(
                    ResidentPointAssignment.point_id == point_id,
                    ResidentPointAssignment.active.is_(True),
                )
            )
            .values(active=False, unassigned_at=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def active_for_resident(self, session: Session, resident_id: uuid.UUID) -> Optional[ResidentPointAssignment]:
        return session.execute(
            select(ResidentPointAssignment).where(
                and_(
                    ResidentPointAssignment.resident_id == resident_id,
                    ResidentPointAssignment.active.is_(True),
                )
            )
        ).scalar_one_or_none()

    def active_for_point(self, session: Session, point_id: uuid.UUID) -> Optional[ResidentPointAssignment]:
        return session.execute(
            select(ResidentPointAssignment).where(
                and_(
                    ResidentPointAssignment.point_id == point_id,
                    ResidentPointAssignment.active.is_(True),
                )
            )
        ).scalar_one_or_none()

    def history_for_resident(self, session: Session, resident_id: uuid.UUID) -> List[ResidentPointAssignment]:
        """All rows for a resident, newest first."""
        return session.execute(
            select(ResidentPointAssignment)
            .where(ResidentPointAssignment.resident_id == resident_id)
            .order_by(ResidentPointAssignment.assigned_at.desc())
        ).scalars().all()

    def active_counts_by_point(self, session: Session) -> Dict[uuid.UUID, int]:
        """Count of active assignments per point."""
        rows = session.execute(
            select(ResidentPointAssignment.point_id, func.count())
            .where(ResidentPointAssignment.active.is_(True))
            .group_by(ResidentPointAssignment.point_id)
        ).all()
        return {point_id: count for point_id, count in rows}


class SnapshotRepository(BaseRepository):
    """Repository for PublicMapSnapshot model."""

    def __init__(self):
        super().__init__(PublicMapSnapshot)

    def delete_for_date(self, session: Session, snapshot_date: date) -> int:
        result = session.execute(
            delete(PublicMapSnapshot)
            .where(PublicMapSnapshot.snapshot_date == snapshot_date)
            .execution_options(synchronize_session=False)
        )
        logger.info("snapshot_rows_deleted", snapshot_date=str(snapshot_date), count=result.rowcount)
        return result.rowcount

    def bulk_insert(self, session: Session, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        session.add_all(PublicMapSnapshot(**row) for row in rows)
        session.flush()
        logger.info("snapshot_rows_inserted", count=len(rows))
        return len(rows)

    def for_date(self, session: Session, snapshot_date: date) -> List[PublicMapSnapshot]:
        return session.execute(
            select(PublicMapSnapshot)
            .where(PublicMapSnapshot.snapshot_date == snapshot_date)
            .order_by(PublicMapSnapshot.point_id)
        ).scalars().all()

    def page(
        self,
        session: Session,
        filters: SnapshotFilters,
        offset: int,
        limit: int
    ) -> List[PublicMapSnapshot]:
        """
        Read one page in stable order (refresh time desc, point id asc).

        Args:
            session: Database session
            filters: Snapshot filters (date, bounds, attributes)
            offset: Rows to skip
            limit: Rows to fetch (callers pass page size + 1)
        """
        query = (
            select(PublicMapSnapshot)
            .where(*self._conditions(filters))
            .order_by(PublicMapSnapshot.refreshed_at.desc(), PublicMapSnapshot.point_id.asc())
            .offset(offset)
            .limit(limit)
        )
        return session.execute(query).scalars().all()

    def matching(self, session: Session, filters: SnapshotFilters) -> List[PublicMapSnapshot]:
        """All rows matching filters, in listing order."""
        query = (
            select(PublicMapSnapshot)
            .where(*self._conditions(filters))
            .order_by(PublicMapSnapshot.refreshed_at.desc(), PublicMapSnapshot.point_id.asc())
        )
        return session.execute(query).scalars().all()

    def summarize(self, session: Session, filters: SnapshotFilters) -> Dict[str, Any]:
        """Point count, resident total and most recent refresh for matching rows."""
        row = session.execute(
            select(
                func.count(PublicMapSnapshot.id),
                func.coalesce(func.sum(PublicMapSnapshot.residents), 0),
                func.max(PublicMapSnapshot.refreshed_at),
            ).where(*self._conditions(filters))
        ).one()
        return {
            "points": int(row[0] or 0),
            "residents": int(row[1] or 0),
            "last_updated": row[2],
        }

    def last_refreshed_at(self, session: Session, snapshot_date: date) -> Optional[datetime]:
        return session.scalar(
            select(func.max(PublicMapSnapshot.refreshed_at))
            .where(PublicMapSnapshot.snapshot_date == snapshot_date)
        )

    def latest_for_point(self, session: Session, point_id: uuid.UUID) -> Optional[PublicMapSnapshot]:
        """Most recent snapshot row for a point across all dates."""
        return session.execute(
            select(PublicMapSnapshot)
            .where(PublicMapSnapshot.point_id == point_id)
            .order_by(PublicMapSnapshot.snapshot_date.desc())
            .limit(1)
        ).scalar_one_or_none()

    @staticmethod
    def _conditions(filters: SnapshotFilters) -> list:
        conditions = [PublicMapSnapshot.snapshot_date == filters.snapshot_date]
        if filters.bounds is not None:
            conditions.extend(_bounds_conditions(filters.bounds))
        if filters.status:
            conditions.append(PublicMapSnapshot.status == filters.status)
        if filters.precision:
            conditions.append(PublicMapSnapshot.precision == filters.precision)
        if filters.region:
            conditions.append(
                func.lower(PublicMapSnapshot.region).contains(filters.region.lower(), autoescape=True)
            )
        if filters.updated_from is not None:
            conditions.append(PublicMapSnapshot.refreshed_at >= filters.updated_from)
        if filters.updated_to is not None:
            conditions.append(PublicMapSnapshot.refreshed_at <= filters.updated_to)
        return conditions


def _bounds_conditions(bounds: Bounds) -> list:
    """Inclusive point-in-box conditions on the public coordinate."""
    lat = PublicMapSnapshot.public_lat
    lng = PublicMapSnapshot.public_lng
    conditions = [lat >= bounds.south, lat <= bounds.north]
    if bounds.crosses_antimeridian:
        conditions.append(or_(lng >= bounds.west, lng <= bounds.east))
    else:
        conditions.extend([lng >= bounds.west, lng <= bounds.east])
    return conditions


class GeocodeCacheRepository(BaseRepository):
    """Repository for GeocodeCacheEntry model."""

    def __init__(self):
        super().__init__(GeocodeCacheEntry)

    def get_by_normalized(self, session: Session, normalized_query: str) -> Optional[GeocodeCacheEntry]:
        return session.execute(
            select(GeocodeCacheEntry).where(GeocodeCacheEntry.normalized_query == normalized_query)
        ).scalar_one_or_none()

    def upsert(self, session: Session, entry_data: Dict[str, Any]) -> None:
        """
        Insert or update a cache row keyed by normalized_query.

        Latest successful lookup wins on conflict.
        """
        normalized = entry_data.get('normalized_query')
        if not normalized:
            raise ValueError("normalized_query is required for upsert")

        dialect = session.get_bind().dialect.name
        insert = sqlite_insert if dialect == "sqlite" else pg_insert

        values = dict(entry_data)
        values.setdefault("id", uuid.uuid4())
        stmt = insert(GeocodeCacheEntry).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=['normalized_query'],
            set_={
                "address_query": stmt.excluded.address_query,
                "lat": stmt.excluded.lat,
                "lng": stmt.excluded.lng,
                "formatted_address": stmt.excluded.formatted_address,
                "provider": stmt.excluded.provider,
                "updated_at": func.now(),
            }
        )
        session.execute(stmt)
        session.flush()
        logger.info("geocode_cache_upserted", normalized_query=normalized)


class AuditLogRepository(BaseRepository):
    """Repository for AuditLogEntry model."""

    def __init__(self):
        super().__init__(AuditLogEntry)

    def record(
        self,
        session: Session,
        actor_id: uuid.UUID,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID,
        at: datetime,
        details: Optional[dict] = None
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            actor_user_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            created_at=at,
        )
        session.add(entry)
        session.flush()
        return entry

    def search(
        self,
        session: Session,
        actor_id: Optional[uuid.UUID] = None,
        entity_type: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: int = 100
    ) -> List[AuditLogEntry]:
        query = select(AuditLogEntry)
        if actor_id is not None:
            query = query.where(AuditLogEntry.actor_user_id == actor_id)
        if entity_type:
            query = query.where(AuditLogEntry.entity_type == entity_type)
        if created_from is not None:
            query = query.where(AuditLogEntry.created_at >= created_from)
        if created_to is not None:
            query = query.where(AuditLogEntry.created_at <= created_to)
        query = query.order_by(AuditLogEntry.created_at.desc()).limit(limit)
        return session.execute(query).scalars().all()
