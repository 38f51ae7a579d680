"""
Point Write Service

Creates and updates map points, deriving the stored public coordinate from
the precise coordinate, precision and accuracy at write time.
"""
import uuid
from typing import Any, Dict, Optional

from sqlalchemy.orm import sessionmaker

from src.publicmap.db.models import MapPoint
from src.publicmap.db.repository import AuditLogRepository, PointRepository
from src.publicmap.db.session import transaction
from src.publicmap.errors import NotFound, ValidationError
from src.publicmap.privacy.jitter import JitterEngine
from src.publicmap.utils.clock import Clock, utcnow
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "lat", "lng", "accuracy_m", "status", "precision", "category", "public_note", "region",
)
COORDINATE_FIELDS = ("lat", "lng", "accuracy_m", "precision")
REQUIRED_FIELDS = ("lat", "lng", "status", "precision")


class PointService:
    """Point writes with jitter applied once, at write time."""

    def __init__(
        self,
        session_factory: sessionmaker,
        jitter: Optional[JitterEngine] = None,
        clock: Optional[Clock] = None
    ):
        self.session_factory = session_factory
        self.jitter = jitter or JitterEngine()
        self.clock = clock or utcnow
        self.points = PointRepository()
        self.audit = AuditLogRepository()

    def create(self, data: Dict[str, Any], actor_id: uuid.UUID) -> MapPoint:
        """
        Insert a point.

        Args:
            data: lat, lng, precision, status and optional accuracy_m,
                category, public_note, region
            actor_id: Owner / audit actor
        """
        public_lat, public_lng = self.jitter.public_coordinate(
            data["lat"], data["lng"], data["precision"], data.get("accuracy_m"),
        )
        now = self.clock()
        with transaction(self.session_factory, "create_point") as session:
            point = self.points.create(
                session,
                lat=data["lat"],
                lng=data["lng"],
                public_lat=public_lat,
                public_lng=public_lng,
                accuracy_m=data.get("accuracy_m"),
                precision=data["precision"],
                status=data["status"],
                category=data.get("category"),
                public_note=data.get("public_note"),
                region=data.get("region"),
                created_by=actor_id,
                created_at=now,
                updated_at=now,
            )
            self.audit.record(session, actor_id, "create", "map_point", point.id, now)
        return point

    def update(self, point_id: uuid.UUID, changes: Dict[str, Any], actor_id: uuid.UUID) -> MapPoint:
        """
        Apply a partial update.

        The public coordinate is recomputed whenever any of lat, lng,
        accuracy_m or precision is part of the update.

        Raises:
            ValidationError: no updatable field given
            NotFound: point missing or deleted
        """
        fields = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        if not fields:
            raise ValidationError("No valid fields to update")
        for key in REQUIRED_FIELDS:
            if key in fields and fields[key] is None:
                raise ValidationError(f"{key} cannot be null")

        now = self.clock()
        with transaction(self.session_factory, "update_point") as session:
            point = self.points.get_live(session, point_id)
            if point is None:
                raise NotFound("Point not found")

            for key, value in fields.items():
                setattr(point, key, value)

            if any(key in fields for key in COORDINATE_FIELDS):
                point.public_lat, point.public_lng = self.jitter.public_coordinate(
                    point.lat, point.lng, point.precision, point.accuracy_m,
                )
            point.updated_at = now
            session.flush()
            self.audit.record(
                session, actor_id, "update", "map_point", point.id, now,
                details={"fields": sorted(fields)},
            )
        return point

    def delete(self, point_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        """Soft delete; the point drops out of the next snapshot."""
        now = self.clock()
        with transaction(self.session_factory, "delete_point") as session:
            point = self.points.get_live(session, point_id)
            if point is None:
                raise NotFound("Point not found")
            point.deleted_at = now
            session.flush()
            self.audit.record(session, actor_id, "delete", "map_point", point.id, now)
        logger.info("point_deleted", point_id=str(point_id))
