"""
Assignment Manager

Keeps the resident/point bridge table at no more than one active row per
resident and one active row per point.
"""
import uuid
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from src.publicmap.db.models import ResidentPointAssignment
from src.publicmap.db.repository import (
    AssignmentRepository,
    AuditLogRepository,
    PointRepository,
    ResidentRepository,
)
from src.publicmap.db.session import read_session, transaction
from src.publicmap.errors import NotFound
from src.publicmap.utils.clock import Clock, utcnow
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)


class AssignmentManager:
    """Exclusive resident/point assignment."""

    def __init__(self, session_factory: sessionmaker, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock or utcnow
        self.assignments = AssignmentRepository()
        self.residents = ResidentRepository()
        self.points = PointRepository()
        self.audit = AuditLogRepository()

    def assign(
        self,
        resident_id: uuid.UUID,
        point_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None
    ) -> ResidentPointAssignment:
        """
        Make the resident the sole active occupant of the point.

        Runs in one transaction, in this order: deactivate the resident's
        active row, deactivate the point's active row, insert the new active
        row. Re-assigning an existing pair still appends a fresh row.

        Raises:
            NotFound: resident or point does not exist
            TransactionFailure: storage error; nothing was changed
        """
        now = self.clock()
        with transaction(self.session_factory, "assign") as session:
            if self.residents.get_live(session, resident_id) is None:
                raise NotFound("Resident not found")
            if self.points.get_live(session, point_id) is None:
                raise NotFound("Point not found")

            released_resident = self.assignments.deactivate_for_resident(session, resident_id, now)
            released_point = self.assignments.deactivate_for_point(session, point_id, now)
            assignment = self.assignments.create(
                session,
                resident_id=resident_id,
                point_id=point_id,
                active=True,
                assigned_at=now,
            )
            if actor_id is not None:
                self.audit.record(
                    session,
                    actor_id=actor_id,
                    action="assign",
                    entity_type="resident_point_assignment",
                    entity_id=assignment.id,
                    at=now,
                    details={"resident_id": str(resident_id), "point_id": str(point_id)},
                )

        logger.info(
            "assignment_created",
            resident_id=str(resident_id),
            point_id=str(point_id),
            released_resident=released_resident,
            released_point=released_point,
        )
        return assignment

    def active_for_resident(self, resident_id: uuid.UUID) -> Optional[ResidentPointAssignment]:
        with read_session(self.session_factory) as session:
            return self.assignments.active_for_resident(session, resident_id)

    def active_for_point(self, point_id: uuid.UUID) -> Optional[ResidentPointAssignment]:
        with read_session(self.session_factory) as session:
            return self.assignments.active_for_point(session, point_id)

    def history_for_resident(self, resident_id: uuid.UUID) -> List[ResidentPointAssignment]:
        with read_session(self.session_factory) as session:
            return self.assignments.history_for_resident(session, resident_id)
