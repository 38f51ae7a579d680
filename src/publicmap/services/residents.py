"""
Resident Write Service
"""
import uuid
from typing import Any, Dict, Optional

from sqlalchemy.orm import sessionmaker

from src.publicmap.db.models import Resident
from src.publicmap.db.repository import AuditLogRepository, ResidentRepository
from src.publicmap.db.session import transaction
from src.publicmap.errors import NotFound, ValidationError
from src.publicmap.utils.clock import Clock, utcnow

UPDATABLE_FIELDS = ("full_name", "doc_id", "phone", "email", "address", "notes", "status")
REQUIRED_FIELDS = ("full_name", "status")


class ResidentService:
    def __init__(self, session_factory: sessionmaker, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock or utcnow
        self.residents = ResidentRepository()
        self.audit = AuditLogRepository()

    def create(self, data: Dict[str, Any], actor_id: uuid.UUID) -> Resident:
        now = self.clock()
        with transaction(self.session_factory, "create_resident") as session:
            resident = self.residents.create(
                session,
                full_name=data["full_name"],
                doc_id=data.get("doc_id"),
                phone=data.get("phone"),
                email=data.get("email"),
                address=data.get("address"),
                notes=data.get("notes"),
                status=data["status"],
                created_by=actor_id,
                created_at=now,
                updated_at=now,
            )
            self.audit.record(session, actor_id, "create", "resident", resident.id, now)
        return resident

    def update(self, resident_id: uuid.UUID, changes: Dict[str, Any], actor_id: uuid.UUID) -> Resident:
        fields = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        if not fields:
            raise ValidationError("No valid fields to update")
        for key in REQUIRED_FIELDS:
            if key in fields and fields[key] is None:
                raise ValidationError(f"{key} cannot be null")

        now = self.clock()
        with transaction(self.session_factory, "update_resident") as session:
            resident = self.residents.get_live(session, resident_id)
            if resident is None:
                raise NotFound("Resident not found")
            for key, value in fields.items():
                setattr(resident, key, value)
            resident.updated_at = now
            session.flush()
            self.audit.record(
                session, actor_id, "update", "resident", resident.id, now,
                details={"fields": sorted(fields)},
            )
        return resident
