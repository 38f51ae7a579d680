"""
Actor Resolution

Fallback policy for writes: when a request carries no caller identity, the
write is attributed to a dedicated system user, created on first use.
"""
import uuid
from typing import Optional

from sqlalchemy.orm import sessionmaker

from config.settings import settings
from src.publicmap.db.repository import AppUserRepository
from src.publicmap.db.session import transaction
from src.publicmap.errors import ValidationError
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)


class ActorResolver:
    """Resolves the acting user id for write endpoints."""

    def __init__(
        self,
        session_factory: sessionmaker,
        system_subject: Optional[str] = None,
        system_email: Optional[str] = None
    ):
        self.session_factory = session_factory
        self.system_subject = system_subject or settings.system_actor_subject
        self.system_email = system_email or settings.system_actor_email
        self.users = AppUserRepository()

    def resolve(self, actor_header: Optional[str]) -> uuid.UUID:
        """
        Resolve the actor for a write.

        Args:
            actor_header: Raw X-Actor-User-Id header value, if any

        Returns:
            Actor user id

        Raises:
            ValidationError: header present but not a UUID
        """
        if actor_header:
            try:
                return uuid.UUID(actor_header)
            except ValueError:
                raise ValidationError("X-Actor-User-Id must be a UUID")
        return self.system_actor_id()

    def system_actor_id(self) -> uuid.UUID:
        with transaction(self.session_factory, "resolve_system_actor") as session:
            user = self.users.get_by_subject(session, self.system_subject)
            if user is None:
                user = self.users.create(
                    session,
                    subject=self.system_subject,
                    email=self.system_email,
                    role="admin",
                    status="active",
                )
                logger.info("system_actor_created", user_id=str(user.id))
            return user.id
