"""
Database Package

Database models, connection management, and data persistence layer.
"""
from src.publicmap.db.base import Base
from src.publicmap.db.session import (
    engine,
    SessionLocal,
    build_engine,
    build_session_factory,
    transaction,
    read_session,
    health_check,
    close_connections,
    create_all_tables,
    drop_all_tables,
)
from src.publicmap.db.models import (
    AppUser,
    Resident,
    MapPoint,
    ResidentPointAssignment,
    PublicMapSnapshot,
    GeocodeCacheEntry,
    AuditLogEntry,
)
from src.publicmap.db.repository import (
    BaseRepository,
    AppUserRepository,
    ResidentRepository,
    PointRepository,
    AssignmentRepository,
    SnapshotRepository,
    GeocodeCacheRepository,
    AuditLogRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "engine",
    "SessionLocal",
    "build_engine",
    "build_session_factory",
    "transaction",
    "read_session",
    "health_check",
    "close_connections",
    "create_all_tables",
    "drop_all_tables",
    # Models
    "AppUser",
    "Resident",
    "MapPoint",
    "ResidentPointAssignment",
    "PublicMapSnapshot",
    "GeocodeCacheEntry",
    "AuditLogEntry",
    # Repositories
    "BaseRepository",
    "AppUserRepository",
    "ResidentRepository",
    "PointRepository",
    "AssignmentRepository",
    "SnapshotRepository",
    "GeocodeCacheRepository",
    "AuditLogRepository",
]
