"""
FastAPI Dependencies

Builds services from an injected session factory so routers never reach
for a global connection.
"""
from functools import lru_cache
from typing import Optional
import uuid

from fastapi import Depends, Header
from sqlalchemy.orm import sessionmaker

from src.publicmap.db.session import SessionLocal
from src.publicmap.geocoding.cache import GeocodeCache
from src.publicmap.geocoding.client import GeocodingProvider, GoogleGeocodingClient
from src.publicmap.privacy.jitter import JitterEngine
from src.publicmap.services.actors import ActorResolver
from src.publicmap.services.assignments import AssignmentManager
from src.publicmap.services.points import PointService
from src.publicmap.services.public_map import PublicMapService
from src.publicmap.services.refresh_task import RefreshTask
from src.publicmap.services.reporting import AuditQuery, ReportingEngine
from src.publicmap.services.residents import ResidentService
from src.publicmap.services.snapshot_builder import SnapshotBuilder
from src.publicmap.utils.clock import Clock, utcnow


def get_session_factory() -> sessionmaker:
    """
    Session factory dependency.

    Returns:
        SQLAlchemy session factory
    """
    return SessionLocal


def get_clock() -> Clock:
    return utcnow


def get_jitter_engine() -> JitterEngine:
    return JitterEngine()


def get_geocoding_provider() -> GeocodingProvider:
    return GoogleGeocodingClient()


def get_public_map_service(
    factory: sessionmaker = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> PublicMapService:
    return PublicMapService(factory, clock)


@lru_cache(maxsize=None)
def _refresh_task_for(factory: sessionmaker, clock: Clock) -> RefreshTask:
    return RefreshTask(SnapshotBuilder(factory, clock), clock)


def get_refresh_task(
    factory: sessionmaker = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> RefreshTask:
    """One long-lived task per session factory so its last status is kept."""
    return _refresh_task_for(factory, clock)


def get_reporting_engine(
    factory: sessionmaker = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> ReportingEngine:
    return ReportingEngine(factory, clock)


def get_audit_query(factory: sessionmaker = Depends(get_session_factory)) -> AuditQuery:
    return AuditQuery(factory)


def get_assignment_manager(
    factory: sessionmaker = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> AssignmentManager:
    return AssignmentManager(factory, clock)


def get_geocode_cache(
    factory: sessionmaker = Depends(get_session_factory),
    provider: GeocodingProvider = Depends(get_geocoding_provider),
) -> GeocodeCache:
    return GeocodeCache(factory, provider)


def get_point_service(
    factory: sessionmaker = Depends(get_session_factory),
    jitter: JitterEngine = Depends(get_jitter_engine),
    clock: Clock = Depends(get_clock),
) -> PointService:
    return PointService(factory, jitter, clock)


def get_resident_service(
    factory: sessionmaker = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> ResidentService:
    return ResidentService(factory, clock)


def get_actor_id(
    x_actor_user_id: Optional[str] = Header(None),
    factory: sessionmaker = Depends(get_session_factory),
) -> uuid.UUID:
    """
    Acting user for writes.

    Uses X-Actor-User-Id when present; otherwise falls back to the system
    user (see ActorResolver).
    """
    return ActorResolver(factory).resolve(x_actor_user_id)
