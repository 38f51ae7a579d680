"""
Shared fixtures for public map tests.

Every test gets a fresh in-memory SQLite database shared across sessions
through a StaticPool, plus a pinned clock.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from src.publicmap.db.base import Base
from src.publicmap.db.models import AppUser, MapPoint, Resident
from src.publicmap.db.session import build_session_factory


class FixedClock:
    """Callable clock pinned to a settable instant."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class SequenceRandom:
    """Random source replaying a fixed sequence of values."""

    def __init__(self, values):
        self.values = list(values)
        self.index = 0

    def random(self) -> float:
        value = self.values[self.index % len(self.values)]
        self.index += 1
        return value


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def engine(db_engine):
    return db_engine


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture(scope="function")
def clock():
    return FixedClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="function")
def make_user(session_factory):
    """Insert an AppUser and return its id."""

    def _make_user(subject=None, role="admin"):
        with session_factory() as session:
            user = AppUser(
                subject=subject or f"user-{uuid.uuid4()}",
                email="field@example.org",
                role=role,
                status="active",
            )
            session.add(user)
            session.commit()
            return user.id

    return _make_user


@pytest.fixture(scope="function")
def owner_id(make_user):
    return make_user()


@pytest.fixture(scope="function")
def make_point(session_factory, owner_id):
    """Insert a MapPoint whose public coordinate equals the given one."""

    def _make_point(lat=0.0, lng=0.0, **overrides):
        values = dict(
            lat=lat,
            lng=lng,
            public_lat=lat,
            public_lng=lng,
            precision="exact",
            status="active",
            created_by=owner_id,
        )
        values.update(overrides)
        with session_factory() as session:
            point = MapPoint(**values)
            session.add(point)
            session.commit()
            return point.id

    return _make_point


@pytest.fixture(scope="function")
def make_resident(session_factory, owner_id):
    def _make_resident(full_name="Resident", **overrides):
        values = dict(full_name=full_name, status="active", created_by=owner_id)
        values.update(overrides)
        with session_factory() as session:
            resident = Resident(**values)
            session.add(resident)
            session.commit()
            return resident.id

    return _make_resident


@pytest.fixture
def sequence_random():
    """Factory for deterministic random sources."""
    return SequenceRandom
