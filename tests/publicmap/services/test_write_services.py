"""
Tests for point/resident writes and actor resolution.
"""
import uuid

import pytest
from sqlalchemy import select

from src.publicmap.db.models import AppUser, AuditLogEntry, MapPoint
from src.publicmap.errors import NotFound, ValidationError
from src.publicmap.privacy.jitter import METERS_PER_DEGREE, JitterEngine
from src.publicmap.services.actors import ActorResolver
from src.publicmap.services.points import PointService
from src.publicmap.services.residents import ResidentService
from src.publicmap.services.snapshot_builder import SnapshotBuilder


@pytest.fixture
def points(session_factory, clock, sequence_random):
    # u=0.25, v=0 moves half the radius due north
    return PointService(session_factory, JitterEngine(sequence_random([0.25, 0.0])), clock)


def load_point(session_factory, point_id):
    with session_factory() as session:
        return session.get(MapPoint, point_id)


def audit_actions(session_factory):
    with session_factory() as session:
        return [
            (entry.action, entry.entity_type)
            for entry in session.execute(
                select(AuditLogEntry).order_by(AuditLogEntry.created_at)
            ).scalars()
        ]


class TestPointService:
    """Tests for PointService."""

    def test_create_exact_point_keeps_coordinate(self, points, owner_id):
        point = points.create(
            {"lat": 1.0, "lng": 2.0, "precision": "exact", "status": "active", "accuracy_m": 100},
            owner_id,
        )

        assert (point.public_lat, point.public_lng) == (1.0, 2.0)
        assert point.created_by == owner_id

    def test_create_approx_point_is_jittered_once(self, points, session_factory, owner_id):
        point = points.create(
            {"lat": 0.0, "lng": 0.0, "precision": "approx", "status": "active",
             "accuracy_m": METERS_PER_DEGREE},
            owner_id,
        )

        stored = load_point(session_factory, point.id)
        assert stored.lat == 0.0
        assert stored.public_lat == pytest.approx(0.5)
        assert stored.public_lng == pytest.approx(0.0)

    def test_update_coordinate_recomputes_public_coordinate(self, points, session_factory, owner_id):
        point = points.create(
            {"lat": 0.0, "lng": 0.0, "precision": "exact", "status": "active"}, owner_id,
        )

        points.update(point.id, {"lat": 5.0}, owner_id)

        stored = load_point(session_factory, point.id)
        assert (stored.lat, stored.public_lat) == (5.0, 5.0)

    def test_switch_to_approx_applies_jitter(self, points, session_factory, owner_id):
        point = points.create(
            {"lat": 0.0, "lng": 0.0, "precision": "exact", "status": "active",
             "accuracy_m": METERS_PER_DEGREE},
            owner_id,
        )

        points.update(point.id, {"precision": "approx"}, owner_id)

        stored = load_point(session_factory, point.id)
        assert stored.public_lat == pytest.approx(0.5)

    def test_non_coordinate_update_keeps_public_coordinate(self, points, session_factory, owner_id):
        point = points.create(
            {"lat": 0.0, "lng": 0.0, "precision": "approx", "status": "active",
             "accuracy_m": METERS_PER_DEGREE},
            owner_id,
        )
        before = load_point(session_factory, point.id)

        points.update(point.id, {"public_note": "water tank", "region": "North"}, owner_id)

        after = load_point(session_factory, point.id)
        assert (after.public_lat, after.public_lng) == (before.public_lat, before.public_lng)
        assert after.public_note == "water tank"
        assert points.jitter.rng.index == 2

    def test_update_rejects_empty_and_null_required(self, points, owner_id):
        point = points.create(
            {"lat": 0.0, "lng": 0.0, "precision": "exact", "status": "active"}, owner_id,
        )

        with pytest.raises(ValidationError):
            points.update(point.id, {"unknown": 1}, owner_id)
        with pytest.raises(ValidationError, match="status"):
            points.update(point.id, {"status": None}, owner_id)

    def test_update_missing_point(self, points, owner_id):
        with pytest.raises(NotFound):
            points.update(uuid.uuid4(), {"status": "inactive"}, owner_id)

    def test_deleted_point_leaves_snapshot(self, points, session_factory, clock, owner_id):
        kept = points.create({"lat": 0.0, "lng": 0.0, "precision": "exact", "status": "active"}, owner_id)
        gone = points.create({"lat": 1.0, "lng": 1.0, "precision": "exact", "status": "active"}, owner_id)

        points.delete(gone.id, owner_id)
        result = SnapshotBuilder(session_factory, clock).refresh()

        assert result.rows_written == 1
        assert load_point(session_factory, gone.id).deleted_at is not None
        assert load_point(session_factory, kept.id).deleted_at is None
        with pytest.raises(NotFound):
            points.delete(gone.id, owner_id)

    def test_writes_are_audited(self, points, session_factory, clock, owner_id):
        point = points.create({"lat": 0.0, "lng": 0.0, "precision": "exact", "status": "active"}, owner_id)
        clock.advance(seconds=1)
        points.update(point.id, {"status": "inactive"}, owner_id)
        clock.advance(seconds=1)
        points.delete(point.id, owner_id)

        assert audit_actions(session_factory) == [
            ("create", "map_point"), ("update", "map_point"), ("delete", "map_point"),
        ]


class TestResidentService:
    """Tests for ResidentService."""

    def test_create_and_update(self, session_factory, clock, owner_id):
        service = ResidentService(session_factory, clock)

        resident = service.create({"full_name": "Maria", "status": "active"}, owner_id)
        clock.advance(seconds=1)
        service.update(resident.id, {"phone": "555-0100"}, owner_id)

        assert audit_actions(session_factory) == [("create", "resident"), ("update", "resident")]

    def test_null_name_rejected(self, session_factory, clock, owner_id):
        service = ResidentService(session_factory, clock)
        resident = service.create({"full_name": "Maria", "status": "active"}, owner_id)

        with pytest.raises(ValidationError, match="full_name"):
            service.update(resident.id, {"full_name": None}, owner_id)

    def test_update_missing_resident(self, session_factory, clock, owner_id):
        with pytest.raises(NotFound):
            ResidentService(session_factory, clock).update(uuid.uuid4(), {"status": "inactive"}, owner_id)


class TestActorResolver:
    """Tests for ActorResolver."""

    def test_header_is_used_verbatim(self, session_factory, owner_id):
        assert ActorResolver(session_factory).resolve(str(owner_id)) == owner_id

    def test_invalid_header_rejected(self, session_factory):
        with pytest.raises(ValidationError):
            ActorResolver(session_factory).resolve("not-a-uuid")

    def test_system_user_created_once(self, session_factory):
        resolver = ActorResolver(session_factory, system_subject="system")

        first = resolver.resolve(None)
        second = resolver.resolve("")

        assert first == second
        with session_factory() as session:
            users = session.execute(select(AppUser).where(AppUser.subject == "system")).scalars().all()
        assert len(users) == 1
        assert users[0].role == "admin"
