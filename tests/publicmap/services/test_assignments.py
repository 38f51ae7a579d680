"""
Tests for the assignment manager.
"""
import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from src.publicmap.db.models import AuditLogEntry, ResidentPointAssignment
from src.publicmap.db.repository import AuditLogRepository
from src.publicmap.errors import NotFound, TransactionFailure
from src.publicmap.services.assignments import AssignmentManager


@pytest.fixture
def manager(session_factory, clock):
    return AssignmentManager(session_factory, clock)


def active_rows(session_factory):
    with session_factory() as session:
        return session.execute(
            select(ResidentPointAssignment).where(ResidentPointAssignment.active.is_(True))
        ).scalars().all()


class TestAssign:
    """Tests for AssignmentManager.assign."""

    def test_reassignment_moves_resident(self, manager, make_point, make_resident):
        resident = make_resident()
        point_a = make_point(0.0, 0.0)
        point_b = make_point(1.0, 1.0)

        manager.assign(resident, point_a)
        manager.assign(resident, point_b)

        assert manager.active_for_resident(resident).point_id == point_b
        assert manager.active_for_point(point_a) is None
        assert manager.active_for_point(point_b).resident_id == resident

    def test_point_takeover_releases_previous_resident(self, manager, make_point, make_resident):
        first = make_resident("First")
        second = make_resident("Second")
        point = make_point(0.0, 0.0)

        manager.assign(first, point)
        manager.assign(second, point)

        assert manager.active_for_resident(first) is None
        assert manager.active_for_point(point).resident_id == second

    def test_at_most_one_active_row_per_side(
        self, manager, session_factory, make_point, make_resident
    ):
        residents = [make_resident(f"R{i}") for i in range(3)]
        points = [make_point(float(i), 0.0) for i in range(3)]

        for resident, point in [(0, 0), (1, 0), (0, 1), (2, 1), (1, 2), (0, 2)]:
            manager.assign(residents[resident], points[point])

        rows = active_rows(session_factory)
        assert len({row.resident_id for row in rows}) == len(rows)
        assert len({row.point_id for row in rows}) == len(rows)

    def test_history_is_kept(self, manager, clock, make_point, make_resident):
        resident = make_resident()
        point_a = make_point(0.0, 0.0)
        point_b = make_point(1.0, 1.0)

        manager.assign(resident, point_a)
        clock.advance(minutes=5)
        manager.assign(resident, point_b)

        history = manager.history_for_resident(resident)
        assert [row.point_id for row in history] == [point_b, point_a]
        assert history[1].active is False
        assert history[1].unassigned_at is not None

    def test_reassigning_same_pair_appends_row(self, manager, make_point, make_resident):
        resident = make_resident()
        point = make_point(0.0, 0.0)

        manager.assign(resident, point)
        manager.assign(resident, point)

        history = manager.history_for_resident(resident)
        assert len(history) == 2
        assert sum(row.active for row in history) == 1

    def test_unknown_resident(self, manager, make_point):
        with pytest.raises(NotFound, match="Resident"):
            manager.assign(uuid.uuid4(), make_point(0.0, 0.0))

    def test_unknown_point(self, manager, make_resident):
        with pytest.raises(NotFound, match="Point"):
            manager.assign(make_resident(), uuid.uuid4())

    def test_deleted_point_is_not_assignable(self, manager, clock, make_point, make_resident):
        point = make_point(0.0, 0.0, deleted_at=clock())

        with pytest.raises(NotFound):
            manager.assign(make_resident(), point)

    def test_audit_row_written_for_actor(
        self, manager, session_factory, owner_id, make_point, make_resident
    ):
        resident = make_resident()
        point = make_point(0.0, 0.0)

        assignment = manager.assign(resident, point, actor_id=owner_id)

        with session_factory() as session:
            entries = session.execute(select(AuditLogEntry)).scalars().all()
        assert len(entries) == 1
        assert entries[0].action == "assign"
        assert entries[0].entity_id == assignment.id
        assert entries[0].details == {"resident_id": str(resident), "point_id": str(point)}

    def test_failure_rolls_back_deactivation(
        self, manager, session_factory, owner_id, make_point, make_resident, monkeypatch
    ):
        """A storage error after the deactivations leaves the old assignment active."""
        resident = make_resident()
        point_a = make_point(0.0, 0.0)
        point_b = make_point(1.0, 1.0)
        manager.assign(resident, point_a)

        def broken_record(self, *args, **kwargs):
            raise OperationalError("INSERT INTO audit_log", {}, Exception("disk full"))

        monkeypatch.setattr(AuditLogRepository, "record", broken_record)

        with pytest.raises(TransactionFailure):
            manager.assign(resident, point_b, actor_id=owner_id)

        rows = active_rows(session_factory)
        assert [(row.resident_id, row.point_id) for row in rows] == [(resident, point_a)]


class TestActiveIndexes:
    """The database itself refuses a second active row."""

    def test_second_active_row_for_resident_rejected(
        self, session_factory, make_point, make_resident
    ):
        resident = make_resident()
        with session_factory() as session:
            session.add(ResidentPointAssignment(resident_id=resident, point_id=make_point(0.0, 0.0)))
            session.add(ResidentPointAssignment(resident_id=resident, point_id=make_point(1.0, 1.0)))
            with pytest.raises(IntegrityError):
                session.commit()

    def test_inactive_rows_do_not_conflict(self, session_factory, make_point, make_resident):
        resident = make_resident()
        point = make_point(0.0, 0.0)
        with session_factory() as session:
            session.add(ResidentPointAssignment(resident_id=resident, point_id=point, active=False))
            session.add(ResidentPointAssignment(resident_id=resident, point_id=point, active=False))
            session.add(ResidentPointAssignment(resident_id=resident, point_id=point, active=True))
            session.commit()

        assert len(active_rows(session_factory)) == 1
