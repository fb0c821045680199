"""Integration tests for the repositories against a real SQLite database.

Each test gets a fresh database file; repositories only flush, so nothing
outlives the test.
"""

from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from models import MachineStatus, UserRole, UserStatus
from repositories import MachineRepository, UserRepository, WorkoutSessionRepository
from repositories.utils import day_bounds
from tests.factories import (
    AdminFactory,
    InstructorFactory,
    MachineFactory,
    UserFactory,
    WorkoutSessionFactory,
    create_async,
    create_batch_async,
)

pytestmark = pytest.mark.integration

DAY = date(2026, 4, 14)


def _at(hour: int, minute: int = 0, second: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=UTC)


class TestUserRepository:
    async def test_lookup_by_username_and_email(self, db_session: AsyncSession):
        user = await create_async(UserFactory, db_session, username="otieno")
        repo = UserRepository(db_session)

        assert (await repo.get_by_username("otieno")).id == user.id
        assert (await repo.get_by_email("otieno@example.com")).id == user.id
        assert await repo.username_exists("otieno")
        assert not await repo.email_exists("nobody@example.com")

    async def test_counts(self, db_session: AsyncSession):
        await create_batch_async(UserFactory, db_session, 3)
        await create_async(InstructorFactory, db_session)
        await create_async(AdminFactory, db_session, status=UserStatus.SUSPENDED)
        repo = UserRepository(db_session)

        assert await repo.count() == 5
        assert await repo.count_by_role() == {
            UserRole.MEMBER: 3,
            UserRole.INSTRUCTOR: 1,
            UserRole.ADMIN: 1,
        }
        assert await repo.count_by_status(UserStatus.ACTIVE) == 4
        assert len(await repo.list_by_role(UserRole.MEMBER)) == 3

    async def test_create_and_timestamps_round_trip_as_utc(self, db_session: AsyncSession):
        repo = UserRepository(db_session)
        user = await repo.create(
            username="amani", password_hash="x", email="amani@example.com"
        )
        await repo.touch_last_login(user, _at(9))
        db_session.expunge_all()

        loaded = await repo.get_by_id(user.id)

        assert loaded.role == UserRole.MEMBER
        assert loaded.status == UserStatus.ACTIVE
        assert loaded.last_login == _at(9)
        assert loaded.last_login.tzinfo is not None


class TestMachineRepository:
    async def test_name_exists_excluding_self(self, db_session: AsyncSession):
        machine = await create_async(MachineFactory, db_session, name="Rower-1")
        repo = MachineRepository(db_session)

        assert await repo.name_exists("Rower-1")
        assert not await repo.name_exists("Rower-1", exclude_id=machine.id)

    async def test_status_counts(self, db_session: AsyncSession):
        await create_batch_async(MachineFactory, db_session, 2)
        await create_async(MachineFactory, db_session, status=MachineStatus.MAINTENANCE)
        repo = MachineRepository(db_session)

        assert await repo.count() == 3
        assert await repo.count_by_status(MachineStatus.ACTIVE) == 2
        assert len(await repo.list_by_status(MachineStatus.MAINTENANCE)) == 1


class TestWorkoutSessionRepository:
    async def test_date_range_is_inclusive_of_whole_days(self, db_session: AsyncSession):
        user = await create_async(UserFactory, db_session)
        machine = await create_async(MachineFactory, db_session)
        times = {
            "before": _at(23, 59, 59, day=DAY - timedelta(days=1)),
            "first": _at(0, 0, 0),
            "last": _at(23, 59, 59),
            "after": _at(0, 0, 0, day=DAY + timedelta(days=1)),
        }
        ids = {}
        for label, start in times.items():
            session = await create_async(
                WorkoutSessionFactory, db_session, user=user, machine=machine,
                start_time=start,
            )
            ids[label] = session.id

        start, end = day_bounds(DAY, DAY)
        found = await WorkoutSessionRepository(db_session).list_in_range(start, end)

        assert [s.id for s in found] == [ids["last"], ids["first"]]

    async def test_range_filters_by_user(self, db_session: AsyncSession):
        alice = await create_async(UserFactory, db_session)
        bob = await create_async(UserFactory, db_session)
        machine = await create_async(MachineFactory, db_session)
        for user in (alice, bob, bob):
            await create_async(
                WorkoutSessionFactory, db_session, user=user, machine=machine,
                start_time=_at(10),
            )

        start, end = day_bounds(DAY, DAY)
        found = await WorkoutSessionRepository(db_session).list_in_range(
            start, end, user_id=bob.id
        )

        assert len(found) == 2
        assert all(s.user.id == bob.id for s in found)

    async def test_newest_first_with_missing_start_last(self, db_session: AsyncSession):
        user = await create_async(UserFactory, db_session)
        no_start = await create_async(
            WorkoutSessionFactory, db_session, user=user, start_time=None, end_time=None
        )
        old = await create_async(WorkoutSessionFactory, db_session, user=user, start_time=_at(6))
        new = await create_async(WorkoutSessionFactory, db_session, user=user, start_time=_at(18))

        found = await WorkoutSessionRepository(db_session).list_for_user(user.id)

        assert [s.id for s in found] == [new.id, old.id, no_start.id]

    async def test_relations_are_loaded(self, db_session: AsyncSession):
        user = await create_async(UserFactory, db_session, username="njeri")
        machine = await create_async(MachineFactory, db_session, name="Bike-9")
        session = await create_async(
            WorkoutSessionFactory, db_session, user=user, machine=machine
        )
        db_session.expunge_all()

        loaded = await WorkoutSessionRepository(db_session).get_by_id(session.id)

        assert loaded.user.username == "njeri"
        assert loaded.machine.name == "Bike-9"
        assert loaded.duration == timedelta(minutes=30)

    async def test_quality_issue_listing_includes_unvalidated(self, db_session: AsyncSession):
        user = await create_async(UserFactory, db_session)
        await create_async(WorkoutSessionFactory, db_session, user=user)
        failed = await create_async(
            WorkoutSessionFactory, db_session, user=user, data_quality_flag=False
        )
        unchecked = await create_async(
            WorkoutSessionFactory, db_session, user=user, data_quality_flag=None
        )
        repo = WorkoutSessionRepository(db_session)

        found = await repo.list_with_quality_issues()

        assert {s.id for s in found} == {failed.id, unchecked.id}
        assert sorted(await repo.quality_flags(), key=str) == sorted(
            [True, False, None], key=str
        )

    async def test_aggregates(self, db_session: AsyncSession):
        now = datetime.now(UTC)
        alice = await create_async(UserFactory, db_session)
        bob = await create_async(UserFactory, db_session)
        treadmill = await create_async(MachineFactory, db_session)
        bike = await create_async(MachineFactory, db_session)
        await create_async(
            WorkoutSessionFactory, db_session, user=alice, machine=treadmill,
            start_time=now - timedelta(days=1),
        )
        await create_async(
            WorkoutSessionFactory, db_session, user=alice, machine=treadmill,
            start_time=now - timedelta(days=2),
        )
        await create_async(
            WorkoutSessionFactory, db_session, user=bob, machine=bike,
            start_time=now - timedelta(days=20),
        )
        await create_async(
            WorkoutSessionFactory, db_session, user=bob, machine=bike,
            start_time=now + timedelta(days=30),
        )
        repo = WorkoutSessionRepository(db_session)

        assert await repo.count() == 4
        assert await repo.count_for_machine(treadmill.id) == 2
        assert await repo.count_by_machine() == {treadmill.id: 2, bike.id: 2}
        week_ago = now - timedelta(days=7)
        assert await repo.count_in_range(week_ago, now) == 2
        assert await repo.active_user_ids_in_range(week_ago, now) == {alice.id}
        assert len(await repo.list_recent(2)) == 2
        assert await repo.list_for_users([]) == []
        assert len(await repo.list_for_users([bob.id])) == 2
