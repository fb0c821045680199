"""Workout session repository for database operations.

Every query that returns sessions eager-loads ``user`` and ``machine`` so
callers can read names without touching the database again.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Select, distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import WorkoutSession
from repositories.utils import log_slow_query


def _with_relations() -> Select[tuple[WorkoutSession]]:
    return select(WorkoutSession).options(
        selectinload(WorkoutSession.user),
        selectinload(WorkoutSession.machine),
    )


def _newest_first(query: Select[tuple[WorkoutSession]]) -> Select[tuple[WorkoutSession]]:
    # Portable NULLS LAST: sessions without a start time sort after the rest
    return query.order_by(
        WorkoutSession.start_time.is_(None),
        WorkoutSession.start_time.desc(),
        WorkoutSession.id.desc(),
    )


class WorkoutSessionRepository:
    """Repository for WorkoutSession database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _all(self, query: Select[tuple[WorkoutSession]]) -> list[WorkoutSession]:
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @log_slow_query("get_workout_session_by_id")
    async def get_by_id(self, session_id: int) -> WorkoutSession | None:
        result = await self.db.execute(
            _with_relations()
            .where(WorkoutSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def add(self, workout: WorkoutSession) -> WorkoutSession:
        """Insert and return the row reloaded with its relations.

        Does NOT commit. Caller owns the transaction.
        """
        self.db.add(workout)
        await self.db.flush()
        loaded = await self.get_by_id(workout.id)
        assert loaded is not None
        return loaded

    async def save(self, workout: WorkoutSession) -> WorkoutSession:
        await self.db.flush()
        loaded = await self.get_by_id(workout.id)
        assert loaded is not None
        return loaded

    async def delete(self, workout: WorkoutSession) -> None:
        await self.db.delete(workout)
        await self.db.flush()

    async def list_all(self) -> list[WorkoutSession]:
        return await self._all(_newest_first(_with_relations()))

    async def list_for_user(self, user_id: int) -> list[WorkoutSession]:
        return await self._all(
            _newest_first(_with_relations().where(WorkoutSession.user_id == user_id))
        )

    async def list_for_machine(self, machine_id: int) -> list[WorkoutSession]:
        return await self._all(
            _newest_first(
                _with_relations().where(WorkoutSession.machine_id == machine_id)
            )
        )

    @log_slow_query("list_workout_sessions_in_range")
    async def list_in_range(
        self, start: datetime, end: datetime, *, user_id: int | None = None
    ) -> list[WorkoutSession]:
        """Sessions whose start_time falls in [start, end], newest first."""
        query = _with_relations().where(
            WorkoutSession.start_time >= start,
            WorkoutSession.start_time <= end,
        )
        if user_id is not None:
            query = query.where(WorkoutSession.user_id == user_id)
        return await self._all(_newest_first(query))

    async def list_recent(self, limit: int) -> list[WorkoutSession]:
        return await self._all(_newest_first(_with_relations()).limit(limit))

    async def list_with_quality_issues(self) -> list[WorkoutSession]:
        return await self._all(
            _newest_first(
                _with_relations().where(
                    or_(
                        WorkoutSession.data_quality_flag.is_(False),
                        WorkoutSession.data_quality_flag.is_(None),
                    )
                )
            )
        )

    async def list_for_users(self, user_ids: Sequence[int]) -> list[WorkoutSession]:
        if not user_ids:
            return []
        return await self._all(
            _newest_first(
                _with_relations().where(WorkoutSession.user_id.in_(list(user_ids)))
            )
        )

    async def count(self) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(WorkoutSession)
        )
        return result.scalar_one()

    async def count_for_machine(self, machine_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(WorkoutSession)
            .where(WorkoutSession.machine_id == machine_id)
        )
        return result.scalar_one()

    async def count_in_range(self, start: datetime, end: datetime) -> int:
        """Sessions whose start_time falls in [start, end]."""
        result = await self.db.execute(
            select(func.count())
            .select_from(WorkoutSession)
            .where(
                WorkoutSession.start_time >= start,
                WorkoutSession.start_time <= end,
            )
        )
        return result.scalar_one()

    async def count_by_machine(self) -> dict[int, int]:
        result = await self.db.execute(
            select(WorkoutSession.machine_id, func.count())
            .where(WorkoutSession.machine_id.is_not(None))
            .group_by(WorkoutSession.machine_id)
        )
        return {machine_id: count for machine_id, count in result.all()}

    async def active_user_ids_in_range(
        self, start: datetime, end: datetime
    ) -> set[int]:
        result = await self.db.execute(
            select(distinct(WorkoutSession.user_id)).where(
                WorkoutSession.start_time >= start,
                WorkoutSession.start_time <= end,
                WorkoutSession.user_id.is_not(None),
            )
        )
        return set(result.scalars().all())

    async def quality_flags(self) -> list[bool | None]:
        """Quality flag of every session, for score calculations."""
        result = await self.db.execute(select(WorkoutSession.data_quality_flag))
        return list(result.scalars().all())
