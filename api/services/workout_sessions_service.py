"""Workout session business logic.

Every write goes through the same pipeline:

    fill_missing_time_fields -> validate_workout_session -> persist

so stored sessions always carry derived time fields and a fresh quality
verdict. Sessions that fail validation are still stored; the verdict is
informational.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from core.auth import Principal
from core.wide_event import set_wide_event_fields
from models import WorkoutSession
from repositories.machine_repository import MachineRepository
from repositories.user_repository import UserRepository
from repositories.workout_session_repository import WorkoutSessionRepository
from services.data_quality_service import QualityResult, validate_workout_session
from services.errors import NotFoundError
from services.machines_service import MachineNotFoundError
from services.users_service import UserNotFoundError

logger = get_logger(__name__)

# Fields a caller may set on create/update. Quality fields, ownership and
# timestamps are managed here.
EDITABLE_FIELDS = frozenset(
    {
        "machine_id",
        "start_time",
        "end_time",
        "duration",
        "calories_burned",
        "avg_heart_rate",
        "distance",
        "avg_speed",
        "resistance_level",
        "incline_level",
        "notes",
    }
)


class WorkoutSessionNotFoundError(NotFoundError):
    def __init__(self, session_id: int) -> None:
        self.session_id = session_id
        super().__init__(f"Workout session {session_id} not found")


class WorkoutAccessDeniedError(Exception):
    """Raised when the principal may not read or change a session."""


@dataclass(frozen=True, slots=True)
class UserWorkoutStats:
    total_workouts: int
    total_calories: int
    total_distance: float
    avg_heart_rate: float


@dataclass(frozen=True, slots=True)
class RevalidationSummary:
    checked: int
    passed: int
    failed: int


def fill_missing_time_fields(session: WorkoutSession) -> None:
    """Derive the one missing field of start_time / end_time / duration.

    Only a null field is ever written, so running this twice is the same as
    running it once. With fewer than two of the three fields set nothing can
    be derived and the session is left alone.
    """
    start, end, duration = session.start_time, session.end_time, session.duration

    if start is not None and duration is not None and end is None:
        session.end_time = start + duration
    elif start is not None and end is not None and duration is None:
        session.duration = end - start
    elif duration is not None and end is not None and start is None:
        session.start_time = end - duration


def normalize_and_validate(
    session: WorkoutSession, *, now: datetime | None = None
) -> QualityResult:
    fill_missing_time_fields(session)
    return validate_workout_session(session, now=now)


def _apply_fields(session: WorkoutSession, fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported workout fields: {sorted(unknown)}")
    for name, value in fields.items():
        setattr(session, name, value)


async def _ensure_machine_exists(db: AsyncSession, machine_id: int | None) -> None:
    # A missing machine is a data quality issue; an unknown one is an error
    if machine_id is None:
        return
    if await MachineRepository(db).get_by_id(machine_id) is None:
        raise MachineNotFoundError(machine_id)


async def _get_session_or_raise(db: AsyncSession, session_id: int) -> WorkoutSession:
    session = await WorkoutSessionRepository(db).get_by_id(session_id)
    if session is None:
        raise WorkoutSessionNotFoundError(session_id)
    return session


def _log_saved(event: str, session: WorkoutSession) -> None:
    set_wide_event_fields(
        workout_session_id=session.id,
        workout_quality_flag=session.data_quality_flag,
    )
    logger.info(
        event,
        session_id=session.id,
        user_id=session.user_id,
        machine_id=session.machine_id,
        quality_flag=session.data_quality_flag,
    )


async def create_workout_session(
    db: AsyncSession,
    user_id: int | None,
    fields: Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> WorkoutSession:
    """Normalize, validate and store a new session owned by ``user_id``.

    Raises:
        MachineNotFoundError: ``machine_id`` was given but does not exist.
    """
    await _ensure_machine_exists(db, fields.get("machine_id"))

    session = WorkoutSession(user_id=user_id)
    _apply_fields(session, fields)
    normalize_and_validate(session, now=now)

    session = await WorkoutSessionRepository(db).add(session)
    _log_saved("workout.session.created", session)
    return session


async def update_workout_session(
    db: AsyncSession,
    principal: Principal,
    session_id: int,
    fields: Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> WorkoutSession:
    """Apply a partial update, then re-derive time fields and re-validate.

    Owners and staff may update. Fields absent from ``fields`` keep their
    stored values.
    """
    session = await _get_session_or_raise(db, session_id)
    if session.user_id != principal.id and not principal.is_staff:
        raise WorkoutAccessDeniedError("Only the owner or staff can edit a session")

    if "machine_id" in fields:
        await _ensure_machine_exists(db, fields["machine_id"])

    _apply_fields(session, fields)
    normalize_and_validate(session, now=now)

    session = await WorkoutSessionRepository(db).save(session)
    _log_saved("workout.session.updated", session)
    return session


async def delete_workout_session(
    db: AsyncSession, principal: Principal, session_id: int
) -> None:
    """Owners and admins may delete."""
    session = await _get_session_or_raise(db, session_id)
    if session.user_id != principal.id and not principal.is_admin:
        raise WorkoutAccessDeniedError("Only the owner or an admin can delete")
    await WorkoutSessionRepository(db).delete(session)
    logger.info("workout.session.deleted", session_id=session_id, by=principal.id)


async def revalidate_workout_session(
    db: AsyncSession, session_id: int, *, now: datetime | None = None
) -> WorkoutSession:
    session = await _get_session_or_raise(db, session_id)
    normalize_and_validate(session, now=now)
    session = await WorkoutSessionRepository(db).save(session)
    _log_saved("workout.session.revalidated", session)
    return session


async def revalidate_all_sessions(
    db: AsyncSession, *, now: datetime | None = None
) -> RevalidationSummary:
    """Re-run normalization and validation over every stored session."""
    repo = WorkoutSessionRepository(db)
    sessions = await repo.list_all()
    passed = 0
    for session in sessions:
        if normalize_and_validate(session, now=now).passed:
            passed += 1
    await db.flush()

    summary = RevalidationSummary(
        checked=len(sessions), passed=passed, failed=len(sessions) - passed
    )
    logger.info(
        "workout.sessions.revalidated",
        checked=summary.checked,
        passed=summary.passed,
        failed=summary.failed,
    )
    return summary


async def get_workout_session(
    db: AsyncSession, principal: Principal, session_id: int
) -> WorkoutSession:
    session = await _get_session_or_raise(db, session_id)
    if session.user_id != principal.id and not principal.is_staff:
        raise WorkoutAccessDeniedError("Only the owner or staff can view a session")
    return session


async def list_user_sessions(
    db: AsyncSession, principal: Principal, user_id: int
) -> list[WorkoutSession]:
    """Sessions of ``user_id``, newest first. Members may only list their own."""
    if user_id != principal.id and not principal.is_staff:
        raise WorkoutAccessDeniedError("Members can only view their own sessions")
    if await UserRepository(db).get_by_id(user_id) is None:
        raise UserNotFoundError(user_id)
    return await WorkoutSessionRepository(db).list_for_user(user_id)


async def list_recent_sessions(db: AsyncSession, limit: int = 10) -> list[WorkoutSession]:
    return await WorkoutSessionRepository(db).list_recent(limit)


async def list_sessions_with_quality_issues(db: AsyncSession) -> list[WorkoutSession]:
    return await WorkoutSessionRepository(db).list_with_quality_issues()


async def list_all_sessions(db: AsyncSession) -> list[WorkoutSession]:
    return await WorkoutSessionRepository(db).list_all()


def summarize_user_sessions(sessions: list[WorkoutSession]) -> UserWorkoutStats:
    """Totals treat missing values as 0; the heart rate average skips them."""
    heart_rates = [s.avg_heart_rate for s in sessions if s.avg_heart_rate is not None]
    return UserWorkoutStats(
        total_workouts=len(sessions),
        total_calories=sum(s.calories_burned or 0 for s in sessions),
        total_distance=round(sum(s.distance or 0.0 for s in sessions), 2),
        avg_heart_rate=(
            round(sum(heart_rates) / len(heart_rates), 2) if heart_rates else 0.0
        ),
    )


async def get_user_workout_stats(
    db: AsyncSession, principal: Principal, user_id: int
) -> UserWorkoutStats:
    sessions = await list_user_sessions(db, principal, user_id)
    return summarize_user_sessions(sessions)
