"""Admin and instructor dashboard statistics.

All "this week" figures use a trailing seven-day window ending now, not the
calendar week.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from models import MachineStatus, UserRole, WorkoutSession
from repositories.machine_repository import MachineRepository
from repositories.user_repository import UserRepository
from repositories.workout_session_repository import WorkoutSessionRepository
from services.data_quality_service import score_from_flags, whole_minutes

logger = get_logger(__name__)

WEEK = timedelta(days=7)
WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
PROGRESS_WEEKS = 4
UNASSIGNED_TYPE = "Unassigned"


@dataclass(frozen=True, slots=True)
class AdminDashboardStats:
    total_users: int
    total_machines: int
    total_sessions: int
    recent_sessions: int
    active_machines: int
    system_health: float


@dataclass(frozen=True, slots=True)
class MachineUsageSummary:
    machine_id: int
    name: str
    type: str
    status: MachineStatus
    sessions: int


@dataclass(frozen=True, slots=True)
class DailyActivity:
    day: date
    sessions: int


@dataclass(frozen=True, slots=True)
class InstructorDashboardStats:
    total_members: int
    active_this_week: int
    avg_workouts_per_member: float
    data_quality_score: int
    avg_calories: int
    total_sessions: int
    sessions_this_week: int


@dataclass(frozen=True, slots=True)
class WeeklyProgress:
    week: str
    avg_calories: float
    avg_duration_minutes: float


@dataclass(frozen=True, slots=True)
class InstructorChartData:
    weekly_activity: dict[str, int]
    workout_types: dict[str, int]
    progress_data: list[WeeklyProgress]


def system_health(active_machines: int, total_machines: int) -> float:
    """Share of machines in service, as a percentage. No machines is healthy."""
    if total_machines == 0:
        return 100.0
    return round(active_machines * 100 / total_machines, 1)


async def get_admin_dashboard_stats(
    db: AsyncSession, *, now: datetime | None = None
) -> AdminDashboardStats:
    now = now or datetime.now(UTC)
    machine_repo = MachineRepository(db)
    session_repo = WorkoutSessionRepository(db)

    total_machines = await machine_repo.count()
    active_machines = await machine_repo.count_by_status(MachineStatus.ACTIVE)
    return AdminDashboardStats(
        total_users=await UserRepository(db).count(),
        total_machines=total_machines,
        total_sessions=await session_repo.count(),
        recent_sessions=await session_repo.count_in_range(now - WEEK, now),
        active_machines=active_machines,
        system_health=system_health(active_machines, total_machines),
    )


async def get_machine_usage_summary(db: AsyncSession) -> list[MachineUsageSummary]:
    machines = await MachineRepository(db).list_all()
    counts = await WorkoutSessionRepository(db).count_by_machine()
    return [
        MachineUsageSummary(
            machine_id=m.id,
            name=m.name,
            type=m.type,
            status=m.status,
            sessions=counts.get(m.id, 0),
        )
        for m in machines
    ]


def daily_activity(
    sessions: list[WorkoutSession], *, today: date, days: int = 7
) -> list[DailyActivity]:
    """Session counts per UTC day for the ``days`` days ending ``today``."""
    counts = Counter(
        s.start_time.astimezone(UTC).date() for s in sessions if s.start_time
    )
    first = today - timedelta(days=days - 1)
    days_covered = [first + timedelta(days=i) for i in range(days)]
    return [DailyActivity(day=d, sessions=counts.get(d, 0)) for d in days_covered]


async def get_user_activity(
    db: AsyncSession, *, now: datetime | None = None
) -> list[DailyActivity]:
    now = now or datetime.now(UTC)
    today = now.astimezone(UTC).date()
    since = datetime.combine(today - timedelta(days=6), datetime.min.time(), tzinfo=UTC)
    sessions = await WorkoutSessionRepository(db).list_in_range(since, now)
    return daily_activity(sessions, today=today)


async def get_instructor_dashboard_stats(
    db: AsyncSession, *, now: datetime | None = None
) -> InstructorDashboardStats:
    now = now or datetime.now(UTC)
    session_repo = WorkoutSessionRepository(db)

    members = await UserRepository(db).list_by_role(UserRole.MEMBER)
    member_ids = [m.id for m in members]
    member_sessions = await session_repo.list_for_users(member_ids)
    active_ids = await session_repo.active_user_ids_in_range(now - WEEK, now)

    calories = [
        s.calories_burned for s in member_sessions if s.calories_burned is not None
    ]
    return InstructorDashboardStats(
        total_members=len(members),
        active_this_week=len(active_ids & set(member_ids)),
        avg_workouts_per_member=(
            round(len(member_sessions) / len(members), 1) if members else 0.0
        ),
        data_quality_score=round(score_from_flags(await session_repo.quality_flags())),
        avg_calories=round(sum(calories) / len(calories)) if calories else 0,
        total_sessions=await session_repo.count(),
        sessions_this_week=await session_repo.count_in_range(now - WEEK, now),
    )


def weekly_activity(sessions: list[WorkoutSession]) -> dict[str, int]:
    """Session count per weekday (UTC), Monday first, zero-filled."""
    counts = Counter(
        s.start_time.astimezone(UTC).weekday() for s in sessions if s.start_time
    )
    return {name: counts.get(i, 0) for i, name in enumerate(WEEKDAYS)}


def workout_types(sessions: list[WorkoutSession]) -> dict[str, int]:
    counts = Counter(
        s.machine.type if s.machine is not None else UNASSIGNED_TYPE for s in sessions
    )
    return dict(counts.most_common())


def weekly_progress(
    sessions: list[WorkoutSession], *, now: datetime, weeks: int = PROGRESS_WEEKS
) -> list[WeeklyProgress]:
    """Average calories and duration per trailing week, oldest week first."""
    result = []
    for index in range(weeks):
        week_end = now - WEEK * (weeks - 1 - index)
        week_start = week_end - WEEK
        in_week = [
            s for s in sessions if s.start_time and week_start < s.start_time <= week_end
        ]
        calories = [s.calories_burned for s in in_week if s.calories_burned is not None]
        durations = [
            whole_minutes(s.duration) for s in in_week if s.duration is not None
        ]
        result.append(
            WeeklyProgress(
                week=f"Week {index + 1}",
                avg_calories=round(sum(calories) / len(calories), 1) if calories else 0.0,
                avg_duration_minutes=(
                    round(sum(durations) / len(durations), 1) if durations else 0.0
                ),
            )
        )
    return result


async def get_instructor_chart_data(
    db: AsyncSession, *, now: datetime | None = None
) -> InstructorChartData:
    now = now or datetime.now(UTC)
    session_repo = WorkoutSessionRepository(db)

    this_week = await session_repo.list_in_range(now - WEEK, now)
    all_sessions = await session_repo.list_all()
    progress_window = await session_repo.list_in_range(
        now - WEEK * PROGRESS_WEEKS, now
    )

    return InstructorChartData(
        weekly_activity=weekly_activity(this_week),
        workout_types=workout_types(all_sessions),
        progress_data=weekly_progress(progress_window, now=now),
    )
