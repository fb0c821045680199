"""Workout reports: machine usage, member progress, data quality, system.

Aggregation is split from presentation:

- ``build_*`` functions are pure. They take already-loaded sessions and
  return dataclasses, so they can be tested without a database.
- ``render_*_csv`` functions turn those dataclasses into CSV text.
- ``get_*_report`` coroutines load the sessions for a request and call the
  builders.

Numeric conventions are shared by every report: sums treat a missing value
as 0, averages only count sessions where the value is present, and
derived figures are rounded to one decimal place.
"""

import csv
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from core.auth import Principal
from core.wide_event import set_wide_event_nested
from models import Machine, MachineStatus, WorkoutSession
from repositories.machine_repository import MachineRepository
from repositories.user_repository import UserRepository
from repositories.utils import day_bounds
from repositories.workout_session_repository import WorkoutSessionRepository
from services.data_quality_service import (
    calculate_quality_score,
    score_from_flags,
    whole_minutes,
)
from services.users_service import UserNotFoundError

logger = get_logger(__name__)

UNASSIGNED_MACHINE = "Unassigned"
UNKNOWN_MEMBER = "Unknown"
FALLBACK_ISSUE = "Data validation failed"
RECENT_ACTIVITY_WINDOW = timedelta(days=7)

USAGE_COLUMNS = (
    "Machine Name",
    "Type",
    "Total Sessions",
    "Total Calories",
    "Avg Heart Rate",
    "Avg Duration (min)",
    "Quality Score (%)",
)
PROGRESS_COLUMNS = (
    "Date",
    "Machine",
    "Duration (min)",
    "Calories",
    "Heart Rate",
    "Distance (km)",
    "Avg Speed (km/h)",
    "Quality",
)
QUALITY_COLUMNS = ("Member", "Date", "Machine", "Issue Description")


# =============================================================================
# Domain Exceptions
# =============================================================================


class InvalidDateRangeError(Exception):
    """Raised when end_date is before start_date."""

    def __init__(self, start_date: date, end_date: date) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"Invalid date range: {start_date} to {end_date}")


class ReportAccessDeniedError(Exception):
    """Raised when a member requests another member's report."""


# =============================================================================
# Report data
# =============================================================================


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    start_date: date
    end_date: date

    @classmethod
    def parse(cls, start_date: date, end_date: date) -> "ReportPeriod":
        if end_date < start_date:
            raise InvalidDateRangeError(start_date, end_date)
        return cls(start_date, end_date)

    def bounds(self) -> tuple[datetime, datetime]:
        """Start of the first day through the end of the last day, UTC."""
        return day_bounds(self.start_date, self.end_date)

    def __str__(self) -> str:
        return f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"


@dataclass(frozen=True, slots=True)
class MachineUsageRow:
    machine_id: int | None
    machine_name: str
    machine_type: str
    total_sessions: int
    total_calories: int
    avg_heart_rate: float
    avg_duration_minutes: float
    quality_score: float


@dataclass(frozen=True, slots=True)
class MachineUsageReport:
    period: ReportPeriod
    rows: list[MachineUsageRow]


@dataclass(frozen=True, slots=True)
class MemberProgressRow:
    session_id: int
    start_time: datetime | None
    machine_name: str
    duration_minutes: int | None
    calories: int | None
    heart_rate: int | None
    distance: float | None
    avg_speed: float | None
    quality: str


@dataclass(frozen=True, slots=True)
class MemberProgressSummary:
    total_workouts: int
    total_calories: int
    total_distance: float
    avg_duration_minutes: float


@dataclass(frozen=True, slots=True)
class MemberProgressReport:
    user_id: int
    member_name: str
    period: ReportPeriod
    rows: list[MemberProgressRow]
    summary: MemberProgressSummary


@dataclass(frozen=True, slots=True)
class DataQualityIssueRow:
    session_id: int
    member_name: str
    start_time: datetime | None
    machine_name: str
    issue: str


@dataclass(frozen=True, slots=True)
class DataQualityReport:
    generated_at: datetime
    total_sessions: int
    sessions_with_issues: int
    quality_score: float
    rows: list[DataQualityIssueRow]


@dataclass(frozen=True, slots=True)
class MachineSnapshot:
    sessions: int
    status: MachineStatus
    last_maintenance: str


@dataclass(frozen=True, slots=True)
class SystemReport:
    total_users: int
    total_machines: int
    total_sessions: int
    recent_activity: int
    data_quality_score: float
    machine_statistics: dict[str, MachineSnapshot] = field(default_factory=dict)


# =============================================================================
# Pure aggregation
# =============================================================================


def _round1(value: float) -> float:
    return round(value, 1)


def _average(values: Sequence[float]) -> float:
    return _round1(sum(values) / len(values)) if values else 0.0


def _machine_name(session: WorkoutSession) -> str:
    return session.machine.name if session.machine is not None else UNASSIGNED_MACHINE


def _member_name(session: WorkoutSession) -> str:
    return session.user.full_name if session.user is not None else UNKNOWN_MEMBER


def summarize_machine_group(
    machine_id: int | None,
    machine_name: str,
    machine_type: str,
    sessions: Sequence[WorkoutSession],
) -> MachineUsageRow:
    heart_rates = [s.avg_heart_rate for s in sessions if s.avg_heart_rate is not None]
    durations = [whole_minutes(s.duration) for s in sessions if s.duration is not None]
    return MachineUsageRow(
        machine_id=machine_id,
        machine_name=machine_name,
        machine_type=machine_type,
        total_sessions=len(sessions),
        total_calories=sum(s.calories_burned or 0 for s in sessions),
        avg_heart_rate=_average(heart_rates),
        avg_duration_minutes=_average(durations),
        quality_score=_round1(calculate_quality_score(sessions)),
    )


def build_machine_usage_rows(
    sessions: Iterable[WorkoutSession],
    machines: Iterable[Machine] = (),
) -> list[MachineUsageRow]:
    """One row per machine.

    ``machines`` seeds rows for equipment with no sessions in the period.
    Sessions without a machine are grouped under "Unassigned".
    """
    groups: dict[int | None, list[WorkoutSession]] = {}
    labels: dict[int | None, tuple[str, str]] = {}

    for machine in machines:
        groups[machine.id] = []
        labels[machine.id] = (machine.name, machine.type)

    for session in sessions:
        machine = session.machine
        key = machine.id if machine is not None else session.machine_id
        groups.setdefault(key, []).append(session)
        if key not in labels:
            if machine is not None:
                labels[key] = (machine.name, machine.type)
            else:
                labels[key] = (UNASSIGNED_MACHINE, "")

    return [
        summarize_machine_group(machine_id, *labels[machine_id], group)
        for machine_id, group in groups.items()
    ]


def summarize_member_progress(
    sessions: Sequence[WorkoutSession],
) -> MemberProgressSummary:
    durations = [whole_minutes(s.duration) for s in sessions if s.duration is not None]
    return MemberProgressSummary(
        total_workouts=len(sessions),
        total_calories=sum(s.calories_burned or 0 for s in sessions),
        total_distance=_round1(sum(s.distance or 0.0 for s in sessions)),
        avg_duration_minutes=_average(durations),
    )


def build_member_progress_rows(
    sessions: Iterable[WorkoutSession],
) -> list[MemberProgressRow]:
    """Rows newest first; sessions without a start time go last."""
    ordered = sorted(
        sessions,
        key=lambda s: (
            s.start_time is not None,
            s.start_time or datetime.min.replace(tzinfo=UTC),
        ),
        reverse=True,
    )
    return [
        MemberProgressRow(
            session_id=s.id,
            start_time=s.start_time,
            machine_name=_machine_name(s),
            duration_minutes=(
                whole_minutes(s.duration) if s.duration is not None else None
            ),
            calories=s.calories_burned,
            heart_rate=s.avg_heart_rate,
            distance=s.distance,
            avg_speed=s.avg_speed,
            quality="Good" if s.data_quality_flag is True else "Issues",
        )
        for s in ordered
    ]


def build_data_quality_report(
    sessions: Sequence[WorkoutSession], *, now: datetime | None = None
) -> DataQualityReport:
    """Score over all sessions, one row per session not flagged as passing."""
    failing = [s for s in sessions if s.data_quality_flag is not True]
    return DataQualityReport(
        generated_at=now or datetime.now(UTC),
        total_sessions=len(sessions),
        sessions_with_issues=len(failing),
        quality_score=_round1(calculate_quality_score(sessions)),
        rows=[
            DataQualityIssueRow(
                session_id=s.id,
                member_name=_member_name(s),
                start_time=s.start_time,
                machine_name=_machine_name(s),
                issue=s.quality_issues or FALLBACK_ISSUE,
            )
            for s in failing
        ],
    )


# =============================================================================
# CSV rendering
# =============================================================================


def _fmt(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.1f}"
    if isinstance(value, datetime):
        return value.date().isoformat()
    return str(value)


def _csv_text(lines: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for line in lines:
        writer.writerow([_fmt(cell) for cell in line])
    return buffer.getvalue()


def render_machine_usage_csv(report: MachineUsageReport) -> str:
    lines: list[Sequence[object]] = [
        ["Machine Usage Report"],
        [f"Period: {report.period}"],
        [],
        USAGE_COLUMNS,
    ]
    for row in report.rows:
        lines.append(
            [
                row.machine_name,
                row.machine_type,
                row.total_sessions,
                row.total_calories,
                row.avg_heart_rate,
                row.avg_duration_minutes,
                row.quality_score,
            ]
        )
    return _csv_text(lines)


def render_member_progress_csv(report: MemberProgressReport) -> str:
    lines: list[Sequence[object]] = [
        ["Member Progress Report"],
        [f"Member: {report.member_name}"],
        [f"Period: {report.period}"],
        [],
        PROGRESS_COLUMNS,
    ]
    for row in report.rows:
        lines.append(
            [
                row.start_time,
                row.machine_name,
                row.duration_minutes,
                row.calories,
                row.heart_rate,
                row.distance,
                row.avg_speed,
                row.quality,
            ]
        )
    summary = report.summary
    lines.extend(
        [
            [],
            ["Summary"],
            [f"Total Workouts: {summary.total_workouts}"],
            [f"Total Calories: {summary.total_calories}"],
            [f"Total Distance: {summary.total_distance:.1f} km"],
            [f"Avg Session Duration: {summary.avg_duration_minutes:.1f} min"],
        ]
    )
    return _csv_text(lines)


def render_data_quality_csv(report: DataQualityReport) -> str:
    lines: list[Sequence[object]] = [
        ["Data Quality Report"],
        [f"Generated: {report.generated_at.isoformat(timespec='seconds')}"],
        [f"Total Sessions: {report.total_sessions}"],
        [f"Sessions with Quality Issues: {report.sessions_with_issues}"],
        [f"Data Quality Score: {report.quality_score:.1f}%"],
        [],
        QUALITY_COLUMNS,
    ]
    for row in report.rows:
        lines.append([row.member_name, row.start_time, row.machine_name, row.issue])
    return _csv_text(lines)


# =============================================================================
# Report loading
# =============================================================================


async def get_machine_usage_report(
    db: AsyncSession, period: ReportPeriod
) -> MachineUsageReport:
    start, end = period.bounds()
    sessions = await WorkoutSessionRepository(db).list_in_range(start, end)
    machines = await MachineRepository(db).list_all()

    rows = build_machine_usage_rows(sessions, machines)
    set_wide_event_nested("report", kind="machine_usage", rows=len(rows))
    logger.info(
        "report.machine_usage.generated",
        period=str(period),
        sessions=len(sessions),
        rows=len(rows),
    )
    return MachineUsageReport(period=period, rows=rows)


async def get_member_progress_report(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    period: ReportPeriod,
) -> MemberProgressReport:
    """Members may only request their own progress; staff may request anyone's."""
    if user_id != principal.id and not principal.is_staff:
        raise ReportAccessDeniedError("Members can only view their own progress")

    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    start, end = period.bounds()
    sessions = await WorkoutSessionRepository(db).list_in_range(
        start, end, user_id=user_id
    )

    set_wide_event_nested("report", kind="member_progress", rows=len(sessions))
    return MemberProgressReport(
        user_id=user_id,
        member_name=user.full_name,
        period=period,
        rows=build_member_progress_rows(sessions),
        summary=summarize_member_progress(sessions),
    )


async def get_data_quality_report(
    db: AsyncSession, *, now: datetime | None = None
) -> DataQualityReport:
    sessions = await WorkoutSessionRepository(db).list_all()
    report = build_data_quality_report(sessions, now=now)
    set_wide_event_nested(
        "report", kind="data_quality", rows=report.sessions_with_issues
    )
    return report


async def get_system_report(
    db: AsyncSession, *, now: datetime | None = None
) -> SystemReport:
    now = now or datetime.now(UTC)
    session_repo = WorkoutSessionRepository(db)
    machines = await MachineRepository(db).list_all()
    counts = await session_repo.count_by_machine()

    return SystemReport(
        total_users=await UserRepository(db).count(),
        total_machines=len(machines),
        total_sessions=await session_repo.count(),
        recent_activity=await session_repo.count_in_range(
            now - RECENT_ACTIVITY_WINDOW, now
        ),
        data_quality_score=_round1(
            score_from_flags(await session_repo.quality_flags())
        ),
        machine_statistics={
            machine.name: MachineSnapshot(
                sessions=counts.get(machine.id, 0),
                status=machine.status,
                last_maintenance=(
                    machine.last_maintenance.date().isoformat()
                    if machine.last_maintenance
                    else "Never"
                ),
            )
            for machine in machines
        },
    )
