"""Pydantic schemas for API request/response validation."""

import re
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import HealthStatus, MachineStatus, UserRole, UserStatus, WorkoutSession

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes from clients are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# =============================================================================
# Users & auth
# =============================================================================


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    full_name: str
    role: UserRole
    status: UserStatus
    created_at: datetime
    last_login: datetime | None = None


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=128)
    email: str = Field(max_length=255)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not _USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username may only contain letters, digits, '.', '_' and '-'"
            )
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=128)


class LoginResponse(BaseModel):
    message: str
    user: UserResponse
    redirect_url: str


class CurrentUserResponse(BaseModel):
    authenticated: bool
    user: UserResponse | None = None


class MessageResponse(BaseModel):
    message: str


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserCountsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    members: int
    instructors: int
    admins: int
    active: int


# =============================================================================
# Machines
# =============================================================================


class MachineCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: str = Field(min_length=1, max_length=50)
    location: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    manufacturer: str | None = Field(default=None, max_length=100)
    serial_number: str | None = Field(default=None, max_length=100)
    maintenance_frequency: int | None = Field(default=None, ge=1, le=365)
    max_usage_hours: int | None = Field(default=None, ge=1, le=24)
    daily_usage_limit: int | None = Field(default=None, ge=1)
    purchase_cost: Decimal | None = Field(default=None, ge=0)
    purchase_date: date | None = None


class MachineUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: str | None = Field(default=None, min_length=1, max_length=50)
    location: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    manufacturer: str | None = Field(default=None, max_length=100)
    serial_number: str | None = Field(default=None, max_length=100)
    maintenance_frequency: int | None = Field(default=None, ge=1, le=365)
    max_usage_hours: int | None = Field(default=None, ge=1, le=24)
    daily_usage_limit: int | None = Field(default=None, ge=1)
    purchase_cost: Decimal | None = Field(default=None, ge=0)
    purchase_date: date | None = None


class MachineStatusUpdate(BaseModel):
    status: MachineStatus


class MachineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    status: MachineStatus
    location: str | None = None
    model: str | None = None
    manufacturer: str | None = None
    serial_number: str | None = None
    performance_score: float
    health_status: HealthStatus
    maintenance_frequency: int
    max_usage_hours: int
    daily_usage_limit: int
    purchase_cost: Decimal | None = None
    purchase_date: date | None = None
    last_maintenance: datetime | None = None
    next_maintenance: datetime | None = None
    created_at: datetime


class MachineUsageCountResponse(BaseModel):
    machine_id: int
    total_sessions: int


class MachinePerformanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    machine_id: int
    machine_name: str
    total_sessions: int
    total_usage_hours: float
    avg_calories: int
    performance_score: float
    health_status: HealthStatus
    days_until_maintenance: int | None = None


# =============================================================================
# Workout sessions
# =============================================================================


class WorkoutSessionFields(BaseModel):
    """Workout measurements as submitted by a client.

    Values are deliberately not range-checked here: out-of-range readings are
    stored and flagged by data quality validation instead of rejected.
    """

    machine_id: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_minutes: int | None = None
    calories_burned: int | None = None
    avg_heart_rate: int | None = None
    distance: float | None = None
    avg_speed: float | None = None
    resistance_level: int | None = None
    incline_level: int | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    def to_fields(self, *, only_set: bool = False) -> dict[str, Any]:
        """Model attribute mapping (``duration_minutes`` becomes ``duration``)."""
        data = self.model_dump(exclude_unset=only_set)
        if "duration_minutes" in data:
            minutes = data.pop("duration_minutes")
            data["duration"] = timedelta(minutes=minutes) if minutes is not None else None
        return data


class WorkoutSessionCreate(WorkoutSessionFields):
    pass


class WorkoutSessionUpdate(WorkoutSessionFields):
    """Partial update: only fields present in the request body are applied."""


class WorkoutSessionResponse(BaseModel):
    id: int
    user_id: int | None
    username: str | None = None
    machine_id: int | None
    machine_name: str | None = None
    machine_type: str | None = None
    start_time: datetime | None
    end_time: datetime | None
    duration_minutes: float | None
    calories_burned: int | None
    avg_heart_rate: int | None
    distance: float | None
    avg_speed: float | None
    resistance_level: int | None
    incline_level: int | None
    notes: str | None
    data_quality_flag: bool | None
    quality_issues: str | None
    created_at: datetime

    @classmethod
    def from_session(cls, session: WorkoutSession) -> "WorkoutSessionResponse":
        """Build from a session loaded with its user and machine."""
        return cls(
            id=session.id,
            user_id=session.user_id,
            username=session.user.username if session.user else None,
            machine_id=session.machine_id,
            machine_name=session.machine.name if session.machine else None,
            machine_type=session.machine.type if session.machine else None,
            start_time=session.start_time,
            end_time=session.end_time,
            duration_minutes=(
                round(session.duration.total_seconds() / 60, 2)
                if session.duration is not None
                else None
            ),
            calories_burned=session.calories_burned,
            avg_heart_rate=session.avg_heart_rate,
            distance=session.distance,
            avg_speed=session.avg_speed,
            resistance_level=session.resistance_level,
            incline_level=session.incline_level,
            notes=session.notes,
            data_quality_flag=session.data_quality_flag,
            quality_issues=session.quality_issues,
            created_at=session.created_at,
        )


class UserWorkoutStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_workouts: int
    total_calories: int
    total_distance: float
    avg_heart_rate: float


class RevalidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    checked: int
    passed: int
    failed: int


# =============================================================================
# Reports
# =============================================================================


class MachineUsageRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    machine_id: int | None
    machine_name: str
    machine_type: str
    total_sessions: int
    total_calories: int
    avg_heart_rate: float
    avg_duration_minutes: float
    quality_score: float


class MachineUsageReportResponse(BaseModel):
    start_date: date
    end_date: date
    rows: list[MachineUsageRowResponse]


class MemberProgressRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: int
    start_time: datetime | None
    machine_name: str
    duration_minutes: int | None
    calories: int | None
    heart_rate: int | None
    distance: float | None
    avg_speed: float | None
    quality: str


class MemberProgressSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_workouts: int
    total_calories: int
    total_distance: float
    avg_duration_minutes: float


class MemberProgressReportResponse(BaseModel):
    user_id: int
    member_name: str
    start_date: date
    end_date: date
    rows: list[MemberProgressRowResponse]
    summary: MemberProgressSummaryResponse


class DataQualityIssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: int
    member_name: str
    start_time: datetime | None
    machine_name: str
    issue: str


class DataQualityReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    generated_at: datetime
    total_sessions: int
    sessions_with_issues: int
    quality_score: float
    rows: list[DataQualityIssueResponse]


class MachineSnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sessions: int
    status: MachineStatus
    last_maintenance: str


class SystemReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    total_machines: int
    total_sessions: int
    recent_activity: int
    data_quality_score: float
    machine_statistics: dict[str, MachineSnapshotResponse]


# =============================================================================
# Dashboards
# =============================================================================


class AdminDashboardStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    total_machines: int
    total_sessions: int
    recent_sessions: int
    active_machines: int
    system_health: float


class MachineUsageSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    machine_id: int
    name: str
    type: str
    status: MachineStatus
    sessions: int


class DailyActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    sessions: int


class InstructorDashboardStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_members: int
    active_this_week: int
    avg_workouts_per_member: float
    data_quality_score: int
    avg_calories: int
    total_sessions: int
    sessions_this_week: int


class WeeklyProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week: str
    avg_calories: float
    avg_duration_minutes: float


class InstructorChartDataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    weekly_activity: dict[str, int]
    workout_types: dict[str, int]
    progress_data: list[WeeklyProgressResponse]


# =============================================================================
# Health
# =============================================================================


class HealthResponse(BaseModel):
    status: str
    service: str
