"""Instructor dashboard endpoints (instructors and admins)."""

from fastapi import APIRouter, Request

from core.auth import StaffPrincipal
from core.database import DbSession
from core.ratelimit import READ_LIMIT, limiter
from schemas import (
    InstructorChartDataResponse,
    InstructorDashboardStatsResponse,
    WorkoutSessionResponse,
)
from services.dashboard_service import (
    get_instructor_chart_data,
    get_instructor_dashboard_stats,
)
from services.workout_sessions_service import list_all_sessions

router = APIRouter(
    prefix="/api/instructor",
    tags=["instructor"],
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Instructor or admin access required"},
    },
)


@router.get("/dashboard-stats", response_model=InstructorDashboardStatsResponse)
@limiter.limit(READ_LIMIT)
async def dashboard_stats(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> InstructorDashboardStatsResponse:
    stats = await get_instructor_dashboard_stats(db)
    return InstructorDashboardStatsResponse.model_validate(stats)


@router.get("/chart-data", response_model=InstructorChartDataResponse)
@limiter.limit(READ_LIMIT)
async def chart_data(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> InstructorChartDataResponse:
    """Weekday activity, sessions per machine type and four-week progress."""
    data = await get_instructor_chart_data(db)
    return InstructorChartDataResponse.model_validate(data, from_attributes=True)


@router.get("/workout-sessions", response_model=list[WorkoutSessionResponse])
@limiter.limit(READ_LIMIT)
async def workout_sessions(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> list[WorkoutSessionResponse]:
    return [WorkoutSessionResponse.from_session(s) for s in await list_all_sessions(db)]
