"""Admin dashboard endpoints.

All endpoints require the ADMIN role.
"""

from fastapi import APIRouter, Request

from core.auth import AdminPrincipal
from core.database import DbSession
from core.ratelimit import READ_LIMIT, limiter
from schemas import (
    AdminDashboardStatsResponse,
    DailyActivityResponse,
    MachineUsageSummaryResponse,
)
from services.dashboard_service import (
    get_admin_dashboard_stats,
    get_machine_usage_summary,
    get_user_activity,
)

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Admin access required"},
    },
)


@router.get("/dashboard-stats", response_model=AdminDashboardStatsResponse)
@limiter.limit(READ_LIMIT)
async def dashboard_stats(
    request: Request, principal: AdminPrincipal, db: DbSession
) -> AdminDashboardStatsResponse:
    """System totals and health (share of machines in service)."""
    stats = await get_admin_dashboard_stats(db)
    return AdminDashboardStatsResponse.model_validate(stats)


@router.get("/machine-usage", response_model=list[MachineUsageSummaryResponse])
@limiter.limit(READ_LIMIT)
async def machine_usage(
    request: Request, principal: AdminPrincipal, db: DbSession
) -> list[MachineUsageSummaryResponse]:
    return [
        MachineUsageSummaryResponse.model_validate(m)
        for m in await get_machine_usage_summary(db)
    ]


@router.get("/user-activity", response_model=list[DailyActivityResponse])
@limiter.limit(READ_LIMIT)
async def user_activity(
    request: Request, principal: AdminPrincipal, db: DbSession
) -> list[DailyActivityResponse]:
    """Sessions per day over the last seven days, oldest first."""
    return [
        DailyActivityResponse.model_validate(d) for d in await get_user_activity(db)
    ]
