"""Report endpoints.

Each report is available as a CSV download and as JSON. Date ranges are
inclusive of both end days.
"""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import CurrentPrincipal, Principal, StaffPrincipal
from core.database import DbSession
from core.ratelimit import REPORT_LIMIT, limiter
from schemas import (
    DataQualityReportResponse,
    MachineUsageReportResponse,
    MachineUsageRowResponse,
    MemberProgressReportResponse,
    MemberProgressRowResponse,
    MemberProgressSummaryResponse,
    SystemReportResponse,
)
from services.reports_service import (
    InvalidDateRangeError,
    MachineUsageReport,
    MemberProgressReport,
    ReportAccessDeniedError,
    ReportPeriod,
    get_data_quality_report,
    get_machine_usage_report,
    get_member_progress_report,
    get_system_report,
    render_data_quality_csv,
    render_machine_usage_csv,
    render_member_progress_csv,
)
from services.users_service import UserNotFoundError

router = APIRouter(prefix="/api/reports", tags=["reports"])

_RANGE_RESPONSES = {
    400: {"description": "end_date is before start_date"},
    401: {"description": "Not authenticated"},
    403: {"description": "Insufficient permissions"},
}


def _period(start_date: date, end_date: date) -> ReportPeriod:
    try:
        return ReportPeriod.parse(start_date, end_date)
    except InvalidDateRangeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _member_progress(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    period: ReportPeriod,
) -> MemberProgressReport:
    try:
        return await get_member_progress_report(db, principal, user_id, period)
    except ReportAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def _usage_response(report: MachineUsageReport) -> MachineUsageReportResponse:
    return MachineUsageReportResponse(
        start_date=report.period.start_date,
        end_date=report.period.end_date,
        rows=[MachineUsageRowResponse.model_validate(r) for r in report.rows],
    )


@router.get(
    "/usage/csv",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}, **_RANGE_RESPONSES},
)
@limiter.limit(REPORT_LIMIT)
async def usage_report_csv(
    request: Request,
    principal: StaffPrincipal,
    db: DbSession,
    start_date: date = Query(...),
    end_date: date = Query(...),
) -> Response:
    """Per-machine usage for the period, as CSV."""
    period = _period(start_date, end_date)
    report = await get_machine_usage_report(db, period)
    return _csv_response(
        render_machine_usage_csv(report),
        f"usage_report_{start_date.isoformat()}_to_{end_date.isoformat()}.csv",
    )


@router.get(
    "/usage", response_model=MachineUsageReportResponse, responses=_RANGE_RESPONSES
)
@limiter.limit(REPORT_LIMIT)
async def usage_report(
    request: Request,
    principal: StaffPrincipal,
    db: DbSession,
    start_date: date = Query(...),
    end_date: date = Query(...),
) -> MachineUsageReportResponse:
    report = await get_machine_usage_report(db, _period(start_date, end_date))
    return _usage_response(report)


@router.get(
    "/member-progress/csv",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}},
        **_RANGE_RESPONSES,
        404: {"description": "User not found"},
    },
)
@limiter.limit(REPORT_LIMIT)
async def member_progress_csv(
    request: Request,
    principal: CurrentPrincipal,
    db: DbSession,
    user_id: int = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
) -> Response:
    """One member's sessions and totals for the period, as CSV.

    Members may only download their own report.
    """
    period = _period(start_date, end_date)
    report = await _member_progress(db, principal, user_id, period)
    return _csv_response(
        render_member_progress_csv(report),
        f"member_progress_{user_id}_{start_date.isoformat()}_to_{end_date.isoformat()}.csv",
    )


@router.get(
    "/member-progress",
    response_model=MemberProgressReportResponse,
    responses={**_RANGE_RESPONSES, 404: {"description": "User not found"}},
)
@limiter.limit(REPORT_LIMIT)
async def member_progress(
    request: Request,
    principal: CurrentPrincipal,
    db: DbSession,
    user_id: int = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
) -> MemberProgressReportResponse:
    period = _period(start_date, end_date)
    report = await _member_progress(db, principal, user_id, period)
    return MemberProgressReportResponse(
        user_id=report.user_id,
        member_name=report.member_name,
        start_date=period.start_date,
        end_date=period.end_date,
        rows=[MemberProgressRowResponse.model_validate(r) for r in report.rows],
        summary=MemberProgressSummaryResponse.model_validate(report.summary),
    )


@router.get(
    "/data-quality/csv",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
@limiter.limit(REPORT_LIMIT)
async def data_quality_csv(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> Response:
    """Every session that failed data quality validation, as CSV."""
    report = await get_data_quality_report(db)
    return _csv_response(render_data_quality_csv(report), "data_quality_report.csv")


@router.get("/data-quality", response_model=DataQualityReportResponse)
@limiter.limit(REPORT_LIMIT)
async def data_quality(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> DataQualityReportResponse:
    report = await get_data_quality_report(db)
    return DataQualityReportResponse.model_validate(report, from_attributes=True)


@router.get("/system/overview", response_model=SystemReportResponse)
@limiter.limit(REPORT_LIMIT)
async def system_overview(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> SystemReportResponse:
    report = await get_system_report(db)
    return SystemReportResponse.model_validate(report, from_attributes=True)
