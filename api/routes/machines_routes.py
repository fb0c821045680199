"""Machine endpoints.

Any logged-in user can browse machines; changes are admin-only and usage
statistics are for staff.
"""

from fastapi import APIRouter, HTTPException, Request

from core.auth import AdminPrincipal, CurrentPrincipal, StaffPrincipal
from core.database import DbSession
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from schemas import (
    MachineCreate,
    MachinePerformanceResponse,
    MachineResponse,
    MachineStatusUpdate,
    MachineUpdate,
    MachineUsageCountResponse,
)
from services.machines_service import (
    MachineConflictError,
    MachineNotFoundError,
    create_machine,
    delete_machine,
    get_machine,
    get_machine_performance,
    get_machine_usage_count,
    list_machines,
    perform_maintenance,
    update_machine,
    update_machine_status,
)

router = APIRouter(prefix="/api/machines", tags=["machines"])

_NOT_FOUND = {404: {"description": "Machine not found"}}


@router.get("", response_model=list[MachineResponse])
@limiter.limit(READ_LIMIT)
async def list_machines_endpoint(
    request: Request, principal: CurrentPrincipal, db: DbSession
) -> list[MachineResponse]:
    return [MachineResponse.model_validate(m) for m in await list_machines(db)]


@router.get("/{machine_id}", response_model=MachineResponse, responses=_NOT_FOUND)
@limiter.limit(READ_LIMIT)
async def get_machine_endpoint(
    request: Request, machine_id: int, principal: CurrentPrincipal, db: DbSession
) -> MachineResponse:
    try:
        return MachineResponse.model_validate(await get_machine(db, machine_id))
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post(
    "",
    response_model=MachineResponse,
    status_code=201,
    responses={409: {"description": "Machine name already exists"}},
)
@limiter.limit(WRITE_LIMIT)
async def create_machine_endpoint(
    request: Request, body: MachineCreate, principal: AdminPrincipal, db: DbSession
) -> MachineResponse:
    try:
        machine = await create_machine(db, body.model_dump())
    except MachineConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return MachineResponse.model_validate(machine)


@router.put(
    "/{machine_id}",
    response_model=MachineResponse,
    responses={**_NOT_FOUND, 409: {"description": "Machine name already exists"}},
)
@limiter.limit(WRITE_LIMIT)
async def update_machine_endpoint(
    request: Request,
    machine_id: int,
    body: MachineUpdate,
    principal: AdminPrincipal,
    db: DbSession,
) -> MachineResponse:
    try:
        machine = await update_machine(db, machine_id, body.model_dump(exclude_unset=True))
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except MachineConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return MachineResponse.model_validate(machine)


@router.delete(
    "/{machine_id}",
    status_code=204,
    responses={**_NOT_FOUND, 409: {"description": "Machine has workout sessions"}},
)
@limiter.limit(WRITE_LIMIT)
async def delete_machine_endpoint(
    request: Request, machine_id: int, principal: AdminPrincipal, db: DbSession
) -> None:
    try:
        await delete_machine(db, machine_id)
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except MachineConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.put("/{machine_id}/status", response_model=MachineResponse, responses=_NOT_FOUND)
@limiter.limit(WRITE_LIMIT)
async def update_machine_status_endpoint(
    request: Request,
    machine_id: int,
    body: MachineStatusUpdate,
    principal: AdminPrincipal,
    db: DbSession,
) -> MachineResponse:
    try:
        machine = await update_machine_status(db, machine_id, body.status)
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MachineResponse.model_validate(machine)


@router.post(
    "/{machine_id}/maintenance", response_model=MachineResponse, responses=_NOT_FOUND
)
@limiter.limit(WRITE_LIMIT)
async def perform_maintenance_endpoint(
    request: Request, machine_id: int, principal: AdminPrincipal, db: DbSession
) -> MachineResponse:
    try:
        machine = await perform_maintenance(db, machine_id)
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MachineResponse.model_validate(machine)


@router.get(
    "/{machine_id}/usage",
    response_model=MachineUsageCountResponse,
    responses=_NOT_FOUND,
)
@limiter.limit(READ_LIMIT)
async def machine_usage_endpoint(
    request: Request, machine_id: int, principal: StaffPrincipal, db: DbSession
) -> MachineUsageCountResponse:
    try:
        total = await get_machine_usage_count(db, machine_id)
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MachineUsageCountResponse(machine_id=machine_id, total_sessions=total)


@router.get(
    "/{machine_id}/performance",
    response_model=MachinePerformanceResponse,
    responses=_NOT_FOUND,
)
@limiter.limit(READ_LIMIT)
async def machine_performance_endpoint(
    request: Request, machine_id: int, principal: StaffPrincipal, db: DbSession
) -> MachinePerformanceResponse:
    try:
        performance = await get_machine_performance(db, machine_id)
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MachinePerformanceResponse.model_validate(performance)
