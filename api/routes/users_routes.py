"""User administration endpoints."""

from fastapi import APIRouter, HTTPException, Request

from core.auth import AdminPrincipal, StaffPrincipal
from core.database import DbSession
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from schemas import UserCountsResponse, UserResponse, UserStatusUpdate
from services.users_service import (
    UserNotFoundError,
    count_users,
    list_members,
    list_users,
    update_user_status,
)

router = APIRouter(prefix="/api/users", tags=["users"])

_STAFF_RESPONSES = {
    401: {"description": "Not authenticated"},
    403: {"description": "Insufficient permissions"},
}


@router.get("", response_model=list[UserResponse], responses=_STAFF_RESPONSES)
@limiter.limit(READ_LIMIT)
async def list_users_endpoint(
    request: Request, principal: AdminPrincipal, db: DbSession
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in await list_users(db)]


@router.get("/members", response_model=list[UserResponse], responses=_STAFF_RESPONSES)
@limiter.limit(READ_LIMIT)
async def list_members_endpoint(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in await list_members(db)]


@router.get("/count", response_model=UserCountsResponse, responses=_STAFF_RESPONSES)
@limiter.limit(READ_LIMIT)
async def count_users_endpoint(
    request: Request, principal: AdminPrincipal, db: DbSession
) -> UserCountsResponse:
    return UserCountsResponse.model_validate(await count_users(db))


@router.put(
    "/{user_id}/status",
    response_model=UserResponse,
    responses={**_STAFF_RESPONSES, 404: {"description": "User not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def update_user_status_endpoint(
    request: Request,
    user_id: int,
    body: UserStatusUpdate,
    principal: AdminPrincipal,
    db: DbSession,
) -> UserResponse:
    if user_id == principal.id:
        raise HTTPException(status_code=400, detail="Cannot change your own status")
    try:
        user = await update_user_status(db, user_id, body.status)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return UserResponse.model_validate(user)
