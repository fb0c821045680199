"""Workout session endpoints.

Every create and update runs the time-field normalizer and the data quality
validator before the session is stored; the verdict comes back in
``data_quality_flag`` / ``quality_issues``.
"""

from fastapi import APIRouter, HTTPException, Query, Request

from core.auth import CurrentPrincipal, StaffPrincipal
from core.database import DbSession
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from models import WorkoutSession
from schemas import (
    UserWorkoutStatsResponse,
    WorkoutSessionCreate,
    WorkoutSessionResponse,
    WorkoutSessionUpdate,
)
from services.machines_service import MachineNotFoundError
from services.users_service import UserNotFoundError
from services.workout_sessions_service import (
    WorkoutAccessDeniedError,
    WorkoutSessionNotFoundError,
    create_workout_session,
    delete_workout_session,
    get_user_workout_stats,
    get_workout_session,
    list_recent_sessions,
    list_sessions_with_quality_issues,
    list_user_sessions,
    revalidate_workout_session,
    update_workout_session,
)

router = APIRouter(prefix="/api/workouts", tags=["workouts"])

_AUTH_RESPONSES = {
    401: {"description": "Not authenticated"},
    403: {"description": "Not allowed for this session"},
}


def _responses(sessions: list[WorkoutSession]) -> list[WorkoutSessionResponse]:
    return [WorkoutSessionResponse.from_session(s) for s in sessions]


@router.post(
    "",
    response_model=WorkoutSessionResponse,
    status_code=201,
    responses={**_AUTH_RESPONSES, 404: {"description": "Machine not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def create_workout_endpoint(
    request: Request,
    body: WorkoutSessionCreate,
    principal: CurrentPrincipal,
    db: DbSession,
) -> WorkoutSessionResponse:
    """Log a workout for the current user."""
    try:
        session = await create_workout_session(db, principal.id, body.to_fields())
    except MachineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return WorkoutSessionResponse.from_session(session)


@router.get("/my-sessions", response_model=list[WorkoutSessionResponse])
@limiter.limit(READ_LIMIT)
async def my_sessions_endpoint(
    request: Request, principal: CurrentPrincipal, db: DbSession
) -> list[WorkoutSessionResponse]:
    return _responses(await list_user_sessions(db, principal, principal.id))


@router.get("/my-stats", response_model=UserWorkoutStatsResponse)
@limiter.limit(READ_LIMIT)
async def my_stats_endpoint(
    request: Request, principal: CurrentPrincipal, db: DbSession
) -> UserWorkoutStatsResponse:
    stats = await get_user_workout_stats(db, principal, principal.id)
    return UserWorkoutStatsResponse.model_validate(stats)


@router.get(
    "/recent",
    response_model=list[WorkoutSessionResponse],
    responses=_AUTH_RESPONSES,
)
@limiter.limit(READ_LIMIT)
async def recent_sessions_endpoint(
    request: Request,
    principal: StaffPrincipal,
    db: DbSession,
    limit: int = Query(default=10, ge=1, le=100),
) -> list[WorkoutSessionResponse]:
    return _responses(await list_recent_sessions(db, limit))


@router.get(
    "/quality-issues",
    response_model=list[WorkoutSessionResponse],
    responses=_AUTH_RESPONSES,
)
@limiter.limit(READ_LIMIT)
async def quality_issues_endpoint(
    request: Request, principal: StaffPrincipal, db: DbSession
) -> list[WorkoutSessionResponse]:
    """Sessions that failed (or never ran) data quality validation."""
    return _responses(await list_sessions_with_quality_issues(db))


@router.get(
    "/user/{user_id}",
    response_model=list[WorkoutSessionResponse],
    responses={**_AUTH_RESPONSES, 404: {"description": "User not found"}},
)
@limiter.limit(READ_LIMIT)
async def user_sessions_endpoint(
    request: Request, user_id: int, principal: CurrentPrincipal, db: DbSession
) -> list[WorkoutSessionResponse]:
    try:
        return _responses(await list_user_sessions(db, principal, user_id))
    except WorkoutAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get(
    "/user/{user_id}/stats",
    response_model=UserWorkoutStatsResponse,
    responses={**_AUTH_RESPONSES, 404: {"description": "User not found"}},
)
@limiter.limit(READ_LIMIT)
async def user_stats_endpoint(
    request: Request, user_id: int, principal: CurrentPrincipal, db: DbSession
) -> UserWorkoutStatsResponse:
    try:
        stats = await get_user_workout_stats(db, principal, user_id)
    except WorkoutAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return UserWorkoutStatsResponse.model_validate(stats)


@router.get(
    "/{session_id}",
    response_model=WorkoutSessionResponse,
    responses={**_AUTH_RESPONSES, 404: {"description": "Session not found"}},
)
@limiter.limit(READ_LIMIT)
async def get_workout_endpoint(
    request: Request, session_id: int, principal: CurrentPrincipal, db: DbSession
) -> WorkoutSessionResponse:
    try:
        session = await get_workout_session(db, principal, session_id)
    except WorkoutSessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except WorkoutAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return WorkoutSessionResponse.from_session(session)


@router.put(
    "/{session_id}",
    response_model=WorkoutSessionResponse,
    responses={**_AUTH_RESPONSES, 404: {"description": "Session or machine not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def update_workout_endpoint(
    request: Request,
    session_id: int,
    body: WorkoutSessionUpdate,
    principal: CurrentPrincipal,
    db: DbSession,
) -> WorkoutSessionResponse:
    """Partial update; the session is re-normalized and re-validated."""
    try:
        session = await update_workout_session(
            db, principal, session_id, body.to_fields(only_set=True)
        )
    except (WorkoutSessionNotFoundError, MachineNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except WorkoutAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return WorkoutSessionResponse.from_session(session)


@router.delete(
    "/{session_id}",
    status_code=204,
    responses={**_AUTH_RESPONSES, 404: {"description": "Session not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def delete_workout_endpoint(
    request: Request, session_id: int, principal: CurrentPrincipal, db: DbSession
) -> None:
    try:
        await delete_workout_session(db, principal, session_id)
    except WorkoutSessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except WorkoutAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e


@router.post(
    "/{session_id}/revalidate",
    response_model=WorkoutSessionResponse,
    responses={**_AUTH_RESPONSES, 404: {"description": "Session not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def revalidate_workout_endpoint(
    request: Request, session_id: int, principal: StaffPrincipal, db: DbSession
) -> WorkoutSessionResponse:
    """Re-run normalization and quality validation on a stored session."""
    try:
        session = await revalidate_workout_session(db, session_id)
    except WorkoutSessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return WorkoutSessionResponse.from_session(session)
