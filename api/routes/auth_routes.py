"""Session authentication routes.

- POST /api/auth/register: create a member account
- POST /api/auth/login: verify credentials, start a session
- POST /api/auth/logout: clear the session
- GET /api/auth/current-user: who is logged in
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from core.auth import OptionalPrincipal, login_session, logout_session
from core.database import DbSession
from core.ratelimit import AUTH_LIMIT, limiter
from schemas import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from services.users_service import (
    AccountInactiveError,
    InvalidCredentialsError,
    UserConflictError,
    authenticate,
    dashboard_path_for,
    get_user,
    register_member,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Register a member account",
    responses={409: {"description": "Username or email already exists"}},
)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request, body: RegisterRequest, db: DbSession
) -> UserResponse:
    try:
        user = await register_member(
            db,
            username=body.username,
            password=body.password,
            email=body.email,
            first_name=body.first_name,
            last_name=body.last_name,
        )
    except UserConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    logger.info("auth.register.success", extra={"user_id": user.id})
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in and start a session",
    responses={
        401: {"description": "Invalid username or password"},
        403: {"description": "Account inactive or suspended"},
    },
)
@limiter.limit(AUTH_LIMIT)
async def login(request: Request, body: LoginRequest, db: DbSession) -> LoginResponse:
    try:
        user = await authenticate(db, body.username, body.password)
    except InvalidCredentialsError as e:
        logger.warning("auth.login.failed", extra={"username": body.username})
        raise HTTPException(status_code=401, detail=str(e)) from e
    except AccountInactiveError as e:
        logger.warning(
            "auth.login.inactive",
            extra={"username": body.username, "status": e.status.value},
        )
        raise HTTPException(status_code=403, detail=str(e)) from e

    login_session(request, user)
    logger.info(
        "auth.login.success",
        extra={"user_id": user.id, "role": user.role.value},
    )
    return LoginResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        redirect_url=dashboard_path_for(user.role),
    )


@router.post("/logout", response_model=MessageResponse, summary="Log out")
async def logout(request: Request) -> MessageResponse:
    user_id = request.session.get("user_id")
    logout_session(request)
    if user_id:
        logger.info("auth.logout", extra={"user_id": user_id})
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/current-user",
    response_model=CurrentUserResponse,
    summary="Get the logged-in user",
)
async def current_user(
    principal: OptionalPrincipal, db: DbSession
) -> CurrentUserResponse:
    if principal is None:
        return CurrentUserResponse(authenticated=False)
    user = await get_user(db, principal.id)
    return CurrentUserResponse(
        authenticated=True, user=UserResponse.model_validate(user)
    )
