"""Session authentication and role-based access.

Provides:
- bcrypt password hashing
- Resolution of the signed session cookie into a typed ``Principal``
- FastAPI dependencies for authenticated and role-restricted routes

The principal is loaded once per request; handlers and services only ever
see the ``Principal``, never the raw session payload.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Annotated, Any

import bcrypt
from fastapi import Depends, HTTPException, Request

from core.config import get_settings
from core.database import DbSession
from core.logger import get_logger
from core.wide_event import set_wide_event_fields
from models import User, UserRole, UserStatus
from repositories.user_repository import UserRepository

logger = get_logger(__name__)

SESSION_USER_KEY = "user_id"


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller for the current request."""

    id: int
    username: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.INSTRUCTOR)

    @classmethod
    def from_user(cls, user: User) -> Principal:
        return cls(id=user.id, username=user.username, role=user.role)


def hash_password(password: str) -> str:
    rounds = get_settings().password_hash_rounds
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("auth.password_hash.invalid")
        return False


def login_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def logout_session(request: Request) -> None:
    request.session.clear()


async def get_optional_principal(request: Request, db: DbSession) -> Principal | None:
    """Principal for the session user, or None when anonymous.

    A session pointing at a deleted or non-active account is cleared.
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None

    user = await UserRepository(db).get_by_id(int(user_id))
    if user is None or user.status != UserStatus.ACTIVE:
        request.session.clear()
        set_wide_event_fields(auth_error="stale_session")
        return None

    principal = Principal.from_user(user)
    request.state.user_id = principal.id
    set_wide_event_fields(user_id=principal.id, user_role=principal.role.value)
    return principal


async def require_auth(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
) -> Principal:
    """Raises 401 if not authenticated."""
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def require_roles(
    *roles: UserRole,
) -> Callable[[Principal], Coroutine[Any, Any, Principal]]:
    """Dependency factory: 403 unless the principal holds one of ``roles``."""
    allowed = frozenset(roles)

    async def _check(
        principal: Annotated[Principal, Depends(require_auth)],
    ) -> Principal:
        if principal.role not in allowed:
            set_wide_event_fields(auth_error="forbidden_role")
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return principal

    return _check


CurrentPrincipal = Annotated[Principal, Depends(require_auth)]
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]
StaffPrincipal = Annotated[
    Principal, Depends(require_roles(UserRole.INSTRUCTOR, UserRole.ADMIN))
]
AdminPrincipal = Annotated[Principal, Depends(require_roles(UserRole.ADMIN))]
