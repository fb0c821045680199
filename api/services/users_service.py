"""User accounts: registration, login and administration."""

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from core.auth import hash_password, verify_password
from models import User, UserRole, UserStatus
from repositories.user_repository import UserRepository
from services.errors import ConflictError, NotFoundError

logger = get_logger(__name__)

DASHBOARD_PATHS: dict[UserRole, str] = {
    UserRole.ADMIN: "/admin-dashboard",
    UserRole.INSTRUCTOR: "/instructor-dashboard",
    UserRole.MEMBER: "/member-dashboard",
}


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class UserConflictError(ConflictError):
    """Raised when a username or email is already registered."""


class InvalidCredentialsError(Exception):
    pass


class AccountInactiveError(Exception):
    def __init__(self, status: UserStatus) -> None:
        self.status = status
        super().__init__(f"Account is {status.value.lower()}")


@dataclass(frozen=True, slots=True)
class UserCounts:
    total: int
    members: int
    instructors: int
    admins: int
    active: int


def dashboard_path_for(role: UserRole) -> str:
    return DASHBOARD_PATHS[role]


async def register_member(
    db: AsyncSession,
    *,
    username: str,
    password: str,
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """Create a MEMBER account. Self-registration never grants staff roles."""
    return await create_user(
        db,
        username=username,
        password=password,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=UserRole.MEMBER,
    )


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    password: str,
    email: str,
    first_name: str | None,
    last_name: str | None,
    role: UserRole,
) -> User:
    repo = UserRepository(db)
    if await repo.username_exists(username):
        raise UserConflictError("Username already exists")
    if await repo.email_exists(email):
        raise UserConflictError("Email already exists")

    user = await repo.create(
        username=username,
        password_hash=hash_password(password),
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    logger.info("user.created", user_id=user.id, role=role.value)
    return user


async def authenticate(
    db: AsyncSession,
    username: str,
    password: str,
    *,
    now: datetime | None = None,
) -> User:
    """Verify credentials and stamp ``last_login``.

    Raises:
        InvalidCredentialsError: Unknown username or wrong password.
        AccountInactiveError: The account is INACTIVE or SUSPENDED.
    """
    repo = UserRepository(db)
    user = await repo.get_by_username(username)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid username or password")
    if user.status != UserStatus.ACTIVE:
        raise AccountInactiveError(user.status)

    await repo.touch_last_login(user, now or datetime.now(UTC))
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def list_users(db: AsyncSession) -> list[User]:
    return await UserRepository(db).list_all()


async def list_members(db: AsyncSession) -> list[User]:
    return await UserRepository(db).list_by_role(UserRole.MEMBER)


async def update_user_status(
    db: AsyncSession, user_id: int, status: UserStatus
) -> User:
    repo = UserRepository(db)
    user = await get_user(db, user_id)
    await repo.set_status(user, status)
    logger.info("user.status.updated", user_id=user_id, status=status.value)
    return user


async def count_users(db: AsyncSession) -> UserCounts:
    repo = UserRepository(db)
    by_role = await repo.count_by_role()
    return UserCounts(
        total=sum(by_role.values()),
        members=by_role.get(UserRole.MEMBER, 0),
        instructors=by_role.get(UserRole.INSTRUCTOR, 0),
        admins=by_role.get(UserRole.ADMIN, 0),
        active=await repo.count_by_status(UserStatus.ACTIVE),
    )
