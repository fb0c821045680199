"""User repository for database operations."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import User, UserRole, UserStatus
from repositories.utils import log_slow_query


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("get_user_by_id")
    async def get_by_id(self, user_id: int) -> User | None:
        return await self.db.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def username_exists(self, username: str) -> bool:
        result = await self.db.execute(
            select(User.id).where(User.username == username).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def email_exists(self, email: str) -> bool:
        result = await self.db.execute(
            select(User.id).where(User.email == email).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_all(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    async def list_by_role(self, role: UserRole) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.role == role).order_by(User.id)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(User))
        return result.scalar_one()

    async def count_by_role(self) -> dict[UserRole, int]:
        result = await self.db.execute(
            select(User.role, func.count()).group_by(User.role)
        )
        return {role: count for role, count in result.all()}

    async def count_by_status(self, status: UserStatus) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(User).where(User.status == status)
        )
        return result.scalar_one()

    async def create(
        self,
        *,
        username: str,
        password_hash: str,
        email: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: UserRole = UserRole.MEMBER,
    ) -> User:
        """Does NOT commit. Caller owns the transaction."""
        user = User(
            username=username,
            password_hash=password_hash,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            status=UserStatus.ACTIVE,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def set_status(self, user: User, status: UserStatus) -> User:
        user.status = status
        await self.db.flush()
        return user

    async def touch_last_login(self, user: User, when: datetime) -> None:
        user.last_login = when
        await self.db.flush()
