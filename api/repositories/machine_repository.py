"""Machine repository for database operations."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Machine, MachineStatus
from repositories.utils import log_slow_query


class MachineRepository:
    """Repository for Machine database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("get_machine_by_id")
    async def get_by_id(self, machine_id: int) -> Machine | None:
        return await self.db.get(Machine, machine_id)

    async def get_by_name(self, name: str) -> Machine | None:
        result = await self.db.execute(select(Machine).where(Machine.name == name))
        return result.scalar_one_or_none()

    async def name_exists(self, name: str, *, exclude_id: int | None = None) -> bool:
        query = select(Machine.id).where(Machine.name == name)
        if exclude_id is not None:
            query = query.where(Machine.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_all(self) -> list[Machine]:
        result = await self.db.execute(select(Machine).order_by(Machine.name))
        return list(result.scalars().all())

    async def list_by_status(self, status: MachineStatus) -> list[Machine]:
        result = await self.db.execute(
            select(Machine).where(Machine.status == status).order_by(Machine.name)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Machine))
        return result.scalar_one()

    async def count_by_status(self, status: MachineStatus) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Machine).where(Machine.status == status)
        )
        return result.scalar_one()

    async def add(self, machine: Machine) -> Machine:
        """Does NOT commit. Caller owns the transaction."""
        self.db.add(machine)
        await self.db.flush()
        return machine

    async def save(self, machine: Machine) -> Machine:
        await self.db.flush()
        return machine

    async def delete(self, machine: Machine) -> None:
        await self.db.delete(machine)
        await self.db.flush()
