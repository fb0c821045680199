"""Gym machine management, maintenance and usage statistics."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from models import HealthStatus, Machine, MachineStatus
from repositories.machine_repository import MachineRepository
from repositories.workout_session_repository import WorkoutSessionRepository
from services.errors import ConflictError, NotFoundError

logger = get_logger(__name__)

DEFAULT_MAINTENANCE_FREQUENCY_DAYS = 30

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "type",
        "location",
        "model",
        "manufacturer",
        "serial_number",
        "maintenance_frequency",
        "max_usage_hours",
        "daily_usage_limit",
        "purchase_cost",
        "purchase_date",
    }
)


class MachineNotFoundError(NotFoundError):
    def __init__(self, machine_id: int) -> None:
        self.machine_id = machine_id
        super().__init__(f"Machine {machine_id} not found")


class MachineConflictError(ConflictError):
    """Duplicate machine name, or delete blocked by recorded sessions."""


@dataclass(frozen=True, slots=True)
class MachinePerformance:
    machine_id: int
    machine_name: str
    total_sessions: int
    total_usage_hours: float
    avg_calories: int
    performance_score: float
    health_status: HealthStatus
    days_until_maintenance: int | None


def health_status_for(
    last_maintenance: datetime | None, *, now: datetime | None = None
) -> HealthStatus:
    """Condition from days since last maintenance.

    <=7 EXCELLENT, <=30 GOOD, <=60 FAIR, otherwise POOR. Never maintained
    is POOR.
    """
    if last_maintenance is None:
        return HealthStatus.POOR
    days = ((now or datetime.now(UTC)) - last_maintenance).days
    if days <= 7:
        return HealthStatus.EXCELLENT
    if days <= 30:
        return HealthStatus.GOOD
    if days <= 60:
        return HealthStatus.FAIR
    return HealthStatus.POOR


def days_until_maintenance(
    next_maintenance: datetime | None, now: datetime
) -> int | None:
    """Whole days until the next service, truncated toward zero."""
    if next_maintenance is None:
        return None
    return int((next_maintenance - now).total_seconds() / 86400)


def _frequency(machine: Machine) -> timedelta:
    return timedelta(
        days=machine.maintenance_frequency or DEFAULT_MAINTENANCE_FREQUENCY_DAYS
    )


def _stamp_maintenance(machine: Machine, now: datetime) -> None:
    machine.last_maintenance = now
    machine.next_maintenance = now + _frequency(machine)
    machine.health_status = health_status_for(now, now=now)


async def get_machine(db: AsyncSession, machine_id: int) -> Machine:
    machine = await MachineRepository(db).get_by_id(machine_id)
    if machine is None:
        raise MachineNotFoundError(machine_id)
    return machine


async def list_machines(db: AsyncSession) -> list[Machine]:
    return await MachineRepository(db).list_all()


async def create_machine(
    db: AsyncSession,
    fields: Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> Machine:
    """Create a machine. ``name`` must be unique."""
    repo = MachineRepository(db)
    if await repo.name_exists(fields["name"]):
        raise MachineConflictError("Machine name already exists")

    now = now or datetime.now(UTC)
    machine = Machine(
        status=MachineStatus.ACTIVE,
        health_status=HealthStatus.EXCELLENT,
        performance_score=100.0,
        maintenance_frequency=DEFAULT_MAINTENANCE_FREQUENCY_DAYS,
        max_usage_hours=8,
        daily_usage_limit=12,
        created_at=now,
    )
    for name, value in fields.items():
        if name in UPDATABLE_FIELDS and value is not None:
            setattr(machine, name, value)
    machine.next_maintenance = now + _frequency(machine)

    machine = await repo.add(machine)
    logger.info("machine.created", machine_id=machine.id, name=machine.name)
    return machine


async def update_machine(
    db: AsyncSession, machine_id: int, fields: Mapping[str, Any]
) -> Machine:
    repo = MachineRepository(db)
    machine = await get_machine(db, machine_id)

    new_name = fields.get("name")
    if new_name and await repo.name_exists(new_name, exclude_id=machine_id):
        raise MachineConflictError("Machine name already exists")

    for name, value in fields.items():
        if name in UPDATABLE_FIELDS:
            setattr(machine, name, value)
    await repo.save(machine)
    logger.info("machine.updated", machine_id=machine_id, fields=sorted(fields))
    return machine


async def delete_machine(db: AsyncSession, machine_id: int) -> None:
    """Refused while any workout session references the machine."""
    machine = await get_machine(db, machine_id)
    sessions = await WorkoutSessionRepository(db).count_for_machine(machine_id)
    if sessions:
        raise MachineConflictError(
            f"Cannot delete machine with {sessions} recorded workout sessions"
        )
    await MachineRepository(db).delete(machine)
    logger.info("machine.deleted", machine_id=machine_id)


async def update_machine_status(
    db: AsyncSession,
    machine_id: int,
    status: MachineStatus,
    *,
    now: datetime | None = None,
) -> Machine:
    """Change status. Entering MAINTENANCE counts as a maintenance visit."""
    machine = await get_machine(db, machine_id)
    machine.status = status
    if status == MachineStatus.MAINTENANCE:
        _stamp_maintenance(machine, now or datetime.now(UTC))
    await MachineRepository(db).save(machine)
    logger.info("machine.status.updated", machine_id=machine_id, status=status.value)
    return machine


async def perform_maintenance(
    db: AsyncSession, machine_id: int, *, now: datetime | None = None
) -> Machine:
    """Record completed maintenance and return the machine to service."""
    machine = await get_machine(db, machine_id)
    _stamp_maintenance(machine, now or datetime.now(UTC))
    machine.status = MachineStatus.ACTIVE
    await MachineRepository(db).save(machine)
    logger.info("machine.maintenance.performed", machine_id=machine_id)
    return machine


async def get_machine_usage_count(db: AsyncSession, machine_id: int) -> int:
    await get_machine(db, machine_id)
    return await WorkoutSessionRepository(db).count_for_machine(machine_id)


async def get_machine_performance(
    db: AsyncSession, machine_id: int, *, now: datetime | None = None
) -> MachinePerformance:
    """Usage hours come from recorded durations; sessions without one add 0."""
    now = now or datetime.now(UTC)
    machine = await get_machine(db, machine_id)
    sessions = await WorkoutSessionRepository(db).list_for_machine(machine_id)

    total_seconds = sum(
        s.duration.total_seconds() for s in sessions if s.duration is not None
    )
    calories = [s.calories_burned for s in sessions if s.calories_burned is not None]

    return MachinePerformance(
        machine_id=machine.id,
        machine_name=machine.name,
        total_sessions=len(sessions),
        total_usage_hours=round(total_seconds / 3600, 1),
        avg_calories=round(sum(calories) / len(calories)) if calories else 0,
        performance_score=machine.performance_score,
        health_status=health_status_for(machine.last_maintenance, now=now),
        days_until_maintenance=days_until_maintenance(machine.next_maintenance, now),
    )
