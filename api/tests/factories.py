"""Factory Boy factories for generating test data.

Factories provide a clean way to create test objects with sensible defaults.
Override specific fields as needed in tests.

Usage:
    # In-memory only (pure function tests)
    session = WorkoutSessionFactory.build(calories_burned=2000)

    # Persisted
    user = await create_async(UserFactory, db_session)
    machine = await create_async(MachineFactory, db_session)
    session = await create_async(
        WorkoutSessionFactory, db_session, user=user, machine=machine
    )
"""

from datetime import UTC, datetime, timedelta

import factory
from faker import Faker
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    HealthStatus,
    Machine,
    MachineStatus,
    User,
    UserRole,
    UserStatus,
    WorkoutSession,
)

fake = Faker()

# Password used by accounts created through the auth service in route tests
DEFAULT_PASSWORD = "s3cret-pass"

# Placeholder hash; factory-built users never log in
PASSWORD_HASH = "$2b$04$ipIXHjx9PnR5iT/V3Kzmf.4QWcmm/lX1rm0kWqvn86RwI3mUsffEm"


# =============================================================================
# Async Factory Helpers
# =============================================================================


async def create_async(
    factory_class: type[factory.Factory], db: AsyncSession, **kwargs
):
    """Create an instance using a factory and persist to database.

    Usage:
        user = await create_async(UserFactory, db_session, username="alice")
    """
    instance = factory_class.build(**kwargs)
    db.add(instance)
    await db.flush()
    return instance


async def create_batch_async(
    factory_class: type[factory.Factory], db: AsyncSession, size: int, **kwargs
):
    """Create multiple instances and persist to database."""
    instances = factory_class.build_batch(size, **kwargs)
    db.add_all(instances)
    await db.flush()
    return instances


# =============================================================================
# User Factories
# =============================================================================


class UserFactory(factory.Factory):
    """Factory for creating member accounts."""

    class Meta:
        model = User

    username = factory.Sequence(lambda n: f"member{n}")
    email = factory.LazyAttribute(lambda obj: f"{obj.username}@example.com")
    password_hash = PASSWORD_HASH
    first_name = factory.LazyAttribute(lambda _: fake.first_name())
    last_name = factory.LazyAttribute(lambda _: fake.last_name())
    role = UserRole.MEMBER
    status = UserStatus.ACTIVE
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))
    updated_at = factory.LazyFunction(lambda: datetime.now(UTC))


class InstructorFactory(UserFactory):
    username = factory.Sequence(lambda n: f"instructor{n}")
    role = UserRole.INSTRUCTOR


class AdminFactory(UserFactory):
    username = factory.Sequence(lambda n: f"admin{n}")
    role = UserRole.ADMIN


# =============================================================================
# Machine Factory
# =============================================================================


class MachineFactory(factory.Factory):
    """Factory for creating Machine instances."""

    class Meta:
        model = Machine

    name = factory.Sequence(lambda n: f"Treadmill-{n:03d}")
    type = "Treadmill"
    status = MachineStatus.ACTIVE
    location = "Cardio Zone"
    performance_score = 100.0
    health_status = HealthStatus.EXCELLENT
    maintenance_frequency = 30
    max_usage_hours = 8
    daily_usage_limit = 12
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))


# =============================================================================
# Workout Session Factory
# =============================================================================


class WorkoutSessionFactory(factory.Factory):
    """A passing 30 minute treadmill run that started an hour ago.

    ``user`` and ``machine`` default to None; pass both the relationship and
    the id (or just the relationship for persisted objects) as needed.
    """

    class Meta:
        model = WorkoutSession

    user = None
    machine = None
    user_id = factory.LazyAttribute(lambda obj: obj.user.id if obj.user else None)
    machine_id = factory.LazyAttribute(
        lambda obj: obj.machine.id if obj.machine else None
    )
    start_time = factory.LazyFunction(
        lambda: datetime.now(UTC).replace(microsecond=0) - timedelta(hours=1)
    )
    duration = timedelta(minutes=30)
    end_time = factory.LazyAttribute(
        lambda obj: obj.start_time + obj.duration
        if obj.start_time and obj.duration
        else None
    )
    calories_burned = 300
    avg_heart_rate = 140
    distance = 5.0
    avg_speed = 10.0
    data_quality_flag = True
    quality_issues = None
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))
