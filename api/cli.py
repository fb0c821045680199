#!/usr/bin/env python3
"""CLI for Twende Fitness API management tasks.

Usage:
    python -m cli <command>

Commands:
    migrate               Run database migrations
    create-tables         Create tables straight from the models (SQLite dev)
    seed-defaults         Create default accounts and machines if missing
    revalidate-sessions   Re-run data quality validation on every session
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_MACHINES = (
    {"name": "Treadmill-001", "type": "Treadmill", "location": "Cardio Zone"},
    {"name": "Exercise-Bike-001", "type": "Exercise Bike", "location": "Cardio Zone"},
    {"name": "Elliptical-001", "type": "Elliptical", "location": "Cardio Zone"},
    {"name": "Rowing-Machine-001", "type": "Rowing Machine", "location": "Cardio Zone"},
)


async def _with_session(work: Callable[[AsyncSession], Awaitable[None]]) -> None:
    from core.database import create_engine, create_session_maker, dispose_engine

    engine = create_engine()
    session_maker = create_session_maker(engine)
    try:
        async with session_maker() as session:
            await work(session)
            await session.commit()
    finally:
        await dispose_engine(engine)


def cmd_migrate() -> int:
    """Run database migrations."""
    from alembic import command
    from alembic.config import Config

    api_dir = Path(__file__).resolve().parent
    cfg = Config(str(api_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(api_dir / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(cfg, "head")
    logger.info("Migrations complete")
    return 0


def cmd_create_tables() -> int:
    """Create missing tables from the models without running migrations."""
    from core.database import create_engine, create_tables, dispose_engine

    async def run() -> None:
        engine = create_engine()
        try:
            await create_tables(engine)
        finally:
            await dispose_engine(engine)

    asyncio.run(run())
    logger.info("Tables created")
    return 0


async def _seed(db: AsyncSession) -> None:
    from core.config import get_settings
    from models import UserRole
    from repositories import MachineRepository, UserRepository
    from services.machines_service import create_machine
    from services.users_service import create_user

    settings = get_settings()
    accounts = (
        ("admin", UserRole.ADMIN, settings.default_admin_password),
        ("instructor", UserRole.INSTRUCTOR, settings.default_instructor_password),
        ("member", UserRole.MEMBER, settings.default_member_password),
    )

    users = UserRepository(db)
    for username, role, password in accounts:
        if not password:
            logger.warning("No password configured for %s, skipping", username)
            continue
        if await users.get_by_username(username):
            logger.info("User %s already exists", username)
            continue
        await create_user(
            db,
            username=username,
            password=password,
            email=f"{username}@twende.fitness",
            first_name=username.capitalize(),
            last_name=None,
            role=role,
        )
        logger.info("Created %s user %s", role.value, username)

    machines = MachineRepository(db)
    for fields in DEFAULT_MACHINES:
        if await machines.get_by_name(fields["name"]):
            continue
        await create_machine(db, fields)
        logger.info("Created machine %s", fields["name"])


def cmd_seed_defaults() -> int:
    """Create default accounts and machines."""
    asyncio.run(_with_session(_seed))
    logger.info("Seeding complete")
    return 0


def cmd_revalidate_sessions() -> int:
    """Re-run data quality validation over all stored workout sessions."""
    from services.workout_sessions_service import revalidate_all_sessions

    async def run(db: AsyncSession) -> None:
        summary = await revalidate_all_sessions(db)
        logger.info(
            "Checked %d sessions: %d passed, %d with issues",
            summary.checked,
            summary.passed,
            summary.failed,
        )

    asyncio.run(_with_session(run))
    return 0


COMMANDS: dict[str, tuple[str, Callable[[], int]]] = {
    "migrate": ("Run database migrations", cmd_migrate),
    "create-tables": ("Create tables from the models", cmd_create_tables),
    "seed-defaults": ("Create default accounts and machines", cmd_seed_defaults),
    "revalidate-sessions": (
        "Re-run data quality validation on every workout session",
        cmd_revalidate_sessions,
    ),
}


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Twende Fitness API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    for name, (help_text, _) in COMMANDS.items():
        subparsers.add_parser(name, help=help_text)

    args = parser.parse_args()

    if args.command not in COMMANDS:
        parser.print_help()
        return 1
    return COMMANDS[args.command][1]()


if __name__ == "__main__":
    sys.exit(main())
