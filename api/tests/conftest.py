"""Pytest configuration and shared fixtures.

This module provides:
- A throwaway SQLite database per test (file-backed under tmp_path)
- Async session fixtures for repository/service tests
- FastAPI app and HTTP client fixtures for route tests
- Helpers to create accounts and log in through the real auth routes
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "true"
os.environ["REQUIRE_HTTPS"] = "false"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["MIGRATE_ON_STARTUP"] = "false"

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from core.config import clear_settings_cache
from core.database import (
    create_engine,
    create_session_maker,
    create_tables,
    dispose_engine,
)
from core.wide_event import clear_wide_event, init_wide_event
from models import UserRole
from tests.factories import DEFAULT_PASSWORD

CreateAccount = Callable[..., Awaitable[int]]
Login = Callable[..., Awaitable[AsyncClient]]


@pytest.fixture(autouse=True)
def setup_wide_event() -> Generator[None]:
    """Initialize wide_event context for all tests.

    In production this is done by RequestTimingMiddleware; services write
    to it unconditionally.
    """
    init_wide_event()
    yield
    clear_wide_event()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Fresh database with all tables, disposed after the test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await dispose_engine(engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session for repository and service tests.

    Repositories only flush, so nothing is committed and the database is
    discarded with the engine.
    """
    session_maker = create_session_maker(test_engine)
    async with session_maker() as session:
        yield session
        await session.rollback()


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def app(test_engine: AsyncEngine) -> AsyncGenerator[FastAPI]:
    """FastAPI app wired to the test database.

    ASGITransport does not run the lifespan, so the state it would set up
    is assigned here.
    """
    from main import app as fastapi_app

    fastapi_app.state.engine = test_engine
    fastapi_app.state.session_maker = create_session_maker(test_engine)
    fastapi_app.state.init_done = True
    fastapi_app.state.init_error = None

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Anonymous HTTP client."""
    async with _client(app) as ac:
        yield ac


# =============================================================================
# Auth Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def create_account(app: FastAPI) -> CreateAccount:
    """Create a committed user and return its id."""
    from services.users_service import create_user

    async def _create(
        username: str,
        role: UserRole = UserRole.MEMBER,
        *,
        password: str = DEFAULT_PASSWORD,
        first_name: str | None = None,
        last_name: str | None = "Tester",
    ) -> int:
        async with app.state.session_maker() as session:
            user = await create_user(
                session,
                username=username,
                password=password,
                email=f"{username}@example.com",
                first_name=first_name or username.capitalize(),
                last_name=last_name,
                role=role,
            )
            await session.commit()
            return user.id

    return _create


@pytest_asyncio.fixture(scope="function")
async def login_as(
    app: FastAPI, create_account: CreateAccount
) -> AsyncGenerator[Login]:
    """Create an account and return a client logged in as it.

    Each call gets its own client so several roles can be active in one test.
    """
    clients: list[AsyncClient] = []

    async def _login(username: str, role: UserRole = UserRole.MEMBER) -> AsyncClient:
        await create_account(username, role)
        ac = _client(app)
        clients.append(ac)
        response = await ac.post(
            "/api/auth/login",
            json={"username": username, "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 200, response.text
        return ac

    yield _login

    for ac in clients:
        await ac.aclose()


@pytest_asyncio.fixture(scope="function")
async def seed_machine(app: FastAPI) -> Callable[..., Awaitable[int]]:
    """Create a committed machine and return its id."""
    from services.machines_service import create_machine

    async def _seed(name: str = "Treadmill-001", type: str = "Treadmill") -> int:
        async with app.state.session_maker() as session:
            machine = await create_machine(session, {"name": name, "type": type})
            await session.commit()
            return machine.id

    return _seed


# =============================================================================
# Utility Fixtures
# =============================================================================


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio backend for anyio (required by httpx)."""
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
