"""Tests for core.database module.

Covers the module-specific logic that isn't exercised by integration tests:
- UTCDateTime bind/result conversion per dialect
- get_db commit/rollback semantics
- Pool status for non-queue pools
"""

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql, sqlite

from core.database import (
    UTCDateTime,
    check_db_connection,
    create_engine,
    get_db,
    get_pool_status,
)

EAT = timezone(timedelta(hours=3))


@pytest.mark.unit
class TestUTCDateTime:
    def setup_method(self):
        self.column_type = UTCDateTime()

    def test_sqlite_stores_naive_utc(self):
        value = datetime(2026, 5, 1, 9, 0, tzinfo=EAT)

        stored = self.column_type.process_bind_param(value, sqlite.dialect())

        assert stored == datetime(2026, 5, 1, 6, 0)
        assert stored.tzinfo is None

    def test_postgres_keeps_aware_utc(self):
        value = datetime(2026, 5, 1, 9, 0, tzinfo=EAT)

        stored = self.column_type.process_bind_param(value, postgresql.dialect())

        assert stored == datetime(2026, 5, 1, 6, 0, tzinfo=UTC)
        assert stored.utcoffset() == timedelta(0)

    def test_naive_input_is_taken_as_utc(self):
        stored = self.column_type.process_bind_param(
            datetime(2026, 5, 1, 6, 0), postgresql.dialect()
        )

        assert stored == datetime(2026, 5, 1, 6, 0, tzinfo=UTC)

    def test_result_is_tagged_utc(self):
        loaded = self.column_type.process_result_value(
            datetime(2026, 5, 1, 6, 0), sqlite.dialect()
        )

        assert loaded.tzinfo is UTC

    def test_none_passes_through(self):
        assert self.column_type.process_bind_param(None, sqlite.dialect()) is None
        assert self.column_type.process_result_value(None, sqlite.dialect()) is None


class TestGetDbDependency:
    """Verify get_db commits on success and rolls back on failure."""

    def _make_mock_request(self):
        mock_session = AsyncMock(
            spec_set=["commit", "rollback", "__aenter__", "__aexit__"],
        )
        mock_session.commit = AsyncMock()
        mock_session.rollback = AsyncMock()
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=False)

        mock_session_maker = MagicMock()
        mock_session_maker.return_value = mock_session

        mock_request = MagicMock()
        mock_request.app.state.session_maker = mock_session_maker

        return mock_request, mock_session

    async def test_commit_on_success(self):
        mock_request, mock_session = self._make_mock_request()

        gen = get_db(mock_request)
        session = await gen.__anext__()
        assert session is mock_session

        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    async def test_rollback_on_exception(self):
        mock_request, mock_session = self._make_mock_request()

        gen = get_db(mock_request)
        await gen.__anext__()

        with pytest.raises(ValueError):
            await gen.athrow(ValueError("boom"))

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    async def test_rollback_failure_keeps_original_error(self):
        mock_request, mock_session = self._make_mock_request()
        mock_session.rollback.side_effect = RuntimeError("connection lost")

        gen = get_db(mock_request)
        await gen.__anext__()

        with pytest.raises(ValueError, match="original"):
            await gen.athrow(ValueError("original"))


class TestEngine:
    async def test_memory_sqlite_is_reachable(self):
        engine = create_engine("sqlite+aiosqlite:///:memory:")
        try:
            await check_db_connection(engine)
            assert get_pool_status(engine) is None
        finally:
            await engine.dispose()
