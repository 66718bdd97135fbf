"""Tests for engine creation and connectivity checks."""

import pytest
from sqlalchemy import text

from studyhub.errors import StorageError
from studyhub.services.database import (
    check_database_connectivity,
    get_engine,
    get_session_factory,
)


async def test_sqlite_enforces_foreign_keys(engine):
    async with engine.connect() as conn:
        result = await conn.execute(text("PRAGMA foreign_keys"))
        assert result.scalar_one() == 1


def test_get_engine_requires_database_url(mock_settings):
    mock_settings.database_url = ""
    with pytest.raises(StorageError, match="not configured"):
        get_engine()


def test_engine_and_factory_are_shared(mock_settings):
    assert get_engine() is get_engine()
    assert get_session_factory() is get_session_factory()


async def test_connectivity_ok(mock_settings):
    assert await check_database_connectivity() is True
    await get_engine().dispose()


async def test_connectivity_without_database(mock_settings):
    mock_settings.database_url = ""
    assert await check_database_connectivity() is False
