"""Shared fixtures: a repository backed by a throwaway SQLite file."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from backend.database import create_tables, make_sessionmaker
from backend.repository import Repository


@pytest_asyncio.fixture
async def repository(tmp_path: Path) -> AsyncIterator[Repository]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield Repository(make_sessionmaker(engine))
    await engine.dispose()
