"""Fixtures for metadata-store integration tests.

SQLite tests always run. PostgreSQL tests run only when SDCAT_DATABASE__URL
points at a PostgreSQL database.
"""

import os
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from sdcat.config import DatabaseConfig
from sdcat.infrastructure.persistence.database import (
    create_db_engine,
    create_session_factory,
    init_db,
)
from sdcat.infrastructure.persistence.uow import SQLAlchemyUnitOfWorkFactory


def _get_pg_url() -> str:
    url = os.environ.get("SDCAT_DATABASE__URL", "")
    if "postgresql" not in url:
        pytest.skip("SDCAT_DATABASE__URL not set to PostgreSQL")
    return url


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path):
    """Per-test SQLite file database with the schema created."""
    engine = create_db_engine(
        DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'sdcat.db'}")
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow_factory(sqlite_engine: AsyncEngine) -> SQLAlchemyUnitOfWorkFactory:
    return SQLAlchemyUnitOfWorkFactory(create_session_factory(sqlite_engine), lock_timeout=0.5)


@pytest_asyncio.fixture
async def pg_engine():
    """Per-test async engine pointing at the PostgreSQL test database."""
    engine = create_db_engine(DatabaseConfig(url=_get_pg_url()))
    await init_db(engine)
    yield engine

    async with engine.begin() as conn:
        await conn.execute(text("TRUNCATE TABLE sd_meta_validators, sd_meta_records CASCADE"))
    await engine.dispose()


@pytest.fixture
def pg_uow_factory(pg_engine: AsyncEngine) -> SQLAlchemyUnitOfWorkFactory:
    return SQLAlchemyUnitOfWorkFactory(create_session_factory(pg_engine), lock_timeout=0.2)
