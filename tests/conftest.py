"""
Shared fixtures: every test gets its own SQLite database file.
"""
import asyncio
import os

# Must be set before db_config builds its engine
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///./test_versioning.db")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from db_config import Base, get_async_db
import models  # noqa: F401 - registers tables on Base.metadata
from services.versioning_service import ContentVersioningService


def _make_engine(path):
    # NullPool: connections never outlive the event loop that opened them
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


async def _create_tables(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def engine(tmp_path):
    engine = _make_engine(tmp_path / "versions.db")
    await _create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(db_session):
    return ContentVersioningService(db_session)


@pytest.fixture
async def scene(service):
    """An empty content item with no versions."""
    return await service.create_content_item(title="The Lighthouse")


@pytest.fixture
def client(tmp_path):
    from app import app

    engine = _make_engine(tmp_path / "api.db")
    asyncio.run(_create_tables(engine))
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)

    async def override_get_async_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_get_async_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
