"""
Pytest configuration and shared fixtures.

Each test gets its own SQLite database file (foreign keys enabled) and its
own upload directory, so tests never share state.
"""
import os

os.environ.setdefault("ENABLE_APP_INSIGHTS", "false")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./pagevault-test.db")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from pagevault.core.config import settings
from pagevault.core.db import enable_sqlite_foreign_keys, get_db
from pagevault.models import Base, UserRole

from factories import create_document, create_user


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "MIN_UPLOAD_BYTES", 0)
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_EMAIL", "")
    return settings


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def client(sessionmaker):
    from pagevault.main import app

    async def override_get_db():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin(db):
    return await create_user(db, email="admin@example.com", username="admin", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def reader(db):
    return await create_user(db, email="reader@example.com", username="reader")


@pytest_asyncio.fixture
async def document(db):
    return await create_document(db)
