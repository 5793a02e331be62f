from __future__ import annotations

from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pagevault.core.config import settings

_engine: Optional[AsyncEngine] = None
_SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def _ensure_async_url(url: str) -> str:
	"""Ensure a PostgreSQL SQLAlchemy URL uses the asyncpg driver.

	Handles common provider formats like:
	- postgresql://...
	- postgres://...
	- postgresql+psycopg://... (or +psycopg2)

	Any other URL (already async, or e.g. sqlite+aiosqlite) is returned unchanged.
	"""
	if url.startswith("postgresql+asyncpg://"):
		return url

	# Normalize short scheme used by some providers (e.g. "postgres://")
	if url.startswith("postgres://"):
		return url.replace("postgres://", "postgresql+asyncpg://", 1)

	if url.startswith("postgresql://"):
		return url.replace("postgresql://", "postgresql+asyncpg://", 1)

	if url.startswith("postgresql+psycopg2://"):
		return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
	if url.startswith("postgresql+psycopg://"):
		return url.replace("postgresql+psycopg://", "postgresql+asyncpg://", 1)

	return url


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
	"""SQLite ignores FOREIGN KEY clauses unless enabled per connection."""

	@event.listens_for(engine.sync_engine, "connect")
	def _set_pragma(dbapi_connection, connection_record):  # noqa: ARG001
		cursor = dbapi_connection.cursor()
		cursor.execute("PRAGMA foreign_keys=ON")
		cursor.close()


def init_engine_and_session() -> None:
	global _engine, _SessionLocal
	if _engine is not None:
		return
	if not settings.DATABASE_URL:
		raise RuntimeError("DATABASE_URL is not configured. Set it in the environment or .env file.")
	database_url = _ensure_async_url(settings.DATABASE_URL)
	_engine = create_async_engine(database_url, pool_pre_ping=True, future=True)
	if database_url.startswith("sqlite"):
		enable_sqlite_foreign_keys(_engine)
	_SessionLocal = async_sessionmaker(bind=_engine, expire_on_commit=False)


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
	if _SessionLocal is None:
		init_engine_and_session()
	assert _SessionLocal is not None
	return _SessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
	async with get_sessionmaker()() as session:
		yield session
