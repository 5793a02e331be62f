from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import Any, Dict

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from pagevault.core.config import settings
from pagevault.models import Base

config = context.config

if config.config_file_name is not None:
	fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Migrations run through psycopg (v3, async capable) on PostgreSQL and aiosqlite on SQLite
_URL_REWRITES = (
	("postgresql+asyncpg://", "postgresql+psycopg://"),
	("postgresql+psycopg2://", "postgresql+psycopg://"),
	("postgresql://", "postgresql+psycopg://"),
	("postgres://", "postgresql+psycopg://"),
	("sqlite:///", "sqlite+aiosqlite:///"),
)


def migration_url() -> str:
	url = settings.DATABASE_URL
	if not url:
		raise RuntimeError("DATABASE_URL is not configured; cannot run migrations.")
	for prefix, replacement in _URL_REWRITES:
		if url.startswith(prefix):
			return replacement + url[len(prefix):]
	return url


def _configure(**kwargs: Any) -> None:
	url = config.get_main_option("sqlalchemy.url") or ""
	context.configure(
		target_metadata=target_metadata,
		# SQLite cannot ALTER constraints in place; batch mode rebuilds the table
		render_as_batch=url.startswith("sqlite"),
		compare_type=True,
		compare_server_default=True,
		**kwargs,
	)


config.set_main_option("sqlalchemy.url", migration_url())


def run_migrations_offline() -> None:
	_configure(
		url=config.get_main_option("sqlalchemy.url"),
		literal_binds=True,
		dialect_opts={"paramstyle": "named"},
	)
	with context.begin_transaction():
		context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
	_configure(connection=connection)
	with context.begin_transaction():
		context.run_migrations()


async def run_migrations_online() -> None:
	section: Dict[str, Any] = config.get_section(config.config_ini_section, {})
	section["sqlalchemy.url"] = config.get_main_option("sqlalchemy.url")
	engine = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
	try:
		async with engine.connect() as connection:
			await connection.run_sync(do_run_migrations)
	finally:
		await engine.dispose()


if context.is_offline_mode():
	run_migrations_offline()
else:
	asyncio.run(run_migrations_online())
