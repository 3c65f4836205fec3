from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

import compass_backend.models  # noqa: F401  # registers users/notes/blogs/exams on SQLModel.metadata
from compass_backend.config import settings
from compass_backend.db_urls import ensure_sqlite_parent_dir, normalize_database_url_for_alembic

config = context.config
if config.config_file_name is not None:
    # Keep application loggers alive when migrations run inside the test process.
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _sync_database_url() -> str:
    # An explicit DATABASE_URL in the process environment beats settings/.env.
    raw = os.environ.get("DATABASE_URL") or settings.database_url
    ensure_sqlite_parent_dir(raw)
    return normalize_database_url_for_alembic(raw)


def _run(**configure_kwargs: object) -> None:
    context.configure(target_metadata=SQLModel.metadata, compare_type=True, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _run(url=_sync_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = _sync_database_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        _run(connection=connection)
    engine.dispose()
