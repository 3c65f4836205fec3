from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.config import settings
from compass_backend.db_urls import ensure_sqlite_parent_dir, normalize_database_url_for_async

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def get_engine() -> AsyncEngine:
    """Engine for the current ``settings.database_url``.

    Cached; call ``reset_engine_cache()`` after changing the URL (tests do).
    """
    raw = settings.database_url
    ensure_sqlite_parent_dir(raw)
    return create_async_engine(normalize_database_url_for_async(raw), echo=False, pool_pre_ping=True)


def dispose_engine_cache() -> None:
    if get_engine.cache_info().currsize:
        try:
            get_engine().sync_engine.dispose()
        except SQLAlchemyError:
            logger.debug("engine dispose failed", exc_info=True)
    get_engine.cache_clear()


reset_engine_cache = dispose_engine_cache


def _session_maker() -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: routers serialize rows after the service committed.
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    async with _session_maker()() as session:
        yield session


async def get_session() -> AsyncIterator[AsyncSession]:
    async with session_scope() as session:
        yield session
