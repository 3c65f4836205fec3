from __future__ import annotations

import inspect
from collections.abc import AsyncGenerator

import pytest

from compass_backend.db import dispose_engine_cache, get_engine


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
async def _dispose_engine_cache_per_test(  # pyright: ignore[reportUnusedFunction]
    anyio_backend: object,  # noqa: ARG001
) -> AsyncGenerator[None, None]:
    # Dispose the cached AsyncEngine (aiosqlite worker thread) before the
    # per-test event loop is torn down.
    _ = anyio_backend
    yield

    try:
        engine = get_engine()
    except Exception:
        engine = None

    if engine is not None:
        try:
            result = engine.dispose()
            if inspect.isawaitable(result):
                await result
        except Exception:
            # Best-effort: fall back to sync pool dispose below.
            pass

    dispose_engine_cache()
    get_engine.cache_clear()


def pytest_sessionfinish(session: object, exitstatus: int) -> None:  # noqa: ARG001
    # Safety net: close cached engine so CI can exit cleanly.
    _ = session, exitstatus
    dispose_engine_cache()
