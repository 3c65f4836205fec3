from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from compass_backend.config import settings
from compass_backend.db import dispose_engine_cache
from compass_backend.error_handlers import register_error_handlers
from compass_backend.integrations.storage.blob_store import build_blob_stores
from compass_backend.middleware import RequestIdMiddleware
from compass_backend.routers import admin, auth, blogs, courses, exams, files, notes, users


logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

logger = logging.getLogger(__name__)
for msg in settings.security_warnings():
    logger.warning("SECURITY WARNING: %s", msg)


@asynccontextmanager
async def _lifespan(app_: FastAPI):
    # Blob store sessions are process-wide; they must be ready before any upload.
    stores = build_blob_stores(settings)
    await stores.start_all()
    app_.state.blob_stores = stores
    yield
    # Ensure sqlite/aiosqlite worker threads don't keep the process alive.
    dispose_engine_cache()


app = FastAPI(title=settings.app_name, lifespan=_lifespan)

app.add_middleware(RequestIdMiddleware)
register_error_handlers(app)

origins = settings.cors_origins_list()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Cookies are never used; bearer tokens only.
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
    )


@app.get(f"{settings.api_prefix.rstrip('/')}/health")
def health():
    return {
        "status": "OK",
        "message": f"{settings.app_name} is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(users.router, prefix=settings.api_prefix)
app.include_router(notes.router, prefix=settings.api_prefix)
app.include_router(blogs.router, prefix=settings.api_prefix)
app.include_router(courses.router, prefix=settings.api_prefix)
app.include_router(exams.router, prefix=settings.api_prefix)
app.include_router(files.router, prefix=settings.api_prefix)
app.include_router(admin.router, prefix=settings.api_prefix)


@app.api_route(
    f"{settings.api_prefix.rstrip('/')}/{{path:path}}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    include_in_schema=False,
)
async def _api_fallback_not_found(path: str) -> None:  # noqa: ARG001
    raise HTTPException(status_code=404, detail="route not found")
