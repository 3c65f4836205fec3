from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any, cast

import httpx
import pytest
from alembic import command
from alembic.config import Config

from compass_backend.config import settings
from compass_backend.db import reset_engine_cache, session_scope
from compass_backend.main import app  # pyright: ignore[reportMissingTypeStubs]
from compass_backend.models import Course, Exam, Note, User

ADMIN = {"Authorization": "Bearer tok-admin"}
STUDENT = {"Authorization": "Bearer tok-student"}


def _make_async_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


def _alembic_upgrade_head() -> None:
    cfg = Config("alembic.ini")
    command.upgrade(cfg, "head")


@pytest.fixture
def db(tmp_path: Path) -> Iterator[None]:
    old_db = settings.database_url
    try:
        settings.database_url = f"sqlite:///{tmp_path / 'test-courses.db'}"
        reset_engine_cache()
        _alembic_upgrade_head()
        yield
    finally:
        settings.database_url = old_db


async def _seed() -> dict[str, int]:
    async with session_scope() as session:
        admin = User(
            name="Admin",
            email="admin@example.com",
            password_hash="x",
            api_token="tok-admin",
            is_admin=True,
        )
        student = User(
            name="Student", email="student@example.com", password_hash="x", api_token="tok-student"
        )
        idle = User(name="Idle", email="idle@example.com", password_hash="x")
        session.add(admin)
        session.add(student)
        session.add(idle)
        await session.commit()
        for u in (admin, student, idle):
            await session.refresh(u)

        session.add(
            Course(
                id="c1",
                title="Data Structures",
                description="Arrays to graphs",
                instructor="R. Rao",
                category="CSE",
                duration="8 weeks",
                thumbnail="https://img.test/ds.png",
                price=499,
                tags=["dsa"],
                created_by=int(admin.id or 0),
            )
        )
        session.add(
            Note(
                id="n1",
                title="Graphs",
                note_type="Other",
                description="BFS and DFS",
                download_count=3,
                external_id="Notes/n1.pdf",
                retrieval_url="https://blobs.test/Notes/n1.pdf",
                uploaded_by=int(admin.id or 0),
            )
        )
        session.add(
            Exam(
                id="e1",
                name="GATE",
                full_name="Graduate Aptitude Test in Engineering",
                category="Engineering",
                level="National",
                exam_date="Feb",
                application_deadline="Oct",
                eligibility="B.Tech",
                pattern="MCQ",
                colleges=100,
                description="PG entrance",
                subjects=["CS"],
            )
        )
        await session.commit()
        return {
            "admin": int(admin.id or 0),
            "student": int(student.id or 0),
            "idle": int(idle.id or 0),
        }


@pytest.mark.anyio
async def test_course_get_like_and_admin_delete(db: None):
    _ = db
    await _seed()

    async with _make_async_client() as client:
        r = await client.get("/api/v1/courses/c1")
        assert r.status_code == 200, r.text
        course = cast(dict[str, Any], r.json())
        assert course["title"] == "Data Structures"
        assert course["level"] == "Beginner"
        assert course["likes_count"] == 0

        r = await client.post("/api/v1/courses/c1/like", headers=STUDENT)
        assert r.json() == {"active": True, "count": 1}
        r = await client.post("/api/v1/courses/c1/like", headers=ADMIN)
        assert r.json() == {"active": True, "count": 2}
        r = await client.post("/api/v1/courses/c1/like", headers=STUDENT)
        assert r.json() == {"active": False, "count": 1}

        r = await client.post("/api/v1/courses/c1/like")
        assert r.status_code == 401

        r = await client.delete("/api/v1/admin/courses/c1", headers=STUDENT)
        assert r.status_code == 403

        r = await client.delete("/api/v1/admin/courses/c1", headers=ADMIN)
        assert r.status_code == 204

        r = await client.get("/api/v1/courses/c1")
        assert r.status_code == 404
        assert r.json()["error"] == "not_found"

        r = await client.delete("/api/v1/admin/courses/c1", headers=ADMIN)
        assert r.status_code == 404


@pytest.mark.anyio
async def test_admin_stats(db: None):
    _ = db
    await _seed()

    async with _make_async_client() as client:
        r = await client.get("/api/v1/admin/stats", headers=STUDENT)
        assert r.status_code == 403

        r = await client.get("/api/v1/admin/stats", headers=ADMIN)
        assert r.status_code == 200, r.text
        stats = cast(dict[str, Any], r.json())
        assert stats["total_users"] == 2
        assert stats["total_courses"] == 1
        assert stats["total_notes"] == 1
        assert stats["total_blogs"] == 0
        assert stats["total_exams"] == 1
        assert stats["total_downloads"] == 3
        assert {u["email"] for u in stats["recent_users"]} == {
            "student@example.com",
            "idle@example.com",
        }
        assert [c["title"] for c in stats["recent_courses"]] == ["Data Structures"]


@pytest.mark.anyio
async def test_admin_delete_user(db: None):
    _ = db
    ids = await _seed()

    async with _make_async_client() as client:
        r = await client.delete(f"/api/v1/admin/users/{ids['idle']}", headers=STUDENT)
        assert r.status_code == 403

        r = await client.delete(f"/api/v1/admin/users/{ids['admin']}", headers=ADMIN)
        assert r.status_code == 400
        assert r.json()["error"] == "validation_failed"

        r = await client.delete(f"/api/v1/admin/users/{ids['idle']}", headers=ADMIN)
        assert r.status_code == 204

        r = await client.delete(f"/api/v1/admin/users/{ids['idle']}", headers=ADMIN)
        assert r.status_code == 404

        r = await client.get("/api/v1/admin/stats", headers=ADMIN)
        assert r.json()["total_users"] == 1

    # A user who owns content cannot be removed.
    async with session_scope() as session:
        other_admin = User(
            name="Other",
            email="other@example.com",
            password_hash="x",
            api_token="tok-other",
            is_admin=True,
        )
        session.add(other_admin)
        await session.commit()

    async with _make_async_client() as client:
        r = await client.delete(
            f"/api/v1/admin/users/{ids['admin']}", headers={"Authorization": "Bearer tok-other"}
        )
        assert r.status_code == 409
        body = cast(dict[str, Any], r.json())
        assert body["error"] == "conflict"
        assert body["details"] == {"owned": 2}


@pytest.mark.anyio
async def test_admin_toggle_user_status(db: None):
    _ = db
    ids = await _seed()

    async with _make_async_client() as client:
        url = f"/api/v1/admin/users/{ids['student']}/toggle-status"
        r = await client.patch(url, headers=ADMIN)
        assert r.status_code == 200, r.text
        assert r.json() == {"id": ids["student"], "is_active": False}

        r = await client.get("/api/v1/auth/me", headers=STUDENT)
        assert r.status_code == 403

        r = await client.patch(url, headers=ADMIN)
        assert r.json()["is_active"] is True
        r = await client.get("/api/v1/auth/me", headers=STUDENT)
        assert r.status_code == 200

        r = await client.patch(f"/api/v1/admin/users/{ids['admin']}/toggle-status", headers=ADMIN)
        assert r.status_code == 400
        r = await client.patch("/api/v1/admin/users/9999/toggle-status", headers=ADMIN)
        assert r.status_code == 404
