from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from types import SimpleNamespace
from typing import Any

import pytest

from compass_backend.errors import (
    DuplicateSubmission,
    Forbidden,
    NotFound,
    PersistenceFailed,
    RoutingFailed,
    StoreUnavailable,
    UploadFailed,
    ValidationFailed,
)
from compass_backend.integrations.storage.blob_store import (
    DOCUMENTS_STORE,
    BlobStore,
    BlobStoreRegistry,
    StoredBlob,
)
from compass_backend.models import utc_now
from compass_backend.services.notes_service import NOTE_ENTITY
from compass_backend.services.upsert_coordinator import (
    Actor,
    AttachmentUpsertCoordinator,
    UploadPayload,
)

ADMIN = Actor(user_id=1, is_admin=True)


class _FakeStore:
    def __init__(self, name: str = "fake") -> None:
        self.name = name
        self.ready = True
        self.objects: dict[str, bytes] = {}
        self.put_calls: list[dict[str, Any]] = []
        self.fail_put = False
        self.fail_delete = False
        self._seq = 0

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def start(self) -> None:
        self.ready = True

    async def put(
        self,
        data: bytes,
        *,
        name: str,
        size_hint: int,
        content_type: str | None,
        folder: str,
    ) -> StoredBlob:
        if not self.ready:
            raise StoreUnavailable("fake store is not initialized")
        self.put_calls.append({"name": name, "size_hint": size_hint, "folder": folder})
        if self.fail_put:
            raise RuntimeError("connection reset")
        self._seq += 1
        key = f"{folder}/{self._seq}-{name}"
        self.objects[key] = data
        return StoredBlob(external_id=key, retrieval_url=f"https://blobs.test/{key}")

    async def delete(self, external_id: str) -> bool:
        if self.fail_delete:
            raise RuntimeError("delete refused")
        return self.objects.pop(external_id, None) is not None


class _FakeRepo:
    label = "note"

    def __init__(self) -> None:
        self.rows: dict[str, SimpleNamespace] = {}
        self.fail_create = False
        self.fail_update = False
        self.fail_delete = False

    async def find_recent(self, *, owner_id: int, title: str, window_seconds: int) -> Any | None:
        since = utc_now() - timedelta(seconds=window_seconds)
        for row in self.rows.values():
            if row.uploaded_by == owner_id and row.title == title and row.created_at >= since:
                return row
        return None

    async def get(self, record_id: str) -> Any:
        row = self.rows.get(record_id)
        if row is None:
            raise NotFound("note not found")
        return row

    async def create(self, fields: Mapping[str, object]) -> Any:
        if self.fail_create:
            raise PersistenceFailed("failed to create note")
        values: dict[str, object] = {
            "external_id": None,
            "retrieval_url": None,
            "original_name": None,
            "byte_size": None,
            "mime_type": None,
            "blob_backend": None,
            "created_at": utc_now(),
        }
        values.update(fields)
        row = SimpleNamespace(**values)
        self.rows[str(fields["id"])] = row
        return row

    async def update(self, record_id: str, fields: Mapping[str, object]) -> Any:
        row = await self.get(record_id)
        if self.fail_update:
            raise PersistenceFailed("failed to update note")
        for key, value in fields.items():
            setattr(row, key, value)
        return row

    async def delete(self, record_id: str) -> bool:
        if self.fail_delete:
            raise PersistenceFailed("failed to delete note")
        return self.rows.pop(record_id, None) is not None


def _coordinator(
    repo: _FakeRepo, stores: dict[str, BlobStore], *, window: int = 300
) -> AttachmentUpsertCoordinator:
    return AttachmentUpsertCoordinator(
        repository=repo,
        stores=BlobStoreRegistry(stores),
        entity=NOTE_ENTITY,
        duplicate_window_seconds=window,
    )


def _college_fields(**overrides: object) -> dict[str, object]:
    fields: dict[str, object] = {
        "title": "DBMS unit 1",
        "note_type": "College",
        "description": "Normalization and ER diagrams",
        "branch": "CSE",
        "year": "2",
        "subject": "DBMS",
        "tags": '["dbms", "sql"]',
    }
    fields.update(overrides)
    return fields


def _pdf(name: str = "unit1.pdf", data: bytes = b"%PDF-1.4 body") -> UploadPayload:
    return UploadPayload(data=data, filename=name, content_type="application/pdf")


@pytest.mark.anyio
async def test_create_uploads_then_persists_blob_reference():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())

    assert row.external_id in store.objects
    assert row.retrieval_url == f"https://blobs.test/{row.external_id}"
    assert row.original_name == "unit1.pdf"
    assert row.byte_size == len(b"%PDF-1.4 body")
    assert row.blob_backend == DOCUMENTS_STORE
    assert row.uploaded_by == 1
    assert row.tags == ["dbms", "sql"]
    assert row.exam_name is None
    assert store.put_calls[0]["folder"] == "Notes"


@pytest.mark.anyio
async def test_create_routes_by_extension():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    await c.upsert_attachment_record(
        actor=ADMIN, fields=_college_fields(title="slides"), upload=_pdf("deck.PPTX")
    )
    await c.upsert_attachment_record(
        actor=ADMIN, fields=_college_fields(title="doc"), upload=_pdf("essay.docx")
    )
    assert [call["folder"] for call in store.put_calls] == ["PPT", "Docs"]


@pytest.mark.anyio
async def test_validation_failure_happens_before_any_upload():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    with pytest.raises(ValidationFailed) as excinfo:
        await c.upsert_attachment_record(
            actor=ADMIN, fields=_college_fields(branch=""), upload=_pdf()
        )
    assert excinfo.value.field == "branch"
    assert store.put_calls == []
    assert repo.rows == {}


@pytest.mark.anyio
async def test_create_requires_file():
    c = _coordinator(_FakeRepo(), {DOCUMENTS_STORE: _FakeStore()})
    with pytest.raises(ValidationFailed) as excinfo:
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=None)
    assert excinfo.value.field == "file"


@pytest.mark.anyio
async def test_empty_upload_is_rejected():
    store = _FakeStore()
    c = _coordinator(_FakeRepo(), {DOCUMENTS_STORE: store})
    with pytest.raises(ValidationFailed):
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf(data=b""))
    assert store.put_calls == []


@pytest.mark.anyio
async def test_persist_failure_compensates_new_blob():
    store, repo = _FakeStore(), _FakeRepo()
    repo.fail_create = True
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    with pytest.raises(PersistenceFailed) as excinfo:
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())

    assert excinfo.value.blob_cleanup_failed is False
    assert excinfo.value.details == {"blob_cleanup_failed": False}
    assert len(store.put_calls) == 1
    assert store.objects == {}
    assert repo.rows == {}


@pytest.mark.anyio
async def test_persist_failure_reports_failed_compensation():
    store, repo = _FakeStore(), _FakeRepo()
    repo.fail_create = True
    store.fail_delete = True
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    with pytest.raises(PersistenceFailed) as excinfo:
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())

    assert excinfo.value.blob_cleanup_failed is True
    # The orphan stays behind; nothing retries.
    assert len(store.objects) == 1


@pytest.mark.anyio
async def test_upload_failure_writes_no_record():
    store, repo = _FakeStore(), _FakeRepo()
    store.fail_put = True
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    with pytest.raises(UploadFailed):
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    assert repo.rows == {}


@pytest.mark.anyio
async def test_store_not_ready_fails_fast():
    store, repo = _FakeStore(), _FakeRepo()
    store.ready = False
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    with pytest.raises(StoreUnavailable):
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    assert repo.rows == {}


@pytest.mark.anyio
async def test_missing_store_is_a_routing_failure():
    repo = _FakeRepo()
    c = _coordinator(repo, {"images": _FakeStore()})

    with pytest.raises(RoutingFailed):
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    assert repo.rows == {}


@pytest.mark.anyio
async def test_duplicate_guard_within_window():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})

    first = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    with pytest.raises(DuplicateSubmission):
        await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    assert len(store.put_calls) == 1

    # Another owner may reuse the title.
    other = Actor(user_id=2, is_admin=True)
    await c.upsert_attachment_record(actor=other, fields=_college_fields(), upload=_pdf())

    # Outside the window the same owner may reuse it too.
    first.created_at = utc_now() - timedelta(seconds=301)
    await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    assert len(repo.rows) == 3


@pytest.mark.anyio
async def test_update_without_upload_preserves_blob_reference():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    before = (row.external_id, row.retrieval_url, row.original_name, row.byte_size)

    updated = await c.upsert_attachment_record(
        actor=ADMIN, record_id=row.id, fields={"title": "DBMS unit 1 (rev)", "year": ""}
    )

    assert updated.title == "DBMS unit 1 (rev)"
    # Empty strings count as not supplied.
    assert updated.year == "2"
    assert (updated.external_id, updated.retrieval_url, updated.original_name, updated.byte_size) == before
    assert len(store.put_calls) == 1
    assert before[0] in store.objects


@pytest.mark.anyio
async def test_update_with_upload_replaces_and_cleans_old_blob():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    old_id = row.external_id

    updated = await c.upsert_attachment_record(
        actor=ADMIN, record_id=row.id, fields={}, upload=_pdf("unit1-v2.pdf", b"v2")
    )

    assert updated.external_id != old_id
    assert updated.original_name == "unit1-v2.pdf"
    assert old_id not in store.objects
    assert store.objects[updated.external_id] == b"v2"


@pytest.mark.anyio
async def test_update_keeps_old_blob_when_persist_fails():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    old_id = row.external_id

    repo.fail_update = True
    with pytest.raises(PersistenceFailed) as excinfo:
        await c.upsert_attachment_record(
            actor=ADMIN, record_id=row.id, fields={}, upload=_pdf("v2.pdf", b"v2")
        )

    assert excinfo.value.blob_cleanup_failed is False
    assert list(store.objects) == [old_id]
    assert repo.rows[row.id].external_id == old_id


@pytest.mark.anyio
async def test_old_blob_cleanup_failure_does_not_fail_update():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())
    old_id = row.external_id

    store.fail_delete = True
    updated = await c.upsert_attachment_record(
        actor=ADMIN, record_id=row.id, fields={}, upload=_pdf("v2.pdf", b"v2")
    )

    assert updated.external_id != old_id
    assert old_id in store.objects


@pytest.mark.anyio
async def test_discriminator_change_to_other_clears_variant_fields():
    repo = _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: _FakeStore()})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())

    updated = await c.upsert_attachment_record(
        actor=ADMIN, record_id=row.id, fields={"note_type": "Other", "branch": "ECE"}
    )

    assert updated.note_type == "Other"
    assert updated.branch is None
    assert updated.year is None
    assert updated.subject is None
    assert updated.exam_name is None


@pytest.mark.anyio
async def test_discriminator_change_revalidates_new_variant():
    repo = _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: _FakeStore()})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())

    with pytest.raises(ValidationFailed) as excinfo:
        await c.upsert_attachment_record(
            actor=ADMIN, record_id=row.id, fields={"note_type": "Government Exam"}
        )
    assert excinfo.value.field == "exam_name"
    assert repo.rows[row.id].note_type == "College"

    updated = await c.upsert_attachment_record(
        actor=ADMIN,
        record_id=row.id,
        fields={"note_type": "Government Exam", "exam_name": "GATE"},
    )
    assert updated.note_type == "Government Exam"
    # Subject carries over from the stored record.
    assert updated.subject == "DBMS"
    assert updated.branch is None
    assert updated.year is None


@pytest.mark.anyio
async def test_update_missing_record_is_not_found():
    store = _FakeStore()
    c = _coordinator(_FakeRepo(), {DOCUMENTS_STORE: store})
    with pytest.raises(NotFound):
        await c.upsert_attachment_record(
            actor=ADMIN, record_id="missing", fields={}, upload=_pdf()
        )
    assert store.put_calls == []


@pytest.mark.anyio
async def test_non_admin_is_rejected_before_any_side_effect():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    with pytest.raises(Forbidden):
        await c.upsert_attachment_record(
            actor=Actor(user_id=5, is_admin=False), fields=_college_fields(), upload=_pdf()
        )
    assert store.put_calls == []
    assert repo.rows == {}


@pytest.mark.anyio
async def test_delete_removes_blob_then_record():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())

    await c.delete_attachment_record(actor=ADMIN, record_id=row.id)

    assert store.objects == {}
    assert repo.rows == {}
    with pytest.raises(NotFound):
        await c.delete_attachment_record(actor=ADMIN, record_id=row.id)


@pytest.mark.anyio
async def test_delete_tolerates_missing_or_failing_blob():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    a = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(title="a"), upload=_pdf())
    b = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(title="b"), upload=_pdf())

    store.objects.pop(a.external_id)
    await c.delete_attachment_record(actor=ADMIN, record_id=a.id)

    store.fail_delete = True
    await c.delete_attachment_record(actor=ADMIN, record_id=b.id)
    assert repo.rows == {}


@pytest.mark.anyio
async def test_delete_record_failure_after_blob_removal_is_hard_failure():
    store, repo = _FakeStore(), _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: store})
    row = await c.upsert_attachment_record(actor=ADMIN, fields=_college_fields(), upload=_pdf())

    repo.fail_delete = True
    with pytest.raises(PersistenceFailed):
        await c.delete_attachment_record(actor=ADMIN, record_id=row.id)

    assert store.objects == {}
    assert row.id in repo.rows


@pytest.mark.anyio
async def test_other_note_drops_supplied_variant_fields_on_create():
    c = _coordinator(_FakeRepo(), {DOCUMENTS_STORE: _FakeStore()})
    row = await c.upsert_attachment_record(
        actor=ADMIN,
        fields=_college_fields(note_type="Other", exam_name="CAT"),
        upload=_pdf(),
    )
    assert (row.branch, row.year, row.subject, row.exam_name) == (None, None, None, None)
    assert row.external_id and row.retrieval_url


@pytest.mark.anyio
async def test_government_exam_to_college_requires_branch_and_year():
    repo = _FakeRepo()
    c = _coordinator(repo, {DOCUMENTS_STORE: _FakeStore()})
    row = await c.upsert_attachment_record(
        actor=ADMIN,
        fields={
            "title": "Polity",
            "note_type": "Government Exam",
            "description": "Constitution basics",
            "subject": "Polity",
            "exam_name": "UPSC",
        },
        upload=_pdf(),
    )

    with pytest.raises(ValidationFailed) as excinfo:
        await c.upsert_attachment_record(
            actor=ADMIN, record_id=row.id, fields={"note_type": "College", "year": "1"}
        )
    assert excinfo.value.field == "branch"

    updated = await c.upsert_attachment_record(
        actor=ADMIN,
        record_id=row.id,
        fields={"note_type": "College", "branch": "Civil", "year": "1", "exam_name": "UPSC"},
    )
    assert updated.exam_name is None
    assert (updated.branch, updated.year, updated.subject) == ("Civil", "1", "Polity")
