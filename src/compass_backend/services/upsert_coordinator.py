"""Create-or-update of records whose payload includes an externally stored blob.

The blob is uploaded first, then the record is written. If the write fails the
freshly uploaded blob is deleted again (best effort). On update, the previous
blob is deleted only after the new state is durable. Nothing here retries, and
a crash between upload and write leaves an orphaned blob behind.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from compass_backend.errors import (
    CompassError,
    DuplicateSubmission,
    Forbidden,
    NotFound,
    PersistenceFailed,
    RoutingFailed,
    UploadFailed,
    ValidationFailed,
)
from compass_backend.integrations.storage.blob_store import BlobStore, BlobStoreRegistry, StoredBlob
from compass_backend.integrations.storage.routing import BlobRouter

logger = logging.getLogger(__name__)


class AttachmentRepository(Protocol):
    label: str

    async def find_recent(self, *, owner_id: int, title: str, window_seconds: int) -> Any | None: ...

    async def get(self, record_id: str) -> Any: ...

    async def create(self, fields: Mapping[str, object]) -> Any: ...

    async def update(self, record_id: str, fields: Mapping[str, object]) -> Any: ...

    async def delete(self, record_id: str) -> bool: ...


@dataclass(frozen=True)
class Actor:
    user_id: int
    is_admin: bool


@dataclass(frozen=True)
class UploadPayload:
    data: bytes
    filename: str
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class AttachmentEntity:
    """What the coordinator needs to know about one entity type."""

    label: str
    editable_fields: tuple[str, ...]
    # Pure per-field conversions (tags, dates, discriminator); may raise ValidationFailed.
    normalize: Callable[[Mapping[str, object]], dict[str, object]]
    # Whole-record rules over the merged field set; returns canonical fields.
    validate: Callable[[Mapping[str, object]], dict[str, object]]
    router: BlobRouter
    upload_field: str = "file"
    require_upload_on_create: bool = True


@dataclass(frozen=True)
class _BlobRef:
    external_id: str | None
    retrieval_url: str | None
    original_name: str | None
    backend: str | None


def _blob_ref(record: Any) -> _BlobRef:
    return _BlobRef(
        external_id=getattr(record, "external_id", None),
        retrieval_url=getattr(record, "retrieval_url", None),
        original_name=getattr(record, "original_name", None),
        backend=getattr(record, "blob_backend", None),
    )


def _is_supplied(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class AttachmentUpsertCoordinator:
    def __init__(
        self,
        *,
        repository: AttachmentRepository,
        stores: BlobStoreRegistry,
        entity: AttachmentEntity,
        duplicate_window_seconds: int,
    ) -> None:
        self._repository = repository
        self._stores = stores
        self._entity = entity
        self._duplicate_window_seconds = duplicate_window_seconds

    def _require_admin(self, actor: Actor) -> None:
        if not actor.is_admin:
            raise Forbidden("admin access required")

    def _resolve_store(self, filename: str | None) -> tuple[BlobStore, str, str]:
        route = self._entity.router.resolve(filename)
        store = self._stores.get(route.store)
        if store is None:
            raise RoutingFailed(f"blob store {route.store!r} is not configured")
        return store, route.store, route.folder

    def _store_for_existing(self, ref: _BlobRef) -> BlobStore | None:
        if ref.backend:
            return self._stores.get(ref.backend)
        # Rows written before the backend was recorded: route by the stored name.
        try:
            return self._resolve_store(ref.original_name)[0]
        except RoutingFailed:
            return None

    async def _discard_blob(self, store: BlobStore | None, external_id: str, *, reason: str) -> bool:
        """Best-effort delete; True when the blob is gone afterwards."""
        if store is None:
            logger.warning(
                "%s blob cleanup skipped, no store external_id=%s reason=%s",
                self._entity.label,
                external_id,
                reason,
            )
            return False
        try:
            removed = await store.delete(external_id)
        except Exception:
            logger.warning(
                "%s blob cleanup failed external_id=%s reason=%s",
                self._entity.label,
                external_id,
                reason,
                exc_info=True,
            )
            return False
        if not removed:
            logger.info(
                "%s blob already absent external_id=%s reason=%s",
                self._entity.label,
                external_id,
                reason,
            )
        return True

    async def upsert_attachment_record(
        self,
        *,
        actor: Actor,
        fields: Mapping[str, object],
        upload: UploadPayload | None = None,
        record_id: str | None = None,
    ) -> Any:
        self._require_admin(actor)
        entity = self._entity

        # 1. Validate.
        supplied = {
            k: v for k, v in fields.items() if k in entity.editable_fields and _is_supplied(v)
        }
        supplied = entity.normalize(supplied)
        if upload is not None and not upload.data:
            raise ValidationFailed(entity.upload_field, "empty file")

        existing: Any | None = None
        old_ref: _BlobRef | None = None
        if record_id is None:
            if upload is None and entity.require_upload_on_create:
                raise ValidationFailed(entity.upload_field, "required")
            record_fields = entity.validate(supplied)

            # 2. Duplicate guard (create only).
            title = str(record_fields["title"])
            recent = await self._repository.find_recent(
                owner_id=actor.user_id,
                title=title,
                window_seconds=self._duplicate_window_seconds,
            )
            if recent is not None:
                raise DuplicateSubmission(
                    f"a {entity.label} with this title was recently created; "
                    "wait or use a different title"
                )
        else:
            existing = await self._repository.get(record_id)
            # Snapshot before update(): the repository mutates the loaded row in place.
            old_ref = _blob_ref(existing)
            current = {name: getattr(existing, name, None) for name in entity.editable_fields}
            record_fields = entity.validate({**current, **supplied})

        persist_fields: dict[str, object] = dict(record_fields)
        stored: StoredBlob | None = None
        store: BlobStore | None = None

        if upload is not None:
            # 3. Route.
            store, store_name, folder = self._resolve_store(upload.filename)

            # 4. Upload. Nothing is persisted yet, so no compensation on failure.
            try:
                stored = await store.put(
                    upload.data,
                    name=upload.filename,
                    size_hint=upload.size,
                    content_type=upload.content_type,
                    folder=folder,
                )
            except CompassError:
                raise
            except Exception as e:
                logger.warning("%s upload failed name=%s", entity.label, upload.filename, exc_info=True)
                raise UploadFailed(f"failed to store {entity.upload_field}") from e

            persist_fields.update(
                external_id=stored.external_id,
                retrieval_url=stored.retrieval_url,
                original_name=upload.filename,
                byte_size=upload.size,
                mime_type=upload.content_type,
                blob_backend=store_name,
            )

        # 5. Persist, compensating on failure.
        try:
            if record_id is None:
                persist_fields["id"] = str(uuid.uuid4())
                persist_fields["uploaded_by"] = actor.user_id
                record = await self._repository.create(persist_fields)
            else:
                record = await self._repository.update(record_id, persist_fields)
        except Exception as e:
            cleanup_failed = False
            if stored is not None:
                cleaned = await self._discard_blob(store, stored.external_id, reason="persist failed")
                cleanup_failed = not cleaned
            logger.warning(
                "%s persist failed id=%s blob_cleanup_failed=%s",
                entity.label,
                record_id,
                cleanup_failed,
            )
            if isinstance(e, CompassError) and not isinstance(e, PersistenceFailed):
                raise
            raise PersistenceFailed(
                f"failed to save {entity.label}", blob_cleanup_failed=cleanup_failed
            ) from e

        # 6. Old blob cleanup (update only); the new state is already durable.
        if (
            stored is not None
            and old_ref is not None
            and old_ref.external_id
            and old_ref.external_id != stored.external_id
        ):
            await self._discard_blob(
                self._store_for_existing(old_ref), old_ref.external_id, reason="replaced"
            )

        # 7.
        return record

    async def delete_attachment_record(self, *, actor: Actor, record_id: str) -> None:
        self._require_admin(actor)
        record = await self._repository.get(record_id)
        ref = _blob_ref(record)

        blob_deleted = False
        if ref.external_id:
            blob_deleted = await self._discard_blob(
                self._store_for_existing(ref), ref.external_id, reason="record deleted"
            )

        try:
            deleted = await self._repository.delete(record_id)
        except Exception as e:
            if blob_deleted:
                logger.error(
                    "%s delete failed after its blob was removed; needs manual reconciliation "
                    "id=%s external_id=%s",
                    self._entity.label,
                    record_id,
                    ref.external_id,
                )
            if isinstance(e, PersistenceFailed):
                raise
            raise PersistenceFailed(f"failed to delete {self._entity.label}") from e
        if not deleted:
            raise NotFound(f"{self._entity.label} not found")
