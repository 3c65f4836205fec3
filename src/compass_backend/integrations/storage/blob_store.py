from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request

from compass_backend.config import Settings
from compass_backend.errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Logical store names recorded on each row (Note.blob_backend / Blog.blob_backend).
DOCUMENTS_STORE = "documents"
IMAGES_STORE = "images"

DRIVE_FOLDERS = ("Notes", "PPT", "Docs", "Thumbnails")

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoredBlob:
    external_id: str
    retrieval_url: str


class BlobStore(Protocol):
    name: str

    @property
    def is_ready(self) -> bool: ...

    async def start(self) -> None: ...

    async def put(
        self,
        data: bytes,
        *,
        name: str,
        size_hint: int,
        content_type: str | None,
        folder: str,
    ) -> StoredBlob: ...

    async def delete(self, external_id: str) -> bool: ...


class SessionState:
    """Ready/not-ready lifecycle shared by the store adapters.

    A store only accepts put/delete after ``start()`` completed; earlier calls
    fail fast with StoreUnavailable instead of blocking.
    """

    name: str = "store"

    def __init__(self) -> None:
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def _mark_ready(self) -> None:
        self._ready = True

    def _require_ready(self) -> None:
        if not self._ready:
            raise StoreUnavailable(f"{self.name} store is not initialized")


def build_storage_key(*, folder: str, name: str) -> str:
    safe = _UNSAFE_NAME_CHARS.sub("_", (name or "").strip()).strip("._") or "file"
    return f"{folder.strip('/')}/{uuid.uuid4().hex}-{safe[:120]}"


class BlobStoreRegistry:
    """Process-wide blob store sessions, keyed by logical store name."""

    def __init__(self, stores: dict[str, BlobStore]) -> None:
        self._stores = dict(stores)

    def get(self, name: str | None) -> BlobStore | None:
        if not name:
            return None
        return self._stores.get(name)

    def names(self) -> list[str]:
        return list(self._stores)

    async def start_all(self) -> None:
        # The same adapter may back several logical names; start it once.
        started: set[int] = set()
        for name, store in self._stores.items():
            if id(store) in started:
                continue
            started.add(id(store))
            try:
                await store.start()
                logger.info("blob store ready name=%s backend=%s", name, store.name)
            except Exception:
                # Leave the store not ready; requests fail fast with StoreUnavailable.
                logger.error("blob store failed to start name=%s", name, exc_info=True)


def build_blob_stores(cfg: Settings) -> BlobStoreRegistry:
    from .local_storage import LocalBlobStore

    local: LocalBlobStore | None = None

    def _local() -> LocalBlobStore:
        nonlocal local
        if local is None:
            local = LocalBlobStore(
                root_dir=cfg.local_storage_dir,
                public_url_prefix=cfg.public_base_url.rstrip("/") + cfg.api_prefix.rstrip("/") + "/files",
            )
        return local

    stores: dict[str, BlobStore] = {}

    if cfg.drive_configured():
        from .s3_storage import DriveBlobStore

        stores[DOCUMENTS_STORE] = DriveBlobStore(
            endpoint_url=cfg.drive_endpoint_url,
            region=cfg.drive_region,
            bucket=cfg.drive_bucket,
            access_key_id=cfg.drive_access_key_id,
            secret_access_key=cfg.drive_secret_access_key,
            force_path_style=cfg.drive_force_path_style,
            public_base_url=cfg.drive_public_base_url,
            link_expires_seconds=cfg.drive_link_expires_seconds,
            folders=DRIVE_FOLDERS,
        )
    else:
        stores[DOCUMENTS_STORE] = _local()

    if cfg.cloudinary_configured():
        from .cloudinary_storage import CloudinaryBlobStore

        stores[IMAGES_STORE] = CloudinaryBlobStore(
            cloud_name=cfg.cloudinary_cloud_name,
            api_key=cfg.cloudinary_api_key,
            api_secret=cfg.cloudinary_api_secret,
        )
    else:
        stores[IMAGES_STORE] = _local()

    return BlobStoreRegistry(stores)


def get_blob_stores(request: Request) -> BlobStoreRegistry:
    stores = getattr(request.app.state, "blob_stores", None)
    if stores is None:
        raise StoreUnavailable("blob stores are not initialized")
    return stores
