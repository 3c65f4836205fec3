"""Serves blobs kept by the local storage backend."""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from compass_backend.integrations.storage.blob_store import BlobStoreRegistry, get_blob_stores
from compass_backend.integrations.storage.local_storage import LocalBlobStore

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{key:path}")
async def get_file(
    key: str,
    stores: BlobStoreRegistry = Depends(get_blob_stores),
) -> FileResponse:
    for name in stores.names():
        store = stores.get(name)
        if not isinstance(store, LocalBlobStore):
            continue
        try:
            path = store.resolve_path(key)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid key")
        if path.is_file():
            media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            return FileResponse(path, media_type=media_type)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="file not found")
