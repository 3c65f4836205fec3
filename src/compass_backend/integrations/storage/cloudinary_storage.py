from __future__ import annotations

import io
import uuid

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from starlette.concurrency import run_in_threadpool

from compass_backend.errors import UploadFailed

from .blob_store import SessionState, StoredBlob


class CloudinaryBlobStore(SessionState):
    """Images backend. ``external_id`` is the Cloudinary public id."""

    name = "cloudinary"

    def __init__(self, *, cloud_name: str, api_key: str, api_secret: str) -> None:
        super().__init__()
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret

    async def start(self) -> None:
        cloudinary.config(
            cloud_name=self._cloud_name,
            api_key=self._api_key,
            api_secret=self._api_secret,
            secure=True,
        )
        self._mark_ready()

    async def put(
        self,
        data: bytes,
        *,
        name: str,
        size_hint: int,
        content_type: str | None,
        folder: str,
    ) -> StoredBlob:
        _ = size_hint, content_type
        self._require_ready()
        buf = io.BytesIO(data)
        buf.name = name

        def _upload() -> dict[str, object]:
            return cloudinary.uploader.upload(
                buf,
                folder=folder,
                resource_type="image",
                public_id=uuid.uuid4().hex,
            )

        try:
            result = await run_in_threadpool(_upload)
        except (CloudinaryError, OSError) as e:
            raise UploadFailed(f"image upload failed: {e}") from e

        public_id = result.get("public_id")
        secure_url = result.get("secure_url")
        if not isinstance(public_id, str) or not isinstance(secure_url, str):
            raise UploadFailed("image upload returned no public id")
        return StoredBlob(external_id=public_id, retrieval_url=secure_url)

    async def delete(self, external_id: str) -> bool:
        self._require_ready()

        def _destroy() -> dict[str, object]:
            return cloudinary.uploader.destroy(external_id, resource_type="image")

        result = await run_in_threadpool(_destroy)
        return result.get("result") == "ok"
