from __future__ import annotations

import logging
from dataclasses import dataclass

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from compass_backend.errors import UploadFailed

from .blob_store import SessionState, StoredBlob, build_storage_key

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True)
class DriveConfig:
    endpoint_url: str
    region: str
    bucket: str
    public_base_url: str
    link_expires_seconds: int


def _is_missing(err: ClientError) -> bool:
    code = str(err.response.get("Error", {}).get("Code", ""))
    return code in _MISSING_CODES


class DriveBlobStore(SessionState):
    """Documents backend on an S3-compatible bucket.

    The bucket is laid out like a cloud drive: one folder per document family
    (``Notes/``, ``PPT/``, ``Docs/``, ``Thumbnails/``). ``start()`` resolves the
    bucket and creates missing folder markers before the store turns ready.
    """

    name = "drive"

    def __init__(
        self,
        *,
        endpoint_url: str,
        region: str,
        bucket: str,
        access_key_id: str,
        secret_access_key: str,
        force_path_style: bool,
        public_base_url: str = "",
        link_expires_seconds: int = 7 * 24 * 60 * 60,
        folders: tuple[str, ...] = (),
    ) -> None:
        super().__init__()
        self._cfg = DriveConfig(
            endpoint_url=endpoint_url,
            region=region,
            bucket=bucket,
            public_base_url=public_base_url.rstrip("/"),
            link_expires_seconds=link_expires_seconds,
        )
        self._folders = folders

        import boto3

        addressing_style = "path" if force_path_style else "virtual"
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region or None,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(s3={"addressing_style": addressing_style}),
        )

    async def start(self) -> None:
        def _init() -> None:
            self._client.head_bucket(Bucket=self._cfg.bucket)
            for folder in self._folders:
                marker = f"{folder.strip('/')}/"
                try:
                    self._client.head_object(Bucket=self._cfg.bucket, Key=marker)
                except ClientError as e:
                    if not _is_missing(e):
                        raise
                    self._client.put_object(Bucket=self._cfg.bucket, Key=marker, Body=b"")
                    logger.info("created drive folder bucket=%s folder=%s", self._cfg.bucket, folder)

        await run_in_threadpool(_init)
        self._mark_ready()

    def _retrieval_url(self, key: str) -> str:
        if self._cfg.public_base_url:
            return f"{self._cfg.public_base_url}/{key}"
        # Presigning is local (no network round-trip).
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._cfg.bucket, "Key": key},
            ExpiresIn=self._cfg.link_expires_seconds,
        )

    async def put(
        self,
        data: bytes,
        *,
        name: str,
        size_hint: int,
        content_type: str | None,
        folder: str,
    ) -> StoredBlob:
        self._require_ready()
        key = build_storage_key(folder=folder, name=name)

        def _put() -> StoredBlob:
            kwargs: dict[str, object] = {
                "Bucket": self._cfg.bucket,
                "Key": key,
                "Body": data,
                "ContentLength": size_hint or len(data),
            }
            if content_type:
                kwargs["ContentType"] = content_type
            try:
                self._client.put_object(**kwargs)
            except (BotoCoreError, ClientError) as e:
                # Never leave a half-registered object behind.
                try:
                    self._client.delete_object(Bucket=self._cfg.bucket, Key=key)
                except (BotoCoreError, ClientError):
                    logger.warning("drive partial object cleanup failed key=%s", key, exc_info=True)
                raise UploadFailed(f"drive upload failed: {e}") from e
            return StoredBlob(external_id=key, retrieval_url=self._retrieval_url(key))

        return await run_in_threadpool(_put)

    async def delete(self, external_id: str) -> bool:
        self._require_ready()

        def _delete() -> bool:
            try:
                self._client.head_object(Bucket=self._cfg.bucket, Key=external_id)
            except ClientError as e:
                if _is_missing(e):
                    return False
                raise
            self._client.delete_object(Bucket=self._cfg.bucket, Key=external_id)
            return True

        return await run_in_threadpool(_delete)
