from __future__ import annotations

from pathlib import Path, PurePosixPath

from starlette.concurrency import run_in_threadpool

from compass_backend.errors import UploadFailed

from .blob_store import SessionState, StoredBlob, build_storage_key


def _safe_join(root: Path, key: str) -> Path:
    parts = [p for p in PurePosixPath(key).parts if p not in {"/", ""}]
    if not parts or any(p in {"..", "."} for p in parts):
        raise ValueError("invalid storage key")
    return root.joinpath(*parts)


class LocalBlobStore(SessionState):
    name = "local"

    def __init__(self, *, root_dir: str, public_url_prefix: str) -> None:
        super().__init__()
        self._root = Path(root_dir)
        self._public_url_prefix = public_url_prefix.rstrip("/")

    def resolve_path(self, key: str) -> Path:
        return _safe_join(self._root, key)

    async def start(self) -> None:
        await run_in_threadpool(self._root.mkdir, parents=True, exist_ok=True)
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
        key = build_storage_key(folder=folder, name=name)
        path = self.resolve_path(key)
        tmp_path = path.with_name(path.name + ".tmp")

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                _ = tmp_path.write_bytes(data)
                _ = tmp_path.replace(path)
            finally:
                tmp_path.unlink(missing_ok=True)

        try:
            await run_in_threadpool(_write)
        except OSError as e:
            raise UploadFailed(f"local write failed: {e.strerror or e}") from e
        return StoredBlob(external_id=key, retrieval_url=f"{self._public_url_prefix}/{key}")

    async def delete(self, external_id: str) -> bool:
        self._require_ready()
        path = self.resolve_path(external_id)
        if not path.exists():
            return False
        await run_in_threadpool(path.unlink, missing_ok=True)
        return True
