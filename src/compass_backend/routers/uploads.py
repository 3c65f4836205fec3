"""Multipart helpers shared by the admin write endpoints."""

from __future__ import annotations

from fastapi import HTTPException, UploadFile, status

from compass_backend.config import settings
from compass_backend.errors import ValidationFailed
from compass_backend.integrations.storage.routing import file_extension
from compass_backend.services.upsert_coordinator import UploadPayload


async def _read_upload_file_limited(*, file: UploadFile, max_bytes: int) -> bytes:
    # Read the file in chunks and hard-stop once size exceeds max_bytes.
    buf = bytearray()
    chunk_size = 1024 * 1024
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                detail=f"file size exceeds {max_bytes // (1024 * 1024)}MB limit",
            )
    return bytes(buf)


async def read_upload(
    file: UploadFile | None, *, field: str, allowed_extensions: frozenset[str]
) -> UploadPayload | None:
    # Browsers submit an empty part with no filename when nothing was chosen.
    if file is None or not (file.filename or "").strip():
        return None

    filename = file.filename.strip()
    if file_extension(filename) not in allowed_extensions:
        allowed = ", ".join(sorted(ext.upper() for ext in allowed_extensions))
        raise ValidationFailed(field, f"invalid file type; allowed: {allowed}")

    max_bytes = int(settings.upload_max_size_bytes)
    if max_bytes > 0:
        data = await _read_upload_file_limited(file=file, max_bytes=max_bytes)
    else:
        data = await file.read()
    return UploadPayload(data=data, filename=filename, content_type=file.content_type)


def form_tags(values: list[str] | None) -> object:
    """Collapse the multipart ``tags`` field.

    A single value is always a JSON-encoded string and is decoded (and checked
    for being an array) by ``normalize_tags``; repeated fields are a native list.
    """
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return values
