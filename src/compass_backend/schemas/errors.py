from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Pinned error contract shared by every endpoint.

    ``error`` is the machine-readable kind (``validation_failed``,
    ``persistence_failed``, ``forbidden`` ...), ``message`` is for humans.
    """

    error: str
    message: str
    request_id: str | None = None
    details: object | None = None
