"""Domain error taxonomy for the upload/persist workflow.

Each error carries a machine-readable ``kind`` and the HTTP status the API maps
it to. Handlers in ``compass_backend.error_handlers`` turn them into the
``ErrorResponse`` shape.
"""

from __future__ import annotations


class CompassError(Exception):
    kind: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str, *, details: object | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(CompassError):
    kind = "validation_failed"
    status_code = 400

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}", details={"field": field, "reason": reason})
        self.field = field
        self.reason = reason


class DuplicateSubmission(CompassError):
    kind = "duplicate_submission"
    status_code = 409


class Forbidden(CompassError):
    kind = "forbidden"
    status_code = 403


class NotFound(CompassError):
    kind = "not_found"
    status_code = 404


class StoreUnavailable(CompassError):
    kind = "store_unavailable"
    status_code = 503


class UploadFailed(CompassError):
    kind = "upload_failed"
    status_code = 502


class PersistenceFailed(CompassError):
    kind = "persistence_failed"
    status_code = 500

    def __init__(self, message: str, *, blob_cleanup_failed: bool = False) -> None:
        super().__init__(message, details={"blob_cleanup_failed": blob_cleanup_failed})
        self.blob_cleanup_failed = blob_cleanup_failed


class RoutingFailed(CompassError):
    kind = "routing_failed"
    status_code = 500


class Conflict(CompassError):
    kind = "conflict"
    status_code = 409
