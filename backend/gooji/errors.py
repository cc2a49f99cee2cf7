"""Error types shared by the ingestion, storage and query services.

Every error raised by the core is a ``VideoError`` carrying an explicit
``kind``. The HTTP layer maps the kind to a status code through
``HTTP_STATUS`` instead of inspecting exception classes.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Discriminant for ``VideoError``."""

    VALIDATION = "validation"
    SECURITY = "security"
    NOT_FOUND = "not_found"
    INSPECTION = "inspection"
    STORAGE = "storage"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.SECURITY: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INSPECTION: 500,
    ErrorKind.STORAGE: 500,
}


class VideoError(Exception):
    """Base error with a kind and a client-safe message.

    The underlying cause, if any, is chained with ``raise ... from`` and is
    only ever logged.
    """

    kind: ErrorKind = ErrorKind.STORAGE

    def __init__(self, message: str, *, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_payload(self) -> dict[str, str]:
        """Structured body returned to HTTP clients."""
        return {"error": self.kind.value, "message": self.message}


class ValidationError(VideoError):
    kind = ErrorKind.VALIDATION


class SecurityError(VideoError):
    kind = ErrorKind.SECURITY


class NotFoundError(VideoError):
    kind = ErrorKind.NOT_FOUND


class InspectionError(VideoError):
    kind = ErrorKind.INSPECTION


class StorageError(VideoError):
    kind = ErrorKind.STORAGE
