"""Exceptions raised while receiving, validating and storing uploads."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .multipart import FilePart
    from .validation import ValidationReport, ViolationKind


INVALID_UPLOAD_DATA = (
    'Invalid upload data, request must contain a body with form "multipart/form-data", '
    'and inputs with type="file".'
)


class UploadError(Exception):
    """Base class for errors reported back to the client."""

    status_code = 422

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidContentType(UploadError):
    """The request body is not what the endpoint expects."""

    def __init__(self, message: str = INVALID_UPLOAD_DATA) -> None:
        super().__init__(message)


class MalformedBody(InvalidContentType):
    """The body declares the right content type but cannot be parsed."""


class UploadRejected(UploadError):
    """One or more validation rules failed; ``report`` lists all of them."""

    def __init__(self, report: "ValidationReport") -> None:
        super().__init__(report.message)
        self.report = report

    @property
    def kinds(self) -> List["ViolationKind"]:
        return self.report.kinds


class AggregateLimitReached(UploadError):
    """The running size of file parts went over ``max_total_bytes``.

    Raised by the body parser before the rest of the body is read. ``parts``
    holds the file parts received so far; the caller owns them.
    """

    def __init__(self, received: int, limit: int, parts: Sequence["FilePart"] = ()) -> None:
        super().__init__(
            f"Maximum total upload size exceeded, size: {received} bytes, maximum: {limit} bytes."
        )
        self.received = received
        self.limit = limit
        self.parts = list(parts)


class StorageWriteFailure(OSError):
    """Creating a directory or writing an accepted file failed."""

    def __init__(self, path, cause: OSError) -> None:
        super().__init__(cause.errno, f"Failed to store upload at {path}: {cause.strerror or cause}")
        self.path = path
        self.cause = cause


__all__ = [
    "INVALID_UPLOAD_DATA",
    "UploadError",
    "InvalidContentType",
    "MalformedBody",
    "UploadRejected",
    "AggregateLimitReached",
    "StorageWriteFailure",
]
