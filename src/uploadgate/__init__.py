"""Multipart upload ingestion with size and extension policies."""

from .config import Settings, UploadOptions
from .context import RequestContext, StarletteRequestContext, uploaded_files
from .dependencies import PreflightValidation, UploadFiles
from .errors import (
    AggregateLimitReached,
    InvalidContentType,
    MalformedBody,
    StorageWriteFailure,
    UploadError,
    UploadRejected,
)
from .models import FileDescriptor, StoredFile, UploadResult
from .pipeline import PreflightPipeline, UploadPipeline, collect_by_field, validate_descriptor
from .validation import ValidationReport, ViolationKind, validate_files

__all__ = [
    "Settings",
    "UploadOptions",
    "RequestContext",
    "StarletteRequestContext",
    "uploaded_files",
    "UploadFiles",
    "PreflightValidation",
    "UploadError",
    "InvalidContentType",
    "MalformedBody",
    "UploadRejected",
    "AggregateLimitReached",
    "StorageWriteFailure",
    "FileDescriptor",
    "StoredFile",
    "UploadResult",
    "UploadPipeline",
    "PreflightPipeline",
    "collect_by_field",
    "validate_descriptor",
    "ValidationReport",
    "ViolationKind",
    "validate_files",
]
