"""FastAPI dependencies that run the pipelines for a route.

Usage::

    upload = UploadFiles(settings.upload_options())

    @router.post("/avatars")
    async def avatars(files: UploadResult = Depends(upload)):
        ...
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from .config import UploadOptions
from .context import StarletteRequestContext
from .errors import UploadError
from .logger import get_logger
from .models import UploadResult
from .pipeline import PreflightPipeline, UploadPipeline
from .storage import StorageWriter
from .validation import ValidationReport

logger = get_logger(__name__)


def _http_error(exc: UploadError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


class UploadFiles:
    """Store the files of a multipart request; 422 when the upload is refused."""

    def __init__(self, options: UploadOptions, writer: StorageWriter | None = None) -> None:
        self.pipeline = UploadPipeline(options, writer)

    async def __call__(self, request: Request) -> UploadResult:
        try:
            return await self.pipeline.process(StarletteRequestContext(request))
        except UploadError as exc:
            logger.warning("Upload to %s refused: %s", request.url.path, exc.message)
            raise _http_error(exc) from exc


class PreflightValidation:
    """Check a JSON description of files; 422 when any rule fails."""

    def __init__(self, options: UploadOptions) -> None:
        self.pipeline = PreflightPipeline(options)

    async def __call__(self, request: Request) -> ValidationReport:
        try:
            return await self.pipeline.process(StarletteRequestContext(request))
        except UploadError as exc:
            logger.warning("Pre-flight check on %s refused: %s", request.url.path, exc.message)
            raise _http_error(exc) from exc


__all__ = ["UploadFiles", "PreflightValidation"]
