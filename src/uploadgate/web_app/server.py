"""Demo FastAPI application exposing the upload and pre-flight endpoints."""

from __future__ import annotations

import logging
import os
import sys

from fastapi import Depends, FastAPI, Request
import uvicorn

from ..config import Settings, config
from ..context import FORM_FIELDS_KEY
from ..dependencies import PreflightValidation, UploadFiles
from ..logger import setup_logging
from ..models import UploadResult
from ..validation import ValidationReport

logger = logging.getLogger(__name__)


def _dump(result: UploadResult) -> dict:
    return {
        field: [item.model_dump(mode="json") for item in value]
        if isinstance(value, list)
        else value.model_dump(mode="json")
        for field, value in result.items()
    }


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for ``settings`` (the module config by default)."""
    settings = settings or config
    options = settings.upload_options()
    upload = UploadFiles(options)
    preflight = PreflightValidation(options)

    app = FastAPI(title="uploadgate")

    @app.post("/upload")
    async def upload_files(request: Request, files: UploadResult = Depends(upload)):
        """Store the uploaded files and describe them."""
        fields = getattr(request.state, FORM_FIELDS_KEY, {})
        return {"files": _dump(files), "fields": fields}

    @app.post("/upload/validate")
    async def validate_upload(report: ValidationReport = Depends(preflight)):
        """Pre-flight check of the files a client is about to send."""
        return {"ok": report.ok}

    return app


app = create_app()


def main() -> None:
    """Run the server with parameters taken from environment variables.

    ``HOST`` (default ``0.0.0.0``), ``PORT`` (default ``8000``) and
    ``RELOAD`` (``true``/``false``, default ``false``).
    """
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes"}

    setup_logging(config.log_level, config.log_file)
    logger.info("Starting FastAPI server on %s:%s", host, port)
    try:
        uvicorn.run(app, host=host, port=port, reload=reload)
    except Exception:
        logger.exception("Failed to start the server")
        sys.exit(1)


if __name__ == "__main__":
    main()
