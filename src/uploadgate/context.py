from __future__ import annotations

from typing import Any, AsyncIterator, Dict, Optional, Protocol

from starlette.requests import Request

from .models import UploadResult

UPLOADED_FILES_KEY = "uploaded_files"
FORM_FIELDS_KEY = "form_fields"


class RequestContext(Protocol):
    """What the pipelines need from the host framework's request."""

    def header(self, name: str) -> Optional[str]:
        ...

    def stream(self) -> AsyncIterator[bytes]:
        ...

    async def json(self) -> Any:
        ...

    def attach_result(self, result: UploadResult) -> None:
        ...

    def attach_fields(self, fields: Dict[str, Any]) -> None:
        ...


class StarletteRequestContext:
    """:class:`RequestContext` backed by a Starlette/FastAPI ``Request``.

    Results are stored on ``request.state`` under :data:`UPLOADED_FILES_KEY`
    and :data:`FORM_FIELDS_KEY`.
    """

    def __init__(self, request: Request) -> None:
        self.request = request

    def header(self, name: str) -> Optional[str]:
        return self.request.headers.get(name)

    def stream(self) -> AsyncIterator[bytes]:
        return self.request.stream()

    async def json(self) -> Any:
        return await self.request.json()

    def attach_result(self, result: UploadResult) -> None:
        setattr(self.request.state, UPLOADED_FILES_KEY, result)

    def attach_fields(self, fields: Dict[str, Any]) -> None:
        setattr(self.request.state, FORM_FIELDS_KEY, fields)


def uploaded_files(request: Request) -> Optional[UploadResult]:
    """Return the upload result attached to ``request``, if any."""
    return getattr(request.state, UPLOADED_FILES_KEY, None)


__all__ = [
    "UPLOADED_FILES_KEY",
    "FORM_FIELDS_KEY",
    "RequestContext",
    "StarletteRequestContext",
    "uploaded_files",
]
