from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class StoredFile(BaseModel):
    """Metadata about one file written by the upload pipeline."""

    model_config = ConfigDict(frozen=True)

    original_filename: str
    content_type: Optional[str] = None
    size: int
    id: str
    url: str
    uri: Path
    content: Optional[bytes] = Field(default=None, exclude=True, repr=False)


class FileDescriptor(BaseModel):
    """Client declared name and size of a file it intends to upload."""

    name: str
    size: NonNegativeInt


UploadResult = Dict[str, Union[StoredFile, List[StoredFile]]]
PreflightBody = Dict[str, Union[FileDescriptor, List[FileDescriptor]]]


__all__ = ["StoredFile", "FileDescriptor", "UploadResult", "PreflightBody"]
