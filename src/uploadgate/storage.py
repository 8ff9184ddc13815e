"""Writers that move an accepted file part to its final location."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional, Protocol

from .config import StorageStrategy
from .logger import get_logger
from .multipart import FilePart

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


class StorageWriter(Protocol):
    def write(self, part: FilePart, target: Path, keep_copy: bool = False) -> Optional[bytes]:
        """Write ``part`` to ``target`` and return its bytes when ``keep_copy``."""
        ...


class StreamWriter:
    """Copy the part's data to the target in fixed-size chunks."""

    chunk_size = CHUNK_SIZE

    def write(self, part: FilePart, target: Path, keep_copy: bool = False) -> Optional[bytes]:
        copy = bytearray() if keep_copy else None
        part.file.seek(0)
        # "xb": the generated path is fresh, never overwrite
        with open(target, "xb") as dest:
            while True:
                chunk = part.file.read(self.chunk_size)
                if not chunk:
                    break
                dest.write(chunk)
                if copy is not None:
                    copy.extend(chunk)
        return bytes(copy) if copy is not None else None


class MoveWriter:
    """Move a part spooled to a named temporary file into place.

    Parts kept in memory have no file to move and are streamed instead.
    """

    def __init__(self) -> None:
        self._fallback = StreamWriter()

    def write(self, part: FilePart, target: Path, keep_copy: bool = False) -> Optional[bytes]:
        if part.temp_path is None:
            return self._fallback.write(part, target, keep_copy)
        copy = None
        if keep_copy:
            part.file.seek(0)
            copy = part.file.read()
        part.file.close()
        if target.exists():
            raise FileExistsError(f"Refusing to overwrite {target}")
        shutil.move(str(part.temp_path), str(target))
        part.temp_path = None
        logger.debug("Moved spooled upload to %s", target)
        return copy


def get_writer(strategy: StorageStrategy) -> StorageWriter:
    """Return the writer for ``strategy`` ("stream" or "move")."""
    if strategy == "move":
        return MoveWriter()
    if strategy == "stream":
        return StreamWriter()
    raise ValueError(f"Unknown storage strategy: {strategy}")


__all__ = ["CHUNK_SIZE", "StorageWriter", "StreamWriter", "MoveWriter", "get_writer"]
