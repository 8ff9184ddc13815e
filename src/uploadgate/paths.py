from __future__ import annotations

import mimetypes
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import quote

# Characters not allowed in file names (Windows compatible)
INVALID_CHARS_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
DEFAULT_STEM = "upload"


@dataclass(frozen=True)
class GeneratedPath:
    relative_path: Path
    absolute_path: Path
    id: str
    url: str


def sanitize_filename(name: str, replacement: str = "_") -> str:
    """Replace characters that are invalid in file names."""
    return INVALID_CHARS_PATTERN.sub(replacement, name)


def safe_filename(filename: str | None, content_type: str | None = None) -> str:
    """Return the name a client supplied file is stored under.

    Directory components are dropped so ``../../x.txt`` becomes ``x.txt``.
    When nothing usable is left a name is built from the content type.
    """
    name = (filename or "").replace("\\", "/")
    name = PurePosixPath(name).name if name else ""
    name = sanitize_filename(name).strip()
    if name in {"", ".", ".."}:
        guessed_ext = mimetypes.guess_extension(content_type or "") or ""
        name = f"{DEFAULT_STEM}{guessed_ext}"
    return name


def timestamp_segments(now: datetime) -> list[str]:
    return [str(part) for part in (now.year, now.month, now.day, now.hour, now.minute, now.second)]


def generate_path(
    base_dir: str | Path,
    filename: str | None,
    use_timestamp_subdirectories: bool = True,
    path_relative_to_cwd: bool = True,
    *,
    content_type: str | None = None,
    now: Optional[datetime] = None,
) -> GeneratedPath:
    """Choose where one uploaded file goes and create its directory.

    The layout is ``base/<Y>/<m>/<d>/<H>/<M>/<S>/<id>/<name>`` or
    ``base/<id>/<name>``. ``id`` is a fresh uuid4, so two calls never return
    the same path. The file itself is not written.
    """
    file_id = uuid.uuid4().hex
    relative_dir = Path(base_dir)
    if use_timestamp_subdirectories:
        relative_dir = relative_dir.joinpath(*timestamp_segments(now or datetime.now()))
    relative_dir = relative_dir / file_id

    absolute_dir = Path.cwd() / relative_dir if path_relative_to_cwd else relative_dir
    absolute_dir.mkdir(parents=True, exist_ok=True)

    name = safe_filename(filename, content_type)
    relative_path = relative_dir / name
    return GeneratedPath(
        relative_path=relative_path,
        absolute_path=absolute_dir / name,
        id=file_id,
        url=quote(relative_path.as_posix(), safe="/"),
    )


__all__ = [
    "GeneratedPath",
    "INVALID_CHARS_PATTERN",
    "sanitize_filename",
    "safe_filename",
    "timestamp_segments",
    "generate_path",
]
