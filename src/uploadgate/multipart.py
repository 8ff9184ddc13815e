"""Streaming ``multipart/form-data`` reader.

The parser follows Starlette's form parser: body chunks are fed into
``python_multipart.MultipartParser`` and file bytes are spooled to temporary
storage so nothing reaches the storage root before validation. Unlike the
Starlette parser it keeps running byte counts and stops reading as soon as
the aggregate limit is crossed.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, AsyncIterator, List, Optional, Tuple, Union

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from .config import UploadOptions
from .errors import AggregateLimitReached, InvalidContentType, MalformedBody, UploadError

logger = logging.getLogger(__name__)

MULTIPART_FORM_DATA = b"multipart/form-data"


def _user_safe_decode(src: bytes, charset: str) -> str:
    try:
        return src.decode(charset)
    except (UnicodeDecodeError, LookupError):
        return src.decode("latin-1")


def parse_boundary(content_type: Optional[str]) -> Tuple[bytes, str]:
    """Return ``(boundary, charset)`` from a multipart ``Content-Type`` header.

    Raises :class:`InvalidContentType` when the header is missing, names
    another media type or carries no boundary.
    """
    if not content_type:
        raise InvalidContentType()
    ctype, params = parse_options_header(content_type)
    boundary = params.get(b"boundary")
    if ctype.lower() != MULTIPART_FORM_DATA or not boundary:
        raise InvalidContentType()
    charset = params.get(b"charset", b"utf-8")
    if isinstance(charset, bytes):
        charset = charset.decode("latin-1")
    return boundary, charset


@dataclass
class FormField:
    field_name: str
    value: str


@dataclass
class FilePart:
    """A file section of the body, held in temporary storage.

    ``size`` counts every byte received for the part, including bytes that
    were dropped after the part went over ``max_file_bytes`` (``discarded``).
    """

    field_name: str
    filename: str
    content_type: Optional[str]
    file: IO[bytes]
    temp_path: Optional[Path] = None
    size: int = 0
    discarded: bool = False
    headers: List[Tuple[bytes, bytes]] = field(default_factory=list)

    @property
    def in_memory(self) -> bool:
        return self.temp_path is None and not getattr(self.file, "_rolled", True)

    async def write(self, data: bytes) -> None:
        if self.in_memory:
            self.file.write(data)
        else:
            await asyncio.to_thread(self.file.write, data)

    def discard(self) -> None:
        """Drop buffered bytes; the part is kept only for its metadata."""
        self.discarded = True
        self.file.seek(0)
        self.file.truncate()

    def close(self) -> None:
        """Release the temporary storage behind the part."""
        if not self.file.closed:
            self.file.close()
        if self.temp_path is not None:
            self.temp_path.unlink(missing_ok=True)


Part = Union[FormField, FilePart]


@dataclass
class _PartState:
    content_disposition: Optional[bytes] = None
    content_type: Optional[bytes] = None
    field_name: str = ""
    data: bytearray = field(default_factory=bytearray)
    file: Optional[FilePart] = None
    item_headers: List[Tuple[bytes, bytes]] = field(default_factory=list)


class MultipartBodyParser:
    """Turn a multipart body stream into an ordered list of parts."""

    def __init__(
        self,
        content_type: Optional[str],
        stream: AsyncIterator[bytes],
        options: UploadOptions,
    ) -> None:
        self.boundary, self.charset = parse_boundary(content_type)
        self.stream = stream
        self.options = options
        self.items: List[Part] = []
        self.file_parts: List[FilePart] = []
        self.total_file_bytes = 0
        self._current = _PartState()
        self._header_name = b""
        self._header_value = b""
        self._pending: List[Tuple[FilePart, bytes]] = []
        self._field_count = 0
        self._file_count = 0

    # -- python-multipart callbacks -------------------------------------
    def on_part_begin(self) -> None:
        self._current = _PartState()

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        chunk = data[start:end]
        if self._current.file is None:
            if len(self._current.data) + len(chunk) > self.options.max_field_bytes:
                raise MalformedBody(
                    f"Form field exceeded maximum size of {self.options.max_field_bytes} bytes."
                )
            self._current.data.extend(chunk)
        else:
            self._pending.append((self._current.file, chunk))

    def on_part_end(self) -> None:
        if self._current.file is None:
            self.items.append(
                FormField(self._current.field_name, _user_safe_decode(self._current.data, self.charset))
            )
        else:
            self.items.append(self._current.file)

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        name = self._header_name.lower()
        if name == b"content-disposition":
            self._current.content_disposition = self._header_value
        elif name == b"content-type":
            self._current.content_type = self._header_value
        self._current.item_headers.append((name, self._header_value))
        self._header_name = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, params = parse_options_header(self._current.content_disposition)
        try:
            self._current.field_name = _user_safe_decode(params[b"name"], self.charset)
        except KeyError:
            raise MalformedBody('The Content-Disposition header field "name" must be provided.')
        if b"filename" not in params:
            self._field_count += 1
            if self._field_count > self.options.max_fields:
                raise MalformedBody(
                    f"Too many fields. Maximum number of fields is {self.options.max_fields}."
                )
            self._current.file = None
            return
        self._file_count += 1
        if self._file_count > self.options.max_files:
            raise MalformedBody(f"Too many files. Maximum number of files is {self.options.max_files}.")
        content_type = self._current.content_type
        self._current.file = self._open_part(
            self._current.field_name,
            _user_safe_decode(params[b"filename"], self.charset),
            _user_safe_decode(content_type, self.charset).strip() if content_type else None,
            self._current.item_headers,
        )

    def on_end(self) -> None:
        pass

    # -----------------------------------------------------------------
    def _open_part(self, field_name, filename, content_type, headers) -> FilePart:
        if self.options.storage_strategy == "move":
            temp_dir = self.options.temp_dir
            if temp_dir is not None:
                temp_dir.mkdir(parents=True, exist_ok=True)
            handle = tempfile.NamedTemporaryFile(dir=temp_dir, prefix="uploadgate-", delete=False)
            part = FilePart(field_name, filename, content_type, handle, temp_path=Path(handle.name))
        else:
            spool = tempfile.SpooledTemporaryFile(
                max_size=self.options.spool_max_size, dir=self.options.temp_dir
            )
            part = FilePart(field_name, filename, content_type, spool)
        part.headers = list(headers)
        self.file_parts.append(part)
        return part

    async def _flush(self) -> None:
        limit = self.options.max_file_bytes
        for part, data in self._pending:
            part.size += len(data)
            self.total_file_bytes += len(data)
            if part.discarded:
                continue
            if part.size > limit:
                logger.debug("Part %s exceeded %s bytes, dropping its data", part.filename, limit)
                part.discard()
                continue
            await part.write(data)
        self._pending.clear()
        if self.total_file_bytes > self.options.max_total_bytes:
            raise AggregateLimitReached(
                self.total_file_bytes, self.options.max_total_bytes, self.file_parts
            )

    def release(self) -> None:
        for part in self.file_parts:
            part.close()

    async def parse(self) -> List[Part]:
        callbacks = {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_end": self.on_end,
        }
        parser = MultipartParser(self.boundary, callbacks)
        try:
            async for chunk in self.stream:
                parser.write(chunk)
                await self._flush()
            parser.finalize()
            await self._flush()
        except MultipartParseError as exc:
            self.release()
            raise MalformedBody(f"Malformed multipart body: {exc}") from exc
        except UploadError:
            self.release()
            raise
        except OSError:
            self.release()
            raise

        for part in self.file_parts:
            part.file.seek(0)
        logger.debug(
            "Parsed %d parts (%d files, %d file bytes)",
            len(self.items),
            len(self.file_parts),
            self.total_file_bytes,
        )
        return self.items


__all__ = [
    "MULTIPART_FORM_DATA",
    "parse_boundary",
    "FormField",
    "FilePart",
    "Part",
    "MultipartBodyParser",
]
