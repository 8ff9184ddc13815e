"""Upload and pre-flight pipelines.

``UploadPipeline`` walks RECEIVING -> VALIDATING -> (REJECTED | STORING) -> DONE
for one request. Rejection raises :class:`UploadRejected`; nothing after it
runs and no file is written under the storage root.
"""

from __future__ import annotations

import asyncio
from functools import reduce
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from .config import UploadOptions
from .context import RequestContext
from .errors import (
    AggregateLimitReached,
    InvalidContentType,
    MalformedBody,
    StorageWriteFailure,
    UploadRejected,
)
from .logger import get_logger
from .models import FileDescriptor, PreflightBody, StoredFile, UploadResult
from .multipart import FilePart, FormField, MultipartBodyParser
from .paths import generate_path
from .storage import StorageWriter, get_writer
from .validation import ValidationReport, check_total_size, validate_files

logger = get_logger(__name__)

T = TypeVar("T")


def collect_by_field(items: Iterable[Tuple[str, T]]) -> Dict[str, Union[T, List[T]]]:
    """Group ``(field_name, value)`` pairs, keeping arrival order.

    The first value of a field is stored as is; a second one turns the entry
    into a list, later ones are appended.
    """

    def _merge(acc: Dict[str, Any], item: Tuple[str, T]) -> Dict[str, Any]:
        name, value = item
        if name not in acc:
            acc[name] = value
        elif isinstance(acc[name], list):
            acc[name].append(value)
        else:
            acc[name] = [acc[name], value]
        return acc

    return reduce(_merge, items, {})


def _is_empty_file_input(part: FilePart) -> bool:
    # browsers send an unselected <input type="file"> as filename="" with no data
    return part.filename == "" and part.size == 0


class UploadPipeline:
    """Receive a multipart body, validate it and store the accepted files."""

    def __init__(self, options: UploadOptions, writer: Optional[StorageWriter] = None) -> None:
        self.options = options
        self.writer = writer or get_writer(options.storage_strategy)

    def _check_content_length(self, header: Optional[str]) -> None:
        if header is None:
            return
        try:
            declared = int(header)
        except ValueError:
            logger.debug("Ignoring invalid content-length header %r", header)
            return
        report = ValidationReport()
        check_total_size(declared, self.options, report)
        if report:
            logger.warning("Upload rejected before reading the body: %s", report.message)
            raise UploadRejected(report)

    async def receive(self, context: RequestContext) -> Tuple[MultipartBodyParser, List]:
        """RECEIVING: read and spool every part of the body."""
        # content type first: a non-multipart body is refused before any size rule
        parser = MultipartBodyParser(context.header("content-type"), context.stream(), self.options)
        self._check_content_length(context.header("content-length"))
        try:
            items = await parser.parse()
        except AggregateLimitReached as exc:
            report = validate_files(
                ((part.filename, part.size) for part in exc.parts), exc.received, self.options
            )
            logger.warning("Upload rejected while reading the body: %s", report.message)
            raise UploadRejected(report) from exc
        return parser, items

    def validate(self, file_parts: List[FilePart]) -> ValidationReport:
        """VALIDATING: every rule over every file part and the aggregate size."""
        return validate_files(
            ((part.filename, part.size) for part in file_parts),
            sum(part.size for part in file_parts),
            self.options,
        )

    async def store(self, part: FilePart) -> StoredFile:
        """STORING: place one accepted part under a freshly generated path."""
        opts = self.options
        target: Path = opts.storage_root
        try:
            generated = await asyncio.to_thread(
                generate_path,
                opts.storage_root,
                part.filename,
                opts.use_timestamp_subdirectories,
                opts.path_relative_to_cwd,
                content_type=part.content_type,
            )
            target = generated.absolute_path
            content = await asyncio.to_thread(
                self.writer.write, part, target, opts.retain_in_memory_copy
            )
            if not opts.persist_to_disk:
                await asyncio.to_thread(target.unlink)
                await asyncio.to_thread(target.parent.rmdir)
        except OSError as exc:
            logger.exception("Failed to store upload %s at %s", part.filename, target)
            raise StorageWriteFailure(target, exc) from exc

        logger.info("Stored %s (%d bytes) at %s", part.filename, part.size, target)
        return StoredFile(
            original_filename=part.filename,
            content_type=part.content_type,
            size=part.size,
            id=generated.id,
            url=generated.url,
            uri=target,
            content=content,
        )

    async def process(self, context: RequestContext) -> UploadResult:
        parser, items = await self.receive(context)
        try:
            file_parts = [
                item for item in items
                if isinstance(item, FilePart) and not _is_empty_file_input(item)
            ]
            report = self.validate(file_parts)
            if report:
                logger.warning("Upload rejected: %s", report.message)
                raise UploadRejected(report)

            stored = []
            for part in file_parts:
                stored.append((part.field_name, await self.store(part)))
        finally:
            parser.release()

        result: UploadResult = collect_by_field(stored)
        fields = collect_by_field(
            (item.field_name, item.value) for item in items if isinstance(item, FormField)
        )
        context.attach_result(result)
        context.attach_fields(fields)
        return result


_PREFLIGHT_BODY: TypeAdapter[PreflightBody] = TypeAdapter(PreflightBody)

INVALID_PREFLIGHT_DATA = (
    "Invalid pre-flight data, request must contain a JSON body mapping field names "
    'to {"name", "size"} descriptors.'
)


def _descriptors(body: PreflightBody) -> List[FileDescriptor]:
    found: List[FileDescriptor] = []
    for value in body.values():
        found.extend(value if isinstance(value, list) else [value])
    return found


def validate_descriptor(json_body: Any, options: UploadOptions) -> ValidationReport:
    """Check client declared files without touching the filesystem."""
    try:
        body = _PREFLIGHT_BODY.validate_python(json_body)
    except ValidationError as exc:
        raise MalformedBody(INVALID_PREFLIGHT_DATA) from exc
    descriptors = _descriptors(body)
    return validate_files(
        ((d.name, d.size) for d in descriptors),
        sum(d.size for d in descriptors),
        options,
    )


class PreflightPipeline:
    """Validate a JSON description of intended uploads before the transfer."""

    def __init__(self, options: UploadOptions) -> None:
        self.options = options

    async def process(self, context: RequestContext) -> ValidationReport:
        content_type = (context.header("content-type") or "").split(";", 1)[0].strip().lower()
        if content_type != "application/json":
            raise InvalidContentType(INVALID_PREFLIGHT_DATA)
        try:
            body = await context.json()
        except ValueError as exc:
            raise MalformedBody(INVALID_PREFLIGHT_DATA) from exc
        report = validate_descriptor(body, self.options)
        if report:
            logger.warning("Pre-flight validation failed: %s", report.message)
            raise UploadRejected(report)
        return report


__all__ = [
    "collect_by_field",
    "UploadPipeline",
    "validate_descriptor",
    "PreflightPipeline",
    "INVALID_PREFLIGHT_DATA",
]
