"""Size and extension rules shared by the upload and pre-flight pipelines.

Everything here is pure: no I/O, safe to call before or after the body has
been transferred.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .config import UploadOptions


class ViolationKind(str, Enum):
    AGGREGATE_SIZE_EXCEEDED = "aggregate_size_exceeded"
    PER_FILE_SIZE_EXCEEDED = "per_file_size_exceeded"
    DISALLOWED_EXTENSION = "disallowed_extension"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str


@dataclass
class ValidationReport:
    """Ordered list of violations; an empty report means "accepted"."""

    violations: List[Violation] = field(default_factory=list)

    def add(self, kind: ViolationKind, message: str) -> None:
        self.violations.append(Violation(kind, message))

    @property
    def messages(self) -> List[str]:
        return [v.message for v in self.violations]

    @property
    def message(self) -> str:
        """All messages combined into one human readable string."""
        return " ".join(self.messages)

    @property
    def kinds(self) -> List[ViolationKind]:
        return [v.kind for v in self.violations]

    @property
    def ok(self) -> bool:
        return not self.violations

    def __bool__(self) -> bool:
        return bool(self.violations)

    def __len__(self) -> int:
        return len(self.violations)


def extension_of(filename: str) -> Optional[str]:
    """Return the text after the last ``.`` or ``None`` when there is no dot.

    Matching is case-sensitive and multi-dot names keep only the final
    suffix: ``archive.tar.gz`` -> ``gz``.
    """
    if "." not in filename:
        return None
    return filename.rsplit(".", 1)[1]


def check_extension(filename: str, options: UploadOptions, report: ValidationReport) -> None:
    allowed = options.allowed_extensions
    if not allowed:
        return
    allowed_text = ",".join(allowed)
    ext = extension_of(filename)
    if ext is None:
        report.add(
            ViolationKind.DISALLOWED_EXTENSION,
            f"The file has no extension ({filename}), allowed extensions: {allowed_text}.",
        )
    elif ext not in allowed:
        report.add(
            ViolationKind.DISALLOWED_EXTENSION,
            f"The file extension is not allowed ({ext} in {filename}), "
            f"allowed extensions: {allowed_text}.",
        )


def check_file_size(filename: str, size: int, options: UploadOptions, report: ValidationReport) -> None:
    if size > options.max_file_bytes:
        report.add(
            ViolationKind.PER_FILE_SIZE_EXCEEDED,
            f"Maximum file upload size exceeded, file: {filename}, size: {size} bytes, "
            f"maximum: {options.max_file_bytes} bytes.",
        )


def check_total_size(total: int, options: UploadOptions, report: ValidationReport) -> None:
    if total > options.max_total_bytes:
        report.add(
            ViolationKind.AGGREGATE_SIZE_EXCEEDED,
            f"Maximum total upload size exceeded, size: {total} bytes, "
            f"maximum: {options.max_total_bytes} bytes.",
        )


def validate_files(
    files: Iterable[Tuple[str, int]],
    total_size: int,
    options: UploadOptions,
) -> ValidationReport:
    """Run every rule over ``files`` and the aggregate ``total_size``.

    ``files`` yields ``(filename, size)`` pairs in arrival order. All checks
    run; the report lists every violation, per file first (extension, then
    size) and the aggregate last.
    """
    report = ValidationReport()
    for filename, size in files:
        check_extension(filename, options, report)
        check_file_size(filename, size, options, report)
    check_total_size(total_size, options, report)
    return report


__all__ = [
    "ViolationKind",
    "Violation",
    "ValidationReport",
    "extension_of",
    "check_extension",
    "check_file_size",
    "check_total_size",
    "validate_files",
]
