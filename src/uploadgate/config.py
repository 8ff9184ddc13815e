from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

StorageStrategy = Literal["stream", "move"]

UNBOUNDED = sys.maxsize


class UploadOptions(BaseModel):
    """Policy and placement rules for one upload pipeline.

    Instances are frozen; build a new one to change any value.
    """

    model_config = ConfigDict(frozen=True)

    storage_root: Path = Path("uploads")
    # Empty means every extension is accepted.
    allowed_extensions: Tuple[str, ...] = ()
    max_total_bytes: int = Field(default=UNBOUNDED, ge=0)
    max_file_bytes: int = Field(default=UNBOUNDED, ge=0)
    persist_to_disk: bool = True
    retain_in_memory_copy: bool = False
    path_relative_to_cwd: bool = True
    use_timestamp_subdirectories: bool = True
    storage_strategy: StorageStrategy = "stream"
    temp_dir: Optional[Path] = None
    spool_max_size: int = 1024 * 1024
    max_field_bytes: int = 1024 * 1024
    max_fields: int = Field(default=1000, ge=0)
    max_files: int = Field(default=1000, ge=0)

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _split_extensions(cls, value):
        if isinstance(value, str):
            return tuple(ext.strip() for ext in value.split(",") if ext.strip())
        return value


class Settings(BaseSettings):
    """Environment driven configuration for the upload service.

    Values are read from ``UPLOADGATE_*`` variables and from ``.env`` in the
    working directory; real environment variables win over ``.env``.
    """

    model_config = SettingsConfigDict(
        env_prefix="UPLOADGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = "INFO"
    log_file: Optional[str] = None

    storage_root: str = "uploads"
    allowed_extensions: str = ""  # comma separated, e.g. "jpg,png"
    max_total_bytes: Optional[int] = None
    max_file_bytes: Optional[int] = None
    persist_to_disk: bool = True
    retain_in_memory_copy: bool = False
    path_relative_to_cwd: bool = True
    use_timestamp_subdirectories: bool = True
    storage_strategy: StorageStrategy = "stream"
    temp_dir: Optional[str] = None
    max_fields: int = 1000
    max_files: int = 1000

    def upload_options(self) -> UploadOptions:
        """Build the immutable :class:`UploadOptions` for a pipeline."""
        return UploadOptions(
            storage_root=Path(self.storage_root),
            allowed_extensions=self.allowed_extensions,
            max_total_bytes=self.max_total_bytes if self.max_total_bytes is not None else UNBOUNDED,
            max_file_bytes=self.max_file_bytes if self.max_file_bytes is not None else UNBOUNDED,
            persist_to_disk=self.persist_to_disk,
            retain_in_memory_copy=self.retain_in_memory_copy,
            path_relative_to_cwd=self.path_relative_to_cwd,
            use_timestamp_subdirectories=self.use_timestamp_subdirectories,
            storage_strategy=self.storage_strategy,
            temp_dir=Path(self.temp_dir) if self.temp_dir else None,
            max_fields=self.max_fields,
            max_files=self.max_files,
        )


config = Settings()

__all__ = ["Settings", "UploadOptions", "StorageStrategy", "UNBOUNDED", "config"]
