"""Logging for the package and the server entry point.

Package loggers never carry their own level; everything is decided on the
root logger, either from the ``logging`` section of the YAML file named by
``UPLOADGATE_CONFIG`` or from ``UPLOADGATE_LOG_LEVEL`` via :func:`setup_logging`.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
from functools import lru_cache

import yaml

from .config import Settings


DEFAULTS = {
    "file": None,
    "max_bytes": 1024 * 1024,
    "backup_count": 3,
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


@lru_cache()
def _load_config() -> dict:
    """Load the YAML configuration file named by ``UPLOADGATE_CONFIG``."""
    config_path = os.environ.get("UPLOADGATE_CONFIG", "config.yml")
    try:
        with open(Path(config_path), encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}
    except FileNotFoundError:
        return {}


@lru_cache()
def _configure_root() -> int:
    """Configure the root logger once and return the chosen level.

    The YAML ``level`` wins; without it ``Settings().log_level`` is used.
    """
    cfg = _load_config().get("logging") or {}
    level = _level(cfg.get("level") or Settings().log_level)

    root = logging.getLogger()
    root.setLevel(level)

    file_name = cfg.get("file", DEFAULTS["file"])
    if file_name and not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        log_file = Path(file_name)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=int(cfg.get("max_bytes", DEFAULTS["max_bytes"])),
            backupCount=int(cfg.get("backup_count", DEFAULTS["backup_count"])),
        )
        handler.setFormatter(logging.Formatter(cfg.get("format", DEFAULTS["format"])))
        root.addHandler(handler)
    return level


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` after the root logger is configured."""
    _configure_root()
    return logging.getLogger(name)


def setup_logging(level: str, log_file: Path | str | None = None) -> None:
    """Set the root level and add console (and optional file) output.

    Handlers already on the root logger, such as the rotating file from the
    YAML configuration, are kept.
    """
    _configure_root()
    root = logging.getLogger()
    root.setLevel(_level(level))
    formatter = logging.Formatter((_load_config().get("logging") or {}).get("format") or DEFAULTS["format"])

    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


__all__ = ["get_logger", "setup_logging"]
