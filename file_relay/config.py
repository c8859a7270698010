"""Configuration management for File Relay.

Stores and retrieves pipeline settings from a JSON config file,
by default in the platform-appropriate application data directory.
"""

import json
import logging
from pathlib import Path
from typing import Any

from file_relay.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from file_relay.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_DIRECTORY = "dir_src"
DEFAULT_DESTINATION_DIRECTORY = "dir_target"
DEFAULT_FILE_PATTERN = "*.txt"
DEFAULT_POLL_INTERVAL_MILLIS = 1000
DEFAULT_TEMPORARY_FILE_SUFFIX = ".writing"

DEFAULT_CONFIG: dict[str, Any] = {
    "source_directory": DEFAULT_SOURCE_DIRECTORY,
    "destination_directory": DEFAULT_DESTINATION_DIRECTORY,
    "file_pattern": DEFAULT_FILE_PATTERN,
    "poll_interval_millis": DEFAULT_POLL_INTERVAL_MILLIS,
    # ---- mover ----
    "auto_create_directory": True,
    "delete_source_files": True,  # False = copy, leave the source in place
    "temporary_file_suffix": DEFAULT_TEMPORARY_FILE_SUFFIX,
    "preserve_timestamp": False,
    # ---- watcher ----
    "rescan_on_modification": False,  # re-emit a seen file when its mtime changes
    # ---- logging ----
    "log_level": "INFO",
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = Path(path) if path else get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    @property
    def path(self) -> Path:
        """Return the backing JSON file path."""
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as fh:
                    stored = json.load(fh)
                if not isinstance(stored, dict):
                    raise ValueError("top-level JSON value is not an object")
                # Merge stored values over defaults so new keys get defaults
                self._data = {**DEFAULT_CONFIG, **stored}
                logger.info("Configuration loaded from %s", self._path)
            except (json.JSONDecodeError, ValueError, OSError) as exc:
                logger.warning("Could not read config (%s); using defaults.", exc)
                self._data = dict(DEFAULT_CONFIG)
        else:
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.info("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- directories ----

    @property
    def source_directory(self) -> str:
        """Return the polled source directory."""
        return self._data["source_directory"]

    @source_directory.setter
    def source_directory(self, value: str) -> None:
        self._data["source_directory"] = str(value)

    @property
    def destination_directory(self) -> str:
        """Return the directory files are moved into."""
        return self._data["destination_directory"]

    @destination_directory.setter
    def destination_directory(self, value: str) -> None:
        self._data["destination_directory"] = str(value)

    # ---- polling ----

    @property
    def file_pattern(self) -> str:
        """Return the glob pattern source file names must match."""
        return self._data.get("file_pattern") or DEFAULT_FILE_PATTERN

    @file_pattern.setter
    def file_pattern(self, value: str) -> None:
        """Set the glob pattern (blank resets to the default)."""
        self._data["file_pattern"] = value.strip() or DEFAULT_FILE_PATTERN

    @property
    def poll_interval_millis(self) -> int:
        """Return the delay between polls in milliseconds."""
        return int(self._data.get("poll_interval_millis", DEFAULT_POLL_INTERVAL_MILLIS))

    @poll_interval_millis.setter
    def poll_interval_millis(self, value: int) -> None:
        """Set the poll delay (minimum 1 ms)."""
        self._data["poll_interval_millis"] = max(1, int(value))

    @property
    def rescan_on_modification(self) -> bool:
        """Return whether a modified, already-emitted file is emitted again."""
        return bool(self._data.get("rescan_on_modification", False))

    @rescan_on_modification.setter
    def rescan_on_modification(self, value: bool) -> None:
        self._data["rescan_on_modification"] = bool(value)

    # ---- mover ----

    @property
    def auto_create_directory(self) -> bool:
        """Return whether a missing destination directory is created."""
        return bool(self._data.get("auto_create_directory", True))

    @auto_create_directory.setter
    def auto_create_directory(self, value: bool) -> None:
        self._data["auto_create_directory"] = bool(value)

    @property
    def delete_source_files(self) -> bool:
        """Return whether the source is removed after a successful write."""
        return bool(self._data.get("delete_source_files", True))

    @delete_source_files.setter
    def delete_source_files(self, value: bool) -> None:
        self._data["delete_source_files"] = bool(value)

    @property
    def temporary_file_suffix(self) -> str:
        """Return the suffix used for in-progress destination writes."""
        return self._data.get("temporary_file_suffix") or DEFAULT_TEMPORARY_FILE_SUFFIX

    @temporary_file_suffix.setter
    def temporary_file_suffix(self, value: str) -> None:
        self._data["temporary_file_suffix"] = value.strip() or DEFAULT_TEMPORARY_FILE_SUFFIX

    @property
    def preserve_timestamp(self) -> bool:
        """Return whether the source mtime is copied onto the destination."""
        return bool(self._data.get("preserve_timestamp", False))

    @preserve_timestamp.setter
    def preserve_timestamp(self, value: bool) -> None:
        self._data["preserve_timestamp"] = bool(value)

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._data["log_level"] = value.strip().upper() or "INFO"

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return int(self._data.get("max_log_size_mb", 10))

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._data["max_log_size_mb"] = max(1, int(value))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return int(self._data.get("log_backup_count", 3))

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        """Set the number of rotated log backups to keep."""
        self._data["log_backup_count"] = max(0, int(value))

    # ---- convenience ----

    def is_configured(self) -> bool:
        """Return True when both source and destination directories are set."""
        return bool(self.source_directory) and bool(self.destination_directory)
