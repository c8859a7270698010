"""Exception hierarchy for File Relay."""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for all File Relay errors."""


class ConfigurationError(RelayError):
    """The pipeline cannot start with the given settings (fatal)."""


class ScanError(RelayError):
    """Listing the source folder failed for this tick."""


class ChannelError(RelayError):
    """A message could not be dispatched through the channel."""


class TransferError(RelayError):
    """Writing a file into the destination failed.

    ``record`` holds the TransferRecord describing the failed attempt.
    """

    def __init__(self, message: str, record: Any = None):
        super().__init__(message)
        self.record = record
