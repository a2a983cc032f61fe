"""Exception hierarchy shared by the fetch, count and storage layers."""

from __future__ import annotations

from pathlib import Path


class CharFreqError(Exception):
    """Base exception for charfreq errors."""


class FetchError(CharFreqError):
    """Raised when a repository cannot be fetched or listed."""


class FileReadError(CharFreqError):
    """Raised when a single file cannot be read or decoded.

    Non-fatal: the scan records it and moves on to the next file.
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = str(path)
        self.reason = reason


class StorageError(CharFreqError):
    """Raised when the statistics database cannot be read or written."""
