"""Cache-layer exceptions."""

from __future__ import annotations


class CacheError(Exception):
    """Base exception for cache failures."""


class StorageFailure(CacheError):
    """Raised when the storage engine rejects a read or write."""


class CachedFileNotFoundError(CacheError):
    """Raised when a referenced file id is not cached."""

    def __init__(self, file_id: str) -> None:
        super().__init__(f"Cached file not found: {file_id}")
        self.file_id = file_id


class EmptySelectionError(CacheError):
    """Raised by bulk loaders when no cached file matches the filters."""


class LoadInProgressError(CacheError):
    """Raised when a bulk load starts while another one is running."""


__all__ = [
    "CacheError",
    "CachedFileNotFoundError",
    "EmptySelectionError",
    "LoadInProgressError",
    "StorageFailure",
]
