"""Persistence subsystem exports."""

from persistence.cache import CacheService, default_cache_service, get_cache_service
from persistence.errors import (
    CacheError,
    CachedFileNotFoundError,
    EmptySelectionError,
    LoadInProgressError,
    StorageFailure,
)
from persistence.ledger import MetadataLedger
from persistence.models import CacheMetadata, CacheStats, Row, StoredData, StoredFile
from persistence.sqlite_store import SqliteStore

__all__ = [
    "CacheError",
    "CacheMetadata",
    "CacheService",
    "CacheStats",
    "CachedFileNotFoundError",
    "EmptySelectionError",
    "LoadInProgressError",
    "MetadataLedger",
    "Row",
    "SqliteStore",
    "StorageFailure",
    "StoredData",
    "StoredFile",
    "default_cache_service",
    "get_cache_service",
]
