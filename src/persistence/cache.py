"""Cache service: save, look up and delete cached CSV datasets."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Sequence

from persistence.errors import CachedFileNotFoundError
from persistence.ledger import MetadataLedger
from persistence.models import CacheMetadata, CacheStats, Row, StoredData, StoredFile
from persistence.serialization import compact_json_dumps
from persistence.sqlite_store import SqliteStore


logger = logging.getLogger(__name__)


class CacheService:
    def __init__(self, store: SqliteStore) -> None:
        self._store = store
        self._ledger = MetadataLedger(store)
        self._last_stamp = 0

    @property
    def store(self) -> SqliteStore:
        return self._store

    @property
    def ledger(self) -> MetadataLedger:
        return self._ledger

    def initialize(self) -> None:
        self._store.initialize()

    def save_file(
        self,
        file_name: str,
        rows: Sequence[Row],
        year: int,
        month: int,
        type: str,
    ) -> str:
        """Persist one dataset and register it in the ledger atomically."""
        if not 1 <= int(month) <= 12:
            raise ValueError(f"month must be within 1..12, got {month}")
        if not type:
            raise ValueError("type must be a non-empty record type")
        data = [dict(row) for row in rows]
        data_json = compact_json_dumps(data)
        with self._store.lock:
            file_id = f"{type}_{int(year)}_{int(month)}_{self._next_stamp()}"
            file_info = StoredFile(
                id=file_id,
                file_name=file_name,
                year=int(year),
                month=int(month),
                upload_date=datetime.now(timezone.utc).isoformat(),
                size=len(data_json.encode("utf-8")),
                record_count=len(data),
                type=type,
            )
            stored = StoredData(id=file_id, file_info=file_info, data=data)
            with self._store.transaction() as conn:
                self._store.insert_file(conn, stored, data_json)
                self._ledger.append(conn, file_info)
        logger.info(
            "Cached %s as %s (%d records, %d bytes)",
            file_name,
            file_id,
            file_info.record_count,
            file_info.size,
        )
        return file_id

    def get_file(self, file_id: str) -> StoredData | None:
        return self._store.get_file(file_id)

    def get_files_by_year(self, year: int) -> list[StoredData]:
        return self._store.select_files(year=year)

    def get_files_by_month(self, year: int, month: int) -> list[StoredData]:
        return self._store.select_files(year=year, month=month)

    def get_files_by_type(self, type: str) -> list[StoredData]:
        return self._store.select_files(type=type)

    def get_files_by_year_and_type(self, year: int, type: str) -> list[StoredData]:
        return self._store.select_files(year=year, type=type)

    def get_filtered_files(
        self,
        year: int | None = None,
        month: int | None = None,
        type: str | None = None,
    ) -> list[StoredData]:
        return self._store.select_files(year=year, month=month, type=type or None)

    def list_files(
        self,
        years: Iterable[int] | None = None,
        months: Iterable[int] | None = None,
        types: Iterable[str] | None = None,
    ) -> list[StoredFile]:
        """Filter ledger entries; values match any-of within a dimension."""
        year_set = set(years) if years else None
        month_set = set(months) if months else None
        type_set = set(types) if types else None
        files = self._ledger.read().files
        return [
            item
            for item in files
            if (year_set is None or item.year in year_set)
            and (month_set is None or item.month in month_set)
            and (type_set is None or item.type in type_set)
        ]

    def delete_file(self, file_id: str) -> None:
        with self._store.transaction() as conn:
            removed = self._ledger.remove(conn, file_id)
            if removed is None:
                raise CachedFileNotFoundError(file_id)
            self._store.delete_file(conn, file_id)
        logger.info("Deleted cached file %s (%d records)", file_id, removed.record_count)

    def delete_files_by_year(self, year: int) -> int:
        targets = [item.id for item in self._ledger.read().files if item.year == year]
        for file_id in targets:
            self.delete_file(file_id)
        return len(targets)

    def delete_files_by_month(self, year: int, month: int) -> int:
        targets = [
            item.id
            for item in self._ledger.read().files
            if item.year == year and item.month == month
        ]
        for file_id in targets:
            self.delete_file(file_id)
        return len(targets)

    def clear_cache(self) -> None:
        with self._store.transaction() as conn:
            self._store.clear_files(conn)
            self._ledger.reset(conn)
        logger.info("Cache cleared")

    def get_metadata(self) -> CacheMetadata:
        return self._ledger.read()

    def get_cache_size(self) -> int:
        return sum(item.size for item in self._ledger.read().files)

    def get_cache_stats(self) -> CacheStats:
        metadata = self._ledger.read()
        return CacheStats(
            total_files=len(metadata.files),
            total_records=metadata.total_records,
            total_size=sum(item.size for item in metadata.files),
            years_list=sorted({item.year for item in metadata.files}),
            file_types=sorted({item.type for item in metadata.files}),
        )

    def set_custom_data(self, key: str, value: Any) -> None:
        self._store.put_custom_value(key, value)

    def get_custom_data(self, key: str, default: Any = None) -> Any:
        value = self._store.get_custom_value(key)
        return default if value is None else value

    def delete_custom_data(self, key: str) -> None:
        self._store.delete_custom_value(key)

    def _next_stamp(self) -> int:
        stamp = int(time.time() * 1000)
        if stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        self._last_stamp = stamp
        return stamp


@lru_cache(maxsize=None)
def get_cache_service(path: str, timeout: float = 30.0) -> CacheService:
    """Return the process-wide cache service for a database path."""
    store = SqliteStore(path, timeout=timeout)
    store.initialize()
    return CacheService(store)


def default_cache_service() -> CacheService:
    from core.config import get_settings

    settings = get_settings()
    return get_cache_service(str(Path(settings.cache_path)), settings.sqlite_timeout)


__all__ = ["CacheService", "default_cache_service", "get_cache_service"]
