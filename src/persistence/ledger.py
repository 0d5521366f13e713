"""Metadata ledger: the denormalized list of cached files and record totals.

The ledger is a single row in the ``metadata`` table. It is the source of
truth for listings and statistics, so it must always mirror ``csv_data``:

* ``files`` holds exactly one entry per stored dataset, without duplicate ids;
* ``total_records`` equals the sum of ``record_count`` over ``files``.

Mutators take the connection of an open store transaction. They are only
called by :class:`persistence.cache.CacheService` while it holds the store
lock, which makes every read-modify-write a single-writer critical section.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from persistence.models import CacheMetadata, StoredFile
from persistence.sqlite_store import SqliteStore


LEDGER_KEY = "cache_metadata"


class MetadataLedger:
    def __init__(self, store: SqliteStore, *, key: str = LEDGER_KEY) -> None:
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def read(self) -> CacheMetadata:
        """Return the full ledger, or an empty one if it was never written."""
        payload = self._store.get_metadata_value(self._key)
        if payload is None:
            return empty_metadata()
        return CacheMetadata.from_payload(payload)

    def append(self, conn: sqlite3.Connection, new_file: StoredFile) -> CacheMetadata:
        current = self._read_in(conn)
        if any(item.id == new_file.id for item in current.files):
            raise ValueError(f"File id already present in ledger: {new_file.id}")
        updated = CacheMetadata(
            files=current.files + (new_file,),
            last_updated=_now_iso(),
            total_records=current.total_records + new_file.record_count,
        )
        self._store.put_metadata_value(conn, self._key, updated.to_payload())
        return updated

    def remove(self, conn: sqlite3.Connection, file_id: str) -> StoredFile | None:
        current = self._read_in(conn)
        removed = next((item for item in current.files if item.id == file_id), None)
        if removed is None:
            return None
        updated = CacheMetadata(
            files=tuple(item for item in current.files if item.id != file_id),
            last_updated=_now_iso(),
            total_records=current.total_records - removed.record_count,
        )
        self._store.put_metadata_value(conn, self._key, updated.to_payload())
        return removed

    def reset(self, conn: sqlite3.Connection) -> None:
        self._store.clear_metadata(conn)

    def _read_in(self, conn: sqlite3.Connection) -> CacheMetadata:
        payload = self._store.read_metadata_value(conn, self._key)
        if payload is None:
            return empty_metadata()
        return CacheMetadata.from_payload(payload)


def empty_metadata() -> CacheMetadata:
    return CacheMetadata(files=(), last_updated=_now_iso(), total_records=0)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


__all__ = ["LEDGER_KEY", "MetadataLedger", "empty_metadata"]
