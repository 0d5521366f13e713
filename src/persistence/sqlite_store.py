"""SQLite-backed record store for cached CSV datasets."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from persistence.errors import StorageFailure
from persistence.models import StoredData, StoredFile
from persistence.serialization import compact_json_dumps, json_loads


MEMORY_PATH = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS csv_data (
    id TEXT PRIMARY KEY,
    file_name TEXT NOT NULL,
    year INTEGER NOT NULL,
    month INTEGER NOT NULL,
    type TEXT NOT NULL,
    upload_date TEXT NOT NULL,
    size INTEGER NOT NULL,
    record_count INTEGER NOT NULL,
    data_json TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_csv_data_year ON csv_data(year);
CREATE INDEX IF NOT EXISTS idx_csv_data_month ON csv_data(month);
CREATE INDEX IF NOT EXISTS idx_csv_data_type ON csv_data(type);
CREATE INDEX IF NOT EXISTS idx_csv_data_year_month ON csv_data(year, month);
CREATE INDEX IF NOT EXISTS idx_csv_data_year_type ON csv_data(year, type);
CREATE INDEX IF NOT EXISTS idx_csv_data_upload_date ON csv_data(upload_date);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value_json TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS custom_data (
    key TEXT PRIMARY KEY,
    value_json TEXT NOT NULL
);
"""

# Lookup index -> indexed columns.
INDEXES: dict[str, tuple[str, ...]] = {
    "idx_csv_data_year": ("year",),
    "idx_csv_data_month": ("month",),
    "idx_csv_data_type": ("type",),
    "idx_csv_data_year_month": ("year", "month"),
    "idx_csv_data_year_type": ("year", "type"),
}

# (year given, month given, type given) -> index to scan, None for a full scan.
# Filters not covered by the chosen index are applied in a linear pass.
INDEX_DECISIONS: dict[tuple[bool, bool, bool], str | None] = {
    (True, True, False): "idx_csv_data_year_month",
    (True, False, True): "idx_csv_data_year_type",
    (True, False, False): "idx_csv_data_year",
    (False, False, True): "idx_csv_data_type",
    (False, True, False): "idx_csv_data_month",
    (True, True, True): "idx_csv_data_year_month",
    (False, True, True): "idx_csv_data_type",
    (False, False, False): None,
}


@dataclass(frozen=True)
class IndexPlan:
    index: str | None
    columns: tuple[str, ...]
    residual: tuple[str, ...]


def plan_index(
    year: int | None = None,
    month: int | None = None,
    type: str | None = None,
) -> IndexPlan:
    """Pick the most selective index for the supplied filters."""
    supplied = {
        "year": year is not None,
        "month": month is not None,
        "type": type is not None and type != "",
    }
    index = INDEX_DECISIONS[(supplied["year"], supplied["month"], supplied["type"])]
    columns = INDEXES[index] if index else ()
    residual = tuple(
        name for name, present in supplied.items() if present and name not in columns
    )
    return IndexPlan(index=index, columns=columns, residual=residual)


class SqliteStore:
    def __init__(self, path: str | Path, *, timeout: float = 30.0) -> None:
        self._path = path if str(path) == MEMORY_PATH else Path(path)
        self._timeout = timeout
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path | str:
        return self._path

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def initialize(self) -> sqlite3.Connection:
        """Open the shared connection once; later calls return the same handle."""
        with self._lock:
            if self._conn is not None:
                return self._conn
            try:
                if isinstance(self._path, Path):
                    self._path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    str(self._path),
                    timeout=self._timeout,
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                conn.executescript(_SCHEMA)
            except (sqlite3.Error, OSError) as exc:
                raise StorageFailure(f"Cannot open cache database {self._path}: {exc}") from exc
            self._conn = conn
            return conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside one write transaction, holding the store lock."""
        with self._lock:
            conn = self.initialize()
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StorageFailure(f"Cannot start transaction: {exc}") from exc
            try:
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                _rollback(conn)
                raise StorageFailure(str(exc)) from exc
            except BaseException:
                _rollback(conn)
                raise

    # csv_data

    def insert_file(self, conn: sqlite3.Connection, stored: StoredData, data_json: str) -> None:
        info = stored.file_info
        conn.execute(
            """
            INSERT INTO csv_data (
                id, file_name, year, month, type, upload_date, size, record_count, data_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                stored.id,
                info.file_name,
                info.year,
                info.month,
                info.type,
                info.upload_date,
                info.size,
                info.record_count,
                data_json,
            ),
        )

    def delete_file(self, conn: sqlite3.Connection, file_id: str) -> int:
        cur = conn.execute("DELETE FROM csv_data WHERE id = ?", (file_id,))
        return cur.rowcount

    def clear_files(self, conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM csv_data")

    def get_file(self, file_id: str) -> StoredData | None:
        row = self._fetch_one("SELECT * FROM csv_data WHERE id = ?", (file_id,))
        return _row_to_stored(row) if row else None

    def select_files(
        self,
        year: int | None = None,
        month: int | None = None,
        type: str | None = None,
    ) -> list[StoredData]:
        plan = plan_index(year, month, type)
        wanted: dict[str, Any] = {"year": year, "month": month, "type": type}
        if plan.index is None:
            rows = self._fetch_all("SELECT * FROM csv_data")
        else:
            clause = " AND ".join(f"{column} = ?" for column in plan.columns)
            rows = self._fetch_all(
                f"SELECT * FROM csv_data INDEXED BY {plan.index} WHERE {clause}",
                tuple(wanted[column] for column in plan.columns),
            )
        results: list[StoredData] = []
        for row in rows:
            if any(row[column] != wanted[column] for column in plan.residual):
                continue
            results.append(_row_to_stored(row))
        return results

    def count_files(self) -> int:
        row = self._fetch_one("SELECT COUNT(*) AS count FROM csv_data")
        return int(row["count"]) if row else 0

    # metadata

    def get_metadata_value(self, key: str) -> Any | None:
        row = self._fetch_one("SELECT value_json FROM metadata WHERE key = ?", (key,))
        return json_loads(row["value_json"]) if row else None

    def put_metadata_value(self, conn: sqlite3.Connection, key: str, value: Any) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO metadata (key, value_json) VALUES (?, ?)",
            (key, compact_json_dumps(value)),
        )

    def read_metadata_value(self, conn: sqlite3.Connection, key: str) -> Any | None:
        row = conn.execute("SELECT value_json FROM metadata WHERE key = ?", (key,)).fetchone()
        return json_loads(row["value_json"]) if row else None

    def clear_metadata(self, conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM metadata")

    # custom_data

    def get_custom_value(self, key: str) -> Any | None:
        row = self._fetch_one("SELECT value_json FROM custom_data WHERE key = ?", (key,))
        return json_loads(row["value_json"]) if row else None

    def put_custom_value(self, key: str, value: Any) -> None:
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO custom_data (key, value_json) VALUES (?, ?)",
                (key, compact_json_dumps(value)),
            )

    def delete_custom_value(self, key: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM custom_data WHERE key = ?", (key,))

    def _fetch_one(self, query: str, params: tuple[object, ...] = ()) -> sqlite3.Row | None:
        with self._lock:
            conn = self.initialize()
            try:
                return conn.execute(query, params).fetchone()
            except sqlite3.Error as exc:
                raise StorageFailure(str(exc)) from exc

    def _fetch_all(self, query: str, params: tuple[object, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            conn = self.initialize()
            try:
                return conn.execute(query, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageFailure(str(exc)) from exc


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.execute("ROLLBACK")


def _row_to_stored(row: sqlite3.Row) -> StoredData:
    info = StoredFile(
        id=row["id"],
        file_name=row["file_name"],
        year=row["year"],
        month=row["month"],
        upload_date=row["upload_date"],
        size=row["size"],
        record_count=row["record_count"],
        type=row["type"],
    )
    return StoredData(id=info.id, file_info=info, data=json_loads(row["data_json"]))


__all__ = ["INDEXES", "INDEX_DECISIONS", "IndexPlan", "MEMORY_PATH", "SqliteStore", "plan_index"]
