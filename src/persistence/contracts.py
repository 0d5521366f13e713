"""Persistence protocol contracts."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from persistence.models import CacheMetadata, Row, StoredData, StoredFile


class RecordStore(Protocol):
    def save_file(
        self, file_name: str, rows: Sequence[Row], year: int, month: int, type: str
    ) -> str: ...

    def get_file(self, file_id: str) -> StoredData | None: ...

    def list_files(
        self,
        years: Iterable[int] | None = None,
        months: Iterable[int] | None = None,
        types: Iterable[str] | None = None,
    ) -> list[StoredFile]: ...

    def get_metadata(self) -> CacheMetadata: ...


__all__ = ["RecordStore"]
