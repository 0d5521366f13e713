"""Lightweight persistence records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

Scalar = Union[str, int, float, bool, None]
Row = dict[str, Any]


@dataclass(frozen=True)
class StoredFile:
    id: str
    file_name: str
    year: int
    month: int
    upload_date: str
    size: int
    record_count: int
    type: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "year": self.year,
            "month": self.month,
            "uploadDate": self.upload_date,
            "size": self.size,
            "recordCount": self.record_count,
            "type": self.type,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StoredFile":
        return cls(
            id=str(payload["id"]),
            file_name=str(payload.get("fileName") or ""),
            year=int(payload["year"]),
            month=int(payload["month"]),
            upload_date=str(payload.get("uploadDate") or ""),
            size=int(payload.get("size") or 0),
            record_count=int(payload.get("recordCount") or 0),
            type=str(payload["type"]),
        )


@dataclass(frozen=True)
class StoredData:
    id: str
    file_info: StoredFile
    data: list[Row]


@dataclass(frozen=True)
class CacheMetadata:
    files: tuple[StoredFile, ...]
    last_updated: str
    total_records: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "files": [item.to_payload() for item in self.files],
            "lastUpdated": self.last_updated,
            "totalRecords": self.total_records,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CacheMetadata":
        return cls(
            files=tuple(StoredFile.from_payload(item) for item in payload.get("files") or []),
            last_updated=str(payload.get("lastUpdated") or ""),
            total_records=int(payload.get("totalRecords") or 0),
        )


@dataclass(frozen=True)
class CacheStats:
    total_files: int
    total_records: int
    total_size: int
    years_list: list[int] = field(default_factory=list)
    file_types: list[str] = field(default_factory=list)


__all__ = [
    "CacheMetadata",
    "CacheStats",
    "Row",
    "Scalar",
    "StoredData",
    "StoredFile",
]
