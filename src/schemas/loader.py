"""Bulk loader progress and statistics schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class LoadProgress(BaseModel):
    stage: str
    current: int
    total: int
    percentage: int
    details: dict[str, Any] | None = None


class LoaderCacheStats(BaseModel):
    total_files: int
    total_records: int
    years: list[int] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)


__all__ = ["LoadProgress", "LoaderCacheStats"]
