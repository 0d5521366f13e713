"""Consolidation request and result schemas."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

SortOrder = Literal["asc", "desc"]
AggregateFunction = Literal["sum", "avg", "min", "max", "count"]
Month = Annotated[int, Field(ge=1, le=12)]


class ConsolidationOptions(BaseModel):
    """Which cached files to merge and how to post-process the rows.

    Values inside ``years``/``months``/``types`` are alternatives; the three
    dimensions are combined with AND. An omitted or empty list matches all.
    """

    years: list[int] | None = None
    months: list[Month] | None = None
    types: list[str] | None = None
    deduplicate_by: str | None = Field(
        default=None, validation_alias=AliasChoices("deduplicate_by", "deduplicateBy")
    )
    sort_by: str | None = Field(
        default=None, validation_alias=AliasChoices("sort_by", "sortBy")
    )
    sort_order: SortOrder = Field(
        default="asc", validation_alias=AliasChoices("sort_order", "sortOrder")
    )

    model_config = ConfigDict(extra="forbid")


class ValueRange(BaseModel):
    min: int
    max: int


class SourceFile(BaseModel):
    id: str
    file_name: str
    type: str
    year: int
    month: int
    upload_date: str
    record_count: int


class ConsolidatedMetadata(BaseModel):
    total_records: int
    files_included: int
    year_range: ValueRange | None = None
    month_range: ValueRange | None = None
    types: list[str] = Field(default_factory=list)
    consolidated_at: str
    sources: list[SourceFile] = Field(default_factory=list)


class ConsolidatedResult(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    metadata: ConsolidatedMetadata


class ConsolidatedStats(BaseModel):
    total_records: int
    files_included: int
    year_range: ValueRange | None = None
    month_range: ValueRange | None = None
    types: list[str] = Field(default_factory=list)
    size_in_mb: float


class PeriodValue(BaseModel):
    year: int
    month: int
    value: float
    count: int


class PeriodComparison(BaseModel):
    period1: PeriodValue
    period2: PeriodValue
    difference: float
    percentage_change: float


__all__ = [
    "AggregateFunction",
    "ConsolidatedMetadata",
    "ConsolidatedResult",
    "ConsolidatedStats",
    "ConsolidationOptions",
    "PeriodComparison",
    "PeriodValue",
    "SortOrder",
    "SourceFile",
    "ValueRange",
]
