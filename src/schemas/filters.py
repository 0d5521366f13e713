"""Advanced filter criteria and result schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.consolidation import ConsolidationOptions, Month

FilterOperator = Literal["equals", "contains", "greaterThan", "lessThan", "between", "in"]
PeriodGrouping = Literal["year", "month", "yearMonth"]
Trend = Literal["up", "down", "stable"]

_OPERATOR_ALIASES = {
    "greater_than": "greaterThan",
    "less_than": "lessThan",
    "year_month": "yearMonth",
}


class YearRange(BaseModel):
    start: int
    end: int

    model_config = ConfigDict(extra="forbid")


class MonthRange(BaseModel):
    start: Month
    end: Month

    model_config = ConfigDict(extra="forbid")


class DateRange(BaseModel):
    start: datetime
    end: datetime

    model_config = ConfigDict(extra="forbid")


class CustomFilter(BaseModel):
    field: str
    operator: FilterOperator
    value: Any = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _OPERATOR_ALIASES.get(value, value)
        return value

    def describe(self) -> str:
        return f"{self.field} {self.operator} {self.value}"


class FilterCriteria(ConsolidationOptions):
    year_range: YearRange | None = Field(
        default=None, validation_alias=AliasChoices("year_range", "yearRange")
    )
    month_range: MonthRange | None = Field(
        default=None, validation_alias=AliasChoices("month_range", "monthRange")
    )
    date_range: DateRange | None = Field(
        default=None, validation_alias=AliasChoices("date_range", "dateRange")
    )
    custom_filters: list[CustomFilter] = Field(
        default_factory=list,
        validation_alias=AliasChoices("custom_filters", "customFilters"),
    )


class FilteredMetadata(BaseModel):
    total_records: int
    filtered_records: int
    reduction_percentage: int
    filters_summary: list[str] = Field(default_factory=list)
    years_included: list[int] = Field(default_factory=list)
    months_included: list[int] = Field(default_factory=list)
    types_included: list[str] = Field(default_factory=list)


class FilteredDataResult(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    metadata: FilteredMetadata


class PeriodSelector(BaseModel):
    year: int
    month: Month | None = None

    model_config = ConfigDict(extra="forbid")


class TrendComparison(BaseModel):
    period1_value: float
    period2_value: float
    difference: float
    percentage_change: float
    trend: Trend


class PeriodComparisonResult(BaseModel):
    period1_data: list[dict[str, Any]] = Field(default_factory=list)
    period2_data: list[dict[str, Any]] = Field(default_factory=list)
    comparison: TrendComparison


class PeriodSummaryEntry(BaseModel):
    year: int | None = None
    month: int | None = None
    value: float
    record_count: int

    @model_validator(mode="after")
    def _require_period(self) -> "PeriodSummaryEntry":
        if self.year is None and self.month is None:
            raise ValueError("Summary entry needs a year or a month.")
        return self


def normalize_grouping(value: str) -> str:
    return _OPERATOR_ALIASES.get(value, value)


__all__ = [
    "CustomFilter",
    "DateRange",
    "FilterCriteria",
    "FilterOperator",
    "FilteredDataResult",
    "FilteredMetadata",
    "MonthRange",
    "PeriodComparisonResult",
    "PeriodGrouping",
    "PeriodSelector",
    "PeriodSummaryEntry",
    "Trend",
    "TrendComparison",
    "YearRange",
    "normalize_grouping",
]
