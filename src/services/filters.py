"""Advanced filtering, period comparison and summaries over consolidated data."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

from persistence.models import Row
from schemas.consolidation import AggregateFunction, ConsolidationOptions
from schemas.filters import (
    CustomFilter,
    FilterCriteria,
    FilteredDataResult,
    FilteredMetadata,
    PeriodComparisonResult,
    PeriodGrouping,
    PeriodSelector,
    PeriodSummaryEntry,
    Trend,
    TrendComparison,
    normalize_grouping,
)
from services.aggregation import AGGREGATE_FUNCTIONS, aggregate, group_rows, numeric_values, to_number
from services.consolidation import ConsolidationService, coerce_options, percentage_change
from services.export import rows_to_csv, write_csv
from sicop.record_types import FILE_SOURCE_FIELD, MONTH_FIELD, UPLOAD_DATE_FIELD, YEAR_FIELD


logger = logging.getLogger(__name__)

# Percent change that must be exceeded before a trend is "up" or "down".
TREND_THRESHOLD_PERCENT = 1.0

QUARTER_MONTHS: dict[int, list[int]] = {
    1: [1, 2, 3],
    2: [4, 5, 6],
    3: [7, 8, 9],
    4: [10, 11, 12],
}

SEMESTER_MONTHS: dict[int, list[int]] = {
    1: [1, 2, 3, 4, 5, 6],
    2: [7, 8, 9, 10, 11, 12],
}

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

UNKNOWN_TYPE = "Unknown"
DEFAULT_EXPORT_NAME = "datos_filtrados.csv"


class AdvancedFilterService:
    def __init__(self, consolidation: ConsolidationService) -> None:
        self._consolidation = consolidation

    def filter_consolidated_data(
        self, criteria: FilterCriteria | Mapping[str, Any] | None = None
    ) -> FilteredDataResult:
        wanted = coerce_options(criteria, FilterCriteria)
        summary: list[str] = []

        years = expand_years(wanted)
        months = expand_months(wanted)
        consolidated = self._consolidation.consolidate_data(
            ConsolidationOptions(
                years=years,
                months=months,
                types=wanted.types,
                deduplicate_by=wanted.deduplicate_by,
                sort_by=wanted.sort_by,
                sort_order=wanted.sort_order,
            )
        )
        rows = consolidated.data
        original_count = len(rows)

        if years:
            summary.append(f"Years: {', '.join(str(year) for year in years)}")
        if months:
            summary.append(
                f"Months: {', '.join(MONTH_ABBREVIATIONS[month - 1] for month in months)}"
            )
        if wanted.types:
            summary.append(f"Types: {', '.join(wanted.types)}")

        if wanted.date_range is not None:
            start = _as_utc(wanted.date_range.start)
            end = _as_utc(wanted.date_range.end)
            rows = [row for row in rows if _uploaded_between(row, start, end)]
            summary.append(f"Upload date: {start.date().isoformat()} - {end.date().isoformat()}")

        for custom in wanted.custom_filters:
            rows = apply_custom_filter(rows, custom)
            summary.append(custom.describe())

        type_by_source = {
            (source.file_name, source.upload_date): source.type
            for source in consolidated.metadata.sources
        }
        types_included = sorted(
            {
                type_by_source.get(
                    (row.get(FILE_SOURCE_FIELD), row.get(UPLOAD_DATE_FIELD)), UNKNOWN_TYPE
                )
                for row in rows
            }
        )

        return FilteredDataResult(
            data=rows,
            metadata=FilteredMetadata(
                total_records=original_count,
                filtered_records=len(rows),
                reduction_percentage=_reduction(original_count, len(rows)),
                filters_summary=summary,
                years_included=sorted({row[YEAR_FIELD] for row in rows if YEAR_FIELD in row}),
                months_included=sorted({row[MONTH_FIELD] for row in rows if MONTH_FIELD in row}),
                types_included=types_included,
            ),
        )

    def filter_by_year_range(
        self, start_year: int, end_year: int, types: Sequence[str] | None = None
    ) -> FilteredDataResult:
        return self.filter_consolidated_data(
            FilterCriteria(
                year_range={"start": start_year, "end": end_year},
                types=list(types) if types else None,
            )
        )

    def filter_by_quarter(
        self, year: int, quarter: int, types: Sequence[str] | None = None
    ) -> FilteredDataResult:
        return self.filter_consolidated_data(
            FilterCriteria(
                years=[year],
                months=quarter_months(quarter),
                types=list(types) if types else None,
            )
        )

    def filter_by_semester(
        self, year: int, semester: int, types: Sequence[str] | None = None
    ) -> FilteredDataResult:
        return self.filter_consolidated_data(
            FilterCriteria(
                years=[year],
                months=semester_months(semester),
                types=list(types) if types else None,
            )
        )

    def compare_periods(
        self,
        period1: PeriodSelector | Mapping[str, Any],
        period2: PeriodSelector | Mapping[str, Any],
        type: str,
        field: str,
    ) -> PeriodComparisonResult:
        first = coerce_options(period1, PeriodSelector)
        second = coerce_options(period2, PeriodSelector)
        result1 = self.filter_consolidated_data(_period_criteria(first, type))
        result2 = self.filter_consolidated_data(_period_criteria(second, type))

        value1 = float(aggregate(numeric_values(result1.data, field), "sum") or 0.0)
        value2 = float(aggregate(numeric_values(result2.data, field), "sum") or 0.0)
        change = percentage_change(value1, value2)
        return PeriodComparisonResult(
            period1_data=result1.data,
            period2_data=result2.data,
            comparison=TrendComparison(
                period1_value=value1,
                period2_value=value2,
                difference=value2 - value1,
                percentage_change=change,
                trend=classify_trend(change),
            ),
        )

    def get_summary_by_period(
        self,
        criteria: FilterCriteria | Mapping[str, Any] | None,
        group_by: PeriodGrouping,
        field: str,
        fn: AggregateFunction,
    ) -> list[PeriodSummaryEntry]:
        """Aggregate ``field`` per year, month or year-month of the filtered rows.

        Groups with no numeric value report 0. Entries are ordered by period.
        """
        grouping = normalize_grouping(group_by)
        if grouping not in ("year", "month", "yearMonth"):
            raise ValueError(f"Unsupported period grouping: {group_by}")
        if fn not in AGGREGATE_FUNCTIONS:
            raise ValueError(f"Unsupported aggregate function: {fn}")

        rows = self.filter_consolidated_data(criteria).data
        if grouping == "year":
            grouped = group_rows(rows, lambda row: (row.get(YEAR_FIELD), None))
        elif grouping == "month":
            grouped = group_rows(rows, lambda row: (None, row.get(MONTH_FIELD)))
        else:
            grouped = group_rows(rows, lambda row: (row.get(YEAR_FIELD), row.get(MONTH_FIELD)))

        entries = [
            PeriodSummaryEntry(
                year=year,
                month=month,
                value=aggregate(numeric_values(members, field), fn) or 0,
                record_count=len(members),
            )
            for (year, month), members in grouped.items()
        ]
        return sorted(entries, key=lambda entry: (entry.year or 0, entry.month or 0))

    def export_filtered_csv(
        self, criteria: FilterCriteria | Mapping[str, Any] | None = None
    ) -> str:
        return rows_to_csv(self.filter_consolidated_data(criteria).data)

    def export_filtered_data_to_csv(
        self,
        criteria: FilterCriteria | Mapping[str, Any] | None = None,
        file_name: str = DEFAULT_EXPORT_NAME,
        *,
        output_dir: str | Path | None = None,
    ) -> Path | None:
        rows = self.filter_consolidated_data(criteria).data
        if not rows:
            logger.warning("No rows to export for %s", file_name)
            return None
        path = write_csv(rows_to_csv(rows), file_name, output_dir)
        logger.info("Exported %d rows to %s", len(rows), path)
        return path


def apply_custom_filter(rows: Sequence[Row], custom: CustomFilter) -> list[Row]:
    """Narrow rows with one field predicate.

    ``between`` without exactly two bounds and ``in`` without a list leave
    the rows unchanged.
    """
    field, operator, value = custom.field, custom.operator, custom.value

    if operator == "equals":
        return [row for row in rows if row.get(field) == value]

    if operator == "contains":
        needle = str(value).lower()
        return [row for row in rows if needle in _text(row.get(field)).lower()]

    if operator in ("greaterThan", "lessThan"):
        bound = to_number(value)
        if bound is None:
            return []
        if operator == "greaterThan":
            return [row for row in rows if _gt(to_number(row.get(field)), bound)]
        return [row for row in rows if _lt(to_number(row.get(field)), bound)]

    if operator == "between":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            logger.debug("Ignoring between filter on %s with bounds %r", field, value)
            return list(rows)
        low, high = to_number(value[0]), to_number(value[1])
        if low is None or high is None:
            return []
        return [
            row
            for row in rows
            if (number := to_number(row.get(field))) is not None and low <= number <= high
        ]

    if operator == "in":
        if not isinstance(value, (list, tuple, set)):
            return list(rows)
        return [row for row in rows if row.get(field) in value]

    raise ValueError(f"Unknown filter operator: {operator}")


def classify_trend(change: float, threshold: float = TREND_THRESHOLD_PERCENT) -> Trend:
    if change > threshold:
        return "up"
    if change < -threshold:
        return "down"
    return "stable"


def quarter_months(quarter: int) -> list[int]:
    if quarter not in QUARTER_MONTHS:
        raise ValueError(f"quarter must be 1-4, got {quarter}")
    return list(QUARTER_MONTHS[quarter])


def semester_months(semester: int) -> list[int]:
    if semester not in SEMESTER_MONTHS:
        raise ValueError(f"semester must be 1 or 2, got {semester}")
    return list(SEMESTER_MONTHS[semester])


def expand_years(criteria: FilterCriteria) -> list[int] | None:
    if criteria.years:
        return list(criteria.years)
    if criteria.year_range is not None:
        return list(range(criteria.year_range.start, criteria.year_range.end + 1))
    return None


def expand_months(criteria: FilterCriteria) -> list[int] | None:
    if criteria.months:
        return list(criteria.months)
    if criteria.month_range is not None:
        return list(range(criteria.month_range.start, criteria.month_range.end + 1))
    return None


def _period_criteria(period: PeriodSelector, type: str) -> FilterCriteria:
    return FilterCriteria(
        years=[period.year],
        months=[period.month] if period.month else None,
        types=[type],
    )


def _uploaded_between(row: Row, start: datetime, end: datetime) -> bool:
    raw = row.get(UPLOAD_DATE_FIELD)
    if not raw:
        return False
    try:
        uploaded = _as_utc(datetime.fromisoformat(str(raw).replace("Z", "+00:00")))
    except ValueError:
        return False
    return start <= uploaded <= end


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _reduction(original: int, filtered: int) -> int:
    if original <= 0:
        return 0
    return math.floor((original - filtered) / original * 100 + 0.5)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _gt(number: float | None, bound: float) -> bool:
    return number is not None and number > bound


def _lt(number: float | None, bound: float) -> bool:
    return number is not None and number < bound


__all__ = [
    "AdvancedFilterService",
    "MONTH_ABBREVIATIONS",
    "QUARTER_MONTHS",
    "SEMESTER_MONTHS",
    "TREND_THRESHOLD_PERCENT",
    "apply_custom_filter",
    "classify_trend",
    "expand_months",
    "expand_years",
    "quarter_months",
    "semester_months",
]
