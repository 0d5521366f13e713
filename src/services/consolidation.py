"""Consolidate cached datasets into one query-ready row set."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence, TypeVar

from pydantic import BaseModel

from persistence.contracts import RecordStore
from persistence.models import Row, StoredFile
from persistence.serialization import size_in_mb
from schemas.consolidation import (
    AggregateFunction,
    ConsolidatedMetadata,
    ConsolidatedResult,
    ConsolidatedStats,
    ConsolidationOptions,
    PeriodComparison,
    PeriodValue,
    SourceFile,
    ValueRange,
)
from services.aggregation import (
    AGGREGATE_FUNCTIONS,
    aggregate,
    group_key,
    group_rows,
    is_blank,
    numeric_values,
    to_number,
)
from services.export import rows_to_csv, write_csv
from sicop.record_types import (
    FILE_SOURCE_FIELD,
    MONTH_FIELD,
    UPLOAD_DATE_FIELD,
    YEAR_FIELD,
    is_type_supported,
)


logger = logging.getLogger(__name__)

_OptionsT = TypeVar("_OptionsT", bound=BaseModel)

DEFAULT_EXPORT_NAME = "datos_consolidados.csv"


class ConsolidationService:
    def __init__(self, cache: RecordStore) -> None:
        self._cache = cache

    @property
    def cache(self) -> RecordStore:
        return self._cache

    def consolidate_data(
        self, options: ConsolidationOptions | Mapping[str, Any] | None = None
    ) -> ConsolidatedResult:
        opts = coerce_options(options, ConsolidationOptions)
        if opts.types:
            unsupported = [item for item in opts.types if not is_type_supported(item)]
            if unsupported:
                logger.warning(
                    "Record types not known to the analytics layer: %s",
                    ", ".join(unsupported),
                )

        rows: list[Row] = []
        included: list[StoredFile] = []
        for info in self._cache.list_files(opts.years, opts.months, opts.types):
            stored = self._cache.get_file(info.id)
            if stored is None:
                logger.warning("Ledger lists %s but its data is missing", info.id)
                continue
            included.append(info)
            rows.extend(tag_provenance(row, info) for row in stored.data)

        if opts.deduplicate_by and rows:
            before = len(rows)
            rows = deduplicate_rows(rows, opts.deduplicate_by)
            if len(rows) < before:
                logger.info(
                    "Deduplicated by %s: %d -> %d rows (%d dropped)",
                    opts.deduplicate_by,
                    before,
                    len(rows),
                    before - len(rows),
                )

        if opts.sort_by and rows:
            rows = sort_rows(rows, opts.sort_by, descending=opts.sort_order == "desc")

        types: list[str] = []
        for info in included:
            if info.type not in types:
                types.append(info.type)

        metadata = ConsolidatedMetadata(
            total_records=len(rows),
            files_included=len(included),
            year_range=_value_range([info.year for info in included]),
            month_range=_value_range([info.month for info in included]),
            types=types,
            consolidated_at=datetime.now(timezone.utc).isoformat(),
            sources=[_source_file(info) for info in included],
        )
        return ConsolidatedResult(data=rows, metadata=metadata)

    def consolidate_by_type(
        self, type: str, options: ConsolidationOptions | Mapping[str, Any] | None = None
    ) -> ConsolidatedResult:
        return self.consolidate_data(_with(options, types=[type]))

    def consolidate_by_year(
        self, year: int, options: ConsolidationOptions | Mapping[str, Any] | None = None
    ) -> ConsolidatedResult:
        return self.consolidate_data(_with(options, years=[year]))

    def consolidate_by_month(
        self,
        year: int,
        month: int,
        options: ConsolidationOptions | Mapping[str, Any] | None = None,
    ) -> ConsolidatedResult:
        return self.consolidate_data(_with(options, years=[year], months=[month]))

    def consolidate_by_year_range(
        self,
        start_year: int,
        end_year: int,
        options: ConsolidationOptions | Mapping[str, Any] | None = None,
    ) -> ConsolidatedResult:
        return self.consolidate_data(
            _with(options, years=list(range(start_year, end_year + 1)))
        )

    def consolidate_all(
        self, options: ConsolidationOptions | Mapping[str, Any] | None = None
    ) -> ConsolidatedResult:
        return self.consolidate_data(_with(options, years=None, months=None, types=None))

    def consolidate_and_group_by(
        self,
        field: str,
        options: ConsolidationOptions | Mapping[str, Any] | None = None,
    ) -> dict[Any, list[Row]]:
        """Group consolidated rows by exact field value; missing values key as ``None``."""
        return group_rows(self.consolidate_data(options).data, field)

    def consolidate_and_aggregate(
        self,
        field: str,
        fn: AggregateFunction,
        group_by_field: str | None = None,
        options: ConsolidationOptions | Mapping[str, Any] | None = None,
    ) -> float | int | None | dict[Any, float | int | None]:
        """Aggregate the numeric values of ``field``; non-numeric cells are skipped."""
        if fn not in AGGREGATE_FUNCTIONS:
            raise ValueError(f"Unsupported aggregate function: {fn}")
        rows = self.consolidate_data(options).data
        if not group_by_field:
            return aggregate(numeric_values(rows, field), fn)
        return {
            key: aggregate(numeric_values(members, field), fn)
            for key, members in group_rows(rows, group_by_field).items()
        }

    def get_consolidated_stats(
        self, options: ConsolidationOptions | Mapping[str, Any] | None = None
    ) -> ConsolidatedStats:
        result = self.consolidate_data(options)
        return ConsolidatedStats(
            total_records=result.metadata.total_records,
            files_included=result.metadata.files_included,
            year_range=result.metadata.year_range,
            month_range=result.metadata.month_range,
            types=result.metadata.types,
            size_in_mb=size_in_mb(result.data),
        )

    def export_consolidated_csv(
        self, options: ConsolidationOptions | Mapping[str, Any] | None = None
    ) -> str:
        return rows_to_csv(self.consolidate_data(options).data)

    def download_consolidated_csv(
        self,
        file_name: str = DEFAULT_EXPORT_NAME,
        options: ConsolidationOptions | Mapping[str, Any] | None = None,
        *,
        output_dir: str | Path | None = None,
    ) -> Path:
        return write_csv(self.export_consolidated_csv(options), file_name, output_dir)

    def save_consolidated_as_cache(
        self,
        file_name: str,
        year: int,
        month: int,
        type: str,
        options: ConsolidationOptions | Mapping[str, Any] | None = None,
    ) -> str:
        """Store the consolidated rows as a brand-new cached file."""
        result = self.consolidate_data(options)
        return self._cache.save_file(file_name, result.data, year, month, type)

    def compare_period(
        self,
        year1: int,
        month1: int,
        year2: int,
        month2: int,
        type: str,
        field: str,
    ) -> PeriodComparison:
        """Compare the summed ``field`` of two (year, month) selections of one type."""
        first = self.consolidate_by_month(year1, month1, {"types": [type]})
        second = self.consolidate_by_month(year2, month2, {"types": [type]})
        value1 = float(aggregate(numeric_values(first.data, field), "sum") or 0.0)
        value2 = float(aggregate(numeric_values(second.data, field), "sum") or 0.0)
        difference = value2 - value1
        return PeriodComparison(
            period1=PeriodValue(
                year=year1, month=month1, value=value1, count=first.metadata.total_records
            ),
            period2=PeriodValue(
                year=year2, month=month2, value=value2, count=second.metadata.total_records
            ),
            difference=difference,
            percentage_change=percentage_change(value1, value2),
        )


def coerce_options(options: Any, model: type[_OptionsT]) -> _OptionsT:
    """Accept a model instance, a plain mapping or ``None``."""
    if options is None:
        return model()
    if isinstance(options, model):
        return options
    if isinstance(options, BaseModel):
        return model.model_validate(options.model_dump(exclude_unset=True))
    return model.model_validate(dict(options))


def tag_provenance(row: Row, info: StoredFile) -> Row:
    """Copy a stored row and add the columns that identify where it came from."""
    tagged = dict(row)
    tagged[YEAR_FIELD] = info.year
    tagged[MONTH_FIELD] = info.month
    tagged[FILE_SOURCE_FIELD] = info.file_name
    tagged[UPLOAD_DATE_FIELD] = info.upload_date
    return tagged


def deduplicate_rows(rows: Sequence[Row], field: str) -> list[Row]:
    """Keep the first row for each distinct value of ``field``."""
    seen: set[Any] = set()
    unique: list[Row] = []
    for row in rows:
        value = row.get(field)
        # bools never collide with 1 or 0
        marker = (isinstance(value, bool), group_key(value))
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(row)
    return unique


def sort_rows(rows: Sequence[Row], field: str, *, descending: bool = False) -> list[Row]:
    """Stable sort by ``field``; rows lacking it or holding a blank cell come last.

    Values compare numerically when every non-blank value is a number or a
    fully numeric string, otherwise as text.
    """
    present = [row for row in rows if not is_blank(row.get(field))]
    missing = [row for row in rows if is_blank(row.get(field))]
    numbers = [to_number(row[field], strict=True) for row in present]
    if all(number is not None for number in numbers):
        keyed = sorted(
            zip(numbers, range(len(present))),
            key=lambda item: item[0],
            reverse=descending,
        )
        ordered = [present[index] for _, index in keyed]
    else:
        ordered = sorted(present, key=lambda row: str(row[field]), reverse=descending)
    return ordered + missing


def percentage_change(base: float, current: float) -> float:
    """Percent change from ``base`` to ``current``; 0 when ``base`` is 0."""
    if base == 0:
        return 0.0
    return (current - base) / base * 100


def _with(options: Any, **updates: Any) -> ConsolidationOptions:
    return coerce_options(options, ConsolidationOptions).model_copy(update=updates)


def _value_range(values: list[int]) -> ValueRange | None:
    if not values:
        return None
    return ValueRange(min=min(values), max=max(values))


def _source_file(info: StoredFile) -> SourceFile:
    return SourceFile(
        id=info.id,
        file_name=info.file_name,
        type=info.type,
        year=info.year,
        month=info.month,
        upload_date=info.upload_date,
        record_count=info.record_count,
    )


__all__ = [
    "ConsolidationService",
    "coerce_options",
    "deduplicate_rows",
    "percentage_change",
    "sort_rows",
    "tag_provenance",
]
