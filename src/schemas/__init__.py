"""Schema package for consolidation, filtering and sync contracts."""

from .consolidation import (
    ConsolidatedMetadata,
    ConsolidatedResult,
    ConsolidatedStats,
    ConsolidationOptions,
    PeriodComparison,
    PeriodValue,
    SourceFile,
    ValueRange,
)
from .filters import (
    CustomFilter,
    DateRange,
    FilterCriteria,
    FilteredDataResult,
    FilteredMetadata,
    MonthRange,
    PeriodComparisonResult,
    PeriodSelector,
    PeriodSummaryEntry,
    TrendComparison,
    YearRange,
)
from .loader import LoaderCacheStats, LoadProgress
from .sync import CacheIntegrityResult, SyncReport, SyncValidationResult

__all__ = [
    "CacheIntegrityResult",
    "ConsolidatedMetadata",
    "ConsolidatedResult",
    "ConsolidatedStats",
    "ConsolidationOptions",
    "CustomFilter",
    "DateRange",
    "FilterCriteria",
    "FilteredDataResult",
    "FilteredMetadata",
    "LoadProgress",
    "LoaderCacheStats",
    "MonthRange",
    "PeriodComparison",
    "PeriodComparisonResult",
    "PeriodSelector",
    "PeriodSummaryEntry",
    "PeriodValue",
    "SourceFile",
    "SyncReport",
    "SyncValidationResult",
    "TrendComparison",
    "ValueRange",
    "YearRange",
]
