"""Cache/schema sync diagnostic reports."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SyncStats(BaseModel):
    expected_types: list[str] = Field(default_factory=list)
    cached_types: list[str] = Field(default_factory=list)
    missing_types: list[str] = Field(default_factory=list)
    extra_types: list[str] = Field(default_factory=list)
    total_cached_records: int = 0
    type_breakdown: dict[str, int] = Field(default_factory=dict)


class SyncValidationResult(BaseModel):
    is_valid: bool
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    stats: SyncStats = Field(default_factory=SyncStats)


class DuplicateKeyIssue(BaseModel):
    type: str
    key: str
    count: int


class FieldIssue(BaseModel):
    type: str
    field: str
    records_affected: int


class IntegrityIssues(BaseModel):
    duplicate_keys: list[DuplicateKeyIssue] = Field(default_factory=list)
    missing_required_fields: list[FieldIssue] = Field(default_factory=list)
    invalid_data_types: list[FieldIssue] = Field(default_factory=list)


class CacheIntegrityResult(BaseModel):
    is_healthy: bool
    issues: IntegrityIssues = Field(default_factory=IntegrityIssues)
    recommendations: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class SyncReport(BaseModel):
    validation: SyncValidationResult
    integrity: CacheIntegrityResult
    recommendations: list[str] = Field(default_factory=list)


class TypeUsage(BaseModel):
    files: int = 0
    records: int = 0


class YearMonthFiles(BaseModel):
    year: int
    month: int
    files: int


class TemporalCoverage(BaseModel):
    years: list[int] = Field(default_factory=list)
    months: list[int] = Field(default_factory=list)
    year_month_combinations: list[YearMonthFiles] = Field(default_factory=list)


class CacheUsageStats(BaseModel):
    total_files: int
    total_records: int
    size_estimate_mb: float
    type_distribution: dict[str, TypeUsage] = Field(default_factory=dict)
    temporal_coverage: TemporalCoverage = Field(default_factory=TemporalCoverage)


class TypeMappingStatus(BaseModel):
    in_cache: bool
    supported: bool
    files_count: int
    records_count: int
    has_key_fields: bool


__all__ = [
    "CacheIntegrityResult",
    "CacheUsageStats",
    "DuplicateKeyIssue",
    "FieldIssue",
    "IntegrityIssues",
    "SyncReport",
    "SyncStats",
    "SyncValidationResult",
    "TemporalCoverage",
    "TypeMappingStatus",
    "TypeUsage",
    "YearMonthFiles",
]
