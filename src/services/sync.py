"""Read-only diagnostics comparing the cache with the expected record types.

The validator never mutates the cache and never raises for storage
problems: a failing read is reported in the ``errors`` list of the result.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Mapping, Sequence

from persistence.cache import CacheService
from persistence.errors import CacheError
from persistence.models import CacheMetadata, Row, StoredFile
from schemas.sync import (
    CacheIntegrityResult,
    CacheUsageStats,
    DuplicateKeyIssue,
    FieldIssue,
    IntegrityIssues,
    SyncReport,
    SyncStats,
    SyncValidationResult,
    TemporalCoverage,
    TypeMappingStatus,
    TypeUsage,
    YearMonthFiles,
)
from services.aggregation import is_blank
from services.consolidation import tag_provenance
from sicop.record_types import EXPECTED_TYPES, KEY_FIELDS, PROVENANCE_FIELDS


logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


class CacheSyncValidator:
    def __init__(
        self,
        cache: CacheService,
        expected_types: Sequence[str] = EXPECTED_TYPES,
        key_fields: Mapping[str, Sequence[str]] = KEY_FIELDS,
    ) -> None:
        self._cache = cache
        self._expected_types = tuple(sorted(expected_types))
        self._key_fields = {name: tuple(fields) for name, fields in key_fields.items()}

    @property
    def expected_types(self) -> tuple[str, ...]:
        return self._expected_types

    def validate_cache_data_manager_sync(self) -> SyncValidationResult:
        try:
            metadata = self._cache.get_metadata()
        except CacheError as exc:
            logger.error("Sync validation could not read the ledger: %s", exc)
            return SyncValidationResult(
                is_valid=False,
                errors=[f"Cannot read cache metadata: {exc}"],
                stats=SyncStats(expected_types=list(self._expected_types)),
            )

        cached_types = sorted({item.type for item in metadata.files})
        missing = [name for name in self._expected_types if name not in cached_types]
        extra = [name for name in cached_types if name not in self._expected_types]

        breakdown: dict[str, int] = {}
        for item in metadata.files:
            breakdown[item.type] = breakdown.get(item.type, 0) + item.record_count

        warnings: list[str] = []
        if missing:
            warnings.append(f"Record types missing from the cache: {', '.join(missing)}")
            warnings.append("Downstream loads may fall back to partial data for missing types")
        if extra:
            warnings.append(f"Cached record types not expected downstream: {', '.join(extra)}")
            warnings.append("These files will be ignored by downstream loads")
        for name in cached_types:
            if name not in self._key_fields:
                warnings.append(f'Type "{name}" has no key fields defined for deduplication')

        result = SyncValidationResult(
            is_valid=True,
            warnings=warnings,
            errors=[],
            stats=SyncStats(
                expected_types=list(self._expected_types),
                cached_types=cached_types,
                missing_types=missing,
                extra_types=extra,
                total_cached_records=metadata.total_records,
                type_breakdown=breakdown,
            ),
        )
        logger.info(
            "Sync validation: %d cached types, %d expected, %d warnings",
            len(cached_types),
            len(self._expected_types),
            len(warnings),
        )
        return result

    def check_cache_integrity(self) -> CacheIntegrityResult:
        """Check duplicate keys, blank key fields and the provenance tagging of each type.

        Provenance columns are tested on rows as consolidation tags them, so the
        check covers the tagging itself rather than the stored rows.
        """
        issues = IntegrityIssues()
        recommendations: list[str] = []
        errors: list[str] = []

        try:
            metadata = self._cache.get_metadata()
        except CacheError as exc:
            logger.error("Integrity check could not read the ledger: %s", exc)
            return CacheIntegrityResult(
                is_healthy=False, errors=[f"Cannot read cache metadata: {exc}"]
            )

        for type_name, files in _files_by_type(metadata).items():
            rows: list[Row] = []
            for info in files:
                try:
                    stored = self._cache.get_file(info.id)
                except CacheError as exc:
                    errors.append(f"Cannot read cached file {info.id}: {exc}")
                    continue
                if stored is None:
                    errors.append(f"Ledger lists {info.id} but its data is missing")
                    continue
                rows.extend(tag_provenance(row, info) for row in stored.data)

            if not rows:
                continue

            key_fields = self._key_fields.get(type_name)
            if key_fields:
                counts = Counter(composite_key(row, key_fields) for row in rows)
                duplicates = [(key, count) for key, count in counts.items() if count > 1]
                for key, count in duplicates:
                    issues.duplicate_keys.append(
                        DuplicateKeyIssue(type=type_name, key=key, count=count)
                    )
                if duplicates:
                    recommendations.append(
                        f'Run deduplication on type "{type_name}" '
                        f"({len(duplicates)} duplicated keys)"
                    )
                for field in key_fields:
                    affected = sum(1 for row in rows if is_blank(row.get(field)))
                    if affected:
                        issues.missing_required_fields.append(
                            FieldIssue(type=type_name, field=field, records_affected=affected)
                        )

            for field in PROVENANCE_FIELDS:
                affected = sum(1 for row in rows if is_blank(row.get(field)))
                if not affected:
                    continue
                issues.missing_required_fields.append(
                    FieldIssue(type=type_name, field=field, records_affected=affected)
                )
                if affected == len(rows):
                    recommendations.append(
                        f'CRITICAL: type "{type_name}" has no {field} provenance. '
                        "Its files may not have been saved through the cache."
                    )

        is_healthy = (
            not errors
            and not issues.duplicate_keys
            and not issues.missing_required_fields
            and not issues.invalid_data_types
        )
        if is_healthy:
            logger.info("Cache integrity check passed")
        else:
            logger.warning(
                "Cache integrity issues: %d duplicate keys, %d missing fields, %d errors",
                len(issues.duplicate_keys),
                len(issues.missing_required_fields),
                len(errors),
            )
        return CacheIntegrityResult(
            is_healthy=is_healthy,
            issues=issues,
            recommendations=recommendations,
            errors=errors,
        )

    def generate_sync_report(self) -> SyncReport:
        validation = self.validate_cache_data_manager_sync()
        integrity = self.check_cache_integrity()

        recommendations: list[str] = []
        if validation.stats.missing_types:
            recommendations.append(
                "Import CSV files for the missing types: "
                + ", ".join(validation.stats.missing_types)
            )
        if validation.stats.extra_types:
            recommendations.append(
                "Consider removing unrecognized types from the cache: "
                + ", ".join(validation.stats.extra_types)
            )
        if not integrity.is_healthy:
            recommendations.extend(integrity.recommendations)
        if validation.is_valid and integrity.is_healthy and not recommendations:
            recommendations.append("Cache and downstream schema are in sync")

        logger.info(
            "Sync report: %d cached types, %d records, valid=%s, healthy=%s",
            len(validation.stats.cached_types),
            validation.stats.total_cached_records,
            validation.is_valid,
            integrity.is_healthy,
        )
        return SyncReport(
            validation=validation, integrity=integrity, recommendations=recommendations
        )

    def is_type_supported(self, type_name: str) -> bool:
        return type_name in self._expected_types

    def get_key_fields_for_type(self, type_name: str) -> tuple[str, ...] | None:
        return self._key_fields.get(type_name)

    def has_required_metadata(self, record: Mapping[str, Any]) -> bool:
        """True when every provenance column is present (even if empty)."""
        return all(field in record for field in PROVENANCE_FIELDS)

    def get_cache_usage_stats(self) -> CacheUsageStats:
        metadata = self._cache.get_metadata()

        distribution: dict[str, TypeUsage] = {}
        per_period: Counter[tuple[int, int]] = Counter()
        for item in metadata.files:
            usage = distribution.setdefault(item.type, TypeUsage())
            usage.files += 1
            usage.records += item.record_count
            per_period[(item.year, item.month)] += 1

        total_size = sum(item.size for item in metadata.files)
        return CacheUsageStats(
            total_files=len(metadata.files),
            total_records=metadata.total_records,
            size_estimate_mb=round(total_size / (1024 * 1024), 2),
            type_distribution=distribution,
            temporal_coverage=TemporalCoverage(
                years=sorted({year for year, _ in per_period}),
                months=sorted({month for _, month in per_period}),
                year_month_combinations=[
                    YearMonthFiles(year=year, month=month, files=count)
                    for (year, month), count in sorted(per_period.items())
                ],
            ),
        )

    def get_type_mapping_status(self) -> dict[str, TypeMappingStatus]:
        metadata = self._cache.get_metadata()
        names = list(self._expected_types)
        for item in metadata.files:
            if item.type not in names:
                names.append(item.type)

        status: dict[str, TypeMappingStatus] = {}
        for name in names:
            files = [item for item in metadata.files if item.type == name]
            status[name] = TypeMappingStatus(
                in_cache=bool(files),
                supported=self.is_type_supported(name),
                files_count=len(files),
                records_count=sum(item.record_count for item in files),
                has_key_fields=name in self._key_fields,
            )
        return status


def composite_key(row: Row, fields: Sequence[str]) -> str:
    return KEY_SEPARATOR.join(
        "" if row.get(field) is None else str(row.get(field)) for field in fields
    )


def _files_by_type(metadata: CacheMetadata) -> dict[str, list[StoredFile]]:
    grouped: dict[str, list[StoredFile]] = {}
    for item in metadata.files:
        grouped.setdefault(item.type, []).append(item)
    return grouped


__all__ = ["CacheSyncValidator", "KEY_SEPARATOR", "composite_key"]
