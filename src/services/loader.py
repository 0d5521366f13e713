"""Bulk loading of cached datasets for downstream analytics."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Sequence

from persistence.cache import CacheService
from persistence.errors import EmptySelectionError, LoadInProgressError
from persistence.models import Row
from schemas.consolidation import ConsolidationOptions
from schemas.loader import LoadProgress, LoaderCacheStats
from services.consolidation import ConsolidationService


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[LoadProgress], None]
LoadConsumer = Callable[[dict[str, list[Row]]], None]


class DataLoaderService:
    """Consolidate cached files per record type and hand them to a consumer.

    Rows are never deduplicated here; each type gets every cached row tagged
    with provenance columns. Only one load may run at a time per loader.
    """

    def __init__(self, cache: CacheService, consolidation: ConsolidationService | None = None) -> None:
        self._cache = cache
        self._consolidation = consolidation or ConsolidationService(cache)
        self._guard = threading.Lock()
        self._is_loading = False

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def has_data_in_cache(self) -> bool:
        return bool(self._cache.get_metadata().files)

    def get_cache_stats(self) -> LoaderCacheStats:
        files = self._cache.get_metadata().files
        return LoaderCacheStats(
            total_files=len(files),
            total_records=sum(item.record_count for item in files),
            years=sorted({item.year for item in files}),
            types=sorted({item.type for item in files}),
        )

    def load_data_from_cache(
        self,
        years: Sequence[int] | None = None,
        months: Sequence[int] | None = None,
        types: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
        consumer: LoadConsumer | None = None,
    ) -> dict[str, list[Row]]:
        with self._guard:
            if self._is_loading:
                raise LoadInProgressError("A cache load is already in progress")
            self._is_loading = True
        try:
            return self._load(years, months, types, on_progress, consumer)
        except Exception:
            logger.exception("Loading data from cache failed")
            raise
        finally:
            with self._guard:
                self._is_loading = False

    def _load(
        self,
        years: Sequence[int] | None,
        months: Sequence[int] | None,
        types: Sequence[str] | None,
        on_progress: ProgressCallback | None,
        consumer: LoadConsumer | None,
    ) -> dict[str, list[Row]]:
        matched = self._cache.list_files(years, months, types)
        if not matched:
            raise EmptySelectionError("No cached files match the requested filters")

        type_names: list[str] = []
        for item in matched:
            if item.type not in type_names:
                type_names.append(item.type)
        total = len(type_names)

        _notify(on_progress, "Starting load", 0, total, 0, {"records_processed": 0, "files_processed": 0})

        loaded: dict[str, list[Row]] = {}
        processed = 0
        for index, type_name in enumerate(type_names, start=1):
            _notify(
                on_progress,
                f"Consolidating {type_name}",
                index,
                total,
                round(index / total * 50),
                {"records_processed": processed, "files_processed": index - 1},
            )
            result = self._consolidation.consolidate_data(
                ConsolidationOptions(
                    years=list(years) if years else None,
                    months=list(months) if months else None,
                    types=[type_name],
                )
            )
            loaded[type_name] = result.data
            processed += len(result.data)
            logger.info("%s: %d rows consolidated", type_name, len(result.data))

        if consumer is not None:
            _notify(
                on_progress,
                "Handing data to consumer",
                0,
                1,
                75,
                {"records_processed": processed, "files_processed": len(loaded)},
            )
            consumer(loaded)

        _notify(on_progress, "Load complete", 1, 1, 100, None)
        logger.info("Loaded %d rows across %d types from cache", processed, len(loaded))
        return loaded


def _notify(
    callback: ProgressCallback | None,
    stage: str,
    current: int,
    total: int,
    percentage: int,
    details: dict[str, int] | None,
) -> None:
    if callback is None:
        return
    callback(
        LoadProgress(
            stage=stage, current=current, total=total, percentage=percentage, details=details
        )
    )


__all__ = ["DataLoaderService", "LoadConsumer", "ProgressCallback"]
