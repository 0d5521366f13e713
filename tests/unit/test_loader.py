from __future__ import annotations

import pytest

from persistence.cache import CacheService
from persistence.errors import EmptySelectionError, LoadInProgressError
from schemas.loader import LoadProgress
from services.loader import DataLoaderService


def test_cache_stats_and_presence(cache: CacheService, seeded_cache: dict[str, str]) -> None:
    loader = DataLoaderService(cache)

    stats = loader.get_cache_stats()

    assert loader.has_data_in_cache()
    assert stats.total_files == 3
    assert stats.total_records == 10
    assert stats.years == [2024]
    assert stats.types == ["Contratos", "Proveedores"]


def test_empty_cache_has_no_data(cache: CacheService) -> None:
    loader = DataLoaderService(cache)

    assert not loader.has_data_in_cache()
    with pytest.raises(EmptySelectionError):
        loader.load_data_from_cache()
    assert not loader.is_loading


def test_load_groups_rows_by_type_without_deduplication(
    cache: CacheService, seeded_cache: dict[str, str]
) -> None:
    cache.save_file("Contratos.csv", [{"NumeroContrato": "C-0001"}], 2024, 3, "Contratos")
    loader = DataLoaderService(cache)
    updates: list[LoadProgress] = []
    received: list[dict] = []

    loaded = loader.load_data_from_cache(
        years=[2024], on_progress=updates.append, consumer=received.append
    )

    assert {name: len(rows) for name, rows in loaded.items()} == {"Contratos": 9, "Proveedores": 2}
    assert all("_FILE_SOURCE" in row for row in loaded["Contratos"])
    assert received == [loaded]
    assert updates[0].percentage == 0
    assert updates[-1].percentage == 100
    assert [update.stage for update in updates if update.stage.startswith("Consolidating")] == [
        "Consolidating Contratos",
        "Consolidating Proveedores",
    ]


def test_load_respects_filters(cache: CacheService, seeded_cache: dict[str, str]) -> None:
    loaded = DataLoaderService(cache).load_data_from_cache(months=[2], types=["Contratos"])

    assert list(loaded) == ["Contratos"]
    assert len(loaded["Contratos"]) == 3

    with pytest.raises(EmptySelectionError):
        DataLoaderService(cache).load_data_from_cache(types=["Remates"])


def test_second_load_while_running_is_rejected(
    cache: CacheService, seeded_cache: dict[str, str]
) -> None:
    loader = DataLoaderService(cache)
    nested_errors: list[Exception] = []

    def consumer(data: dict) -> None:
        assert loader.is_loading
        try:
            loader.load_data_from_cache()
        except LoadInProgressError as exc:
            nested_errors.append(exc)

    loader.load_data_from_cache(consumer=consumer)

    assert len(nested_errors) == 1
    assert not loader.is_loading
    assert loader.load_data_from_cache(types=["Proveedores"])["Proveedores"]
