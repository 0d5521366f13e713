from __future__ import annotations

from pathlib import Path

import pytest

from persistence.cache import CacheService
from persistence.errors import StorageFailure
from persistence.sqlite_store import INDEX_DECISIONS, INDEXES, MEMORY_PATH, SqliteStore, plan_index


@pytest.mark.parametrize(
    ("year", "month", "type_", "index", "residual"),
    [
        (2024, None, None, "idx_csv_data_year", ()),
        (None, 3, None, "idx_csv_data_month", ()),
        (None, None, "Contratos", "idx_csv_data_type", ()),
        (2024, 3, None, "idx_csv_data_year_month", ()),
        (2024, None, "Contratos", "idx_csv_data_year_type", ()),
        (2024, 3, "Contratos", "idx_csv_data_year_month", ("type",)),
        (None, 3, "Contratos", "idx_csv_data_type", ("month",)),
        (None, None, None, None, ()),
        (None, None, "", None, ()),
    ],
)
def test_plan_index_decision_table(year, month, type_, index, residual) -> None:
    plan = plan_index(year, month, type_)

    assert plan.index == index
    assert plan.residual == residual
    assert plan.columns == (INDEXES[index] if index else ())


def test_decision_table_covers_every_combination() -> None:
    assert len(INDEX_DECISIONS) == 8
    assert all(value is None or value in INDEXES for value in INDEX_DECISIONS.values())


def test_initialize_is_idempotent(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "nested" / "cache.sqlite")

    first = store.initialize()
    second = store.initialize()

    assert first is second
    assert (tmp_path / "nested" / "cache.sqlite").exists()
    store.close()


def test_memory_store_supports_round_trip() -> None:
    store = SqliteStore(MEMORY_PATH)
    cache = CacheService(store)

    file_id = cache.save_file("Contratos.csv", [{"a": "1"}], 2024, 1, "Contratos")

    assert cache.get_file(file_id).data == [{"a": "1"}]
    store.close()


def test_unopenable_database_raises_storage_failure(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path)

    with pytest.raises(StorageFailure):
        store.initialize()


def test_select_files_applies_residual_filters(cache: CacheService) -> None:
    cache.save_file("a.csv", [{"x": 1}], 2024, 1, "Contratos")
    cache.save_file("b.csv", [{"x": 2}], 2024, 1, "Ofertas")
    cache.save_file("c.csv", [{"x": 3}], 2023, 1, "Contratos")

    selected = cache.store.select_files(year=2024, month=1, type="Contratos")

    assert [item.file_info.file_name for item in selected] == ["a.csv"]
    assert cache.store.count_files() == 3


def test_custom_values_round_trip(store: SqliteStore) -> None:
    store.put_custom_value("ui", {"theme": "dark", "pinned": [1, 2]})

    assert store.get_custom_value("ui") == {"theme": "dark", "pinned": [1, 2]}

    store.delete_custom_value("ui")
    assert store.get_custom_value("ui") is None
