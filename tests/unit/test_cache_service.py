from __future__ import annotations

import re
import threading

import pytest

from persistence.cache import CacheService
from persistence.errors import CachedFileNotFoundError
from persistence.ledger import MetadataLedger
from persistence.serialization import compact_json_dumps


def _assert_ledger_consistent(cache: CacheService) -> None:
    metadata = cache.get_metadata()
    ids = [item.id for item in metadata.files]
    assert len(ids) == len(set(ids))
    assert metadata.total_records == sum(item.record_count for item in metadata.files)
    assert cache.store.count_files() == len(ids)


def test_save_then_get_returns_identical_rows(cache: CacheService) -> None:
    rows = [
        {"Nombre": "Señal Ñandú", "Monto": "1,5", "Activo": True, "Vacío": None, "N": 3},
        {"Nombre": "second", "Monto": 2.25, "Activo": False, "Vacío": "", "N": 0},
    ]

    file_id = cache.save_file("Contratos.csv", rows, 2024, 3, "Contratos")
    stored = cache.get_file(file_id)

    assert stored is not None
    assert stored.id == stored.file_info.id == file_id
    assert stored.data == rows
    assert stored.file_info.record_count == 2
    assert stored.file_info.size == len(compact_json_dumps(rows).encode("utf-8"))


def test_file_ids_are_typed_and_unique(cache: CacheService) -> None:
    ids = [cache.save_file("x.csv", [], 2024, 1, "Contratos") for _ in range(5)]

    assert len(set(ids)) == 5
    assert all(re.fullmatch(r"Contratos_2024_1_\d+", file_id) for file_id in ids)


def test_get_missing_file_returns_none(cache: CacheService) -> None:
    assert cache.get_file("Contratos_2024_1_0") is None


def test_ledger_stays_consistent_across_saves_and_deletes(cache: CacheService) -> None:
    first = cache.save_file("a.csv", [{"k": 1}] * 4, 2024, 1, "Contratos")
    _assert_ledger_consistent(cache)
    second = cache.save_file("b.csv", [{"k": 2}] * 7, 2024, 2, "Ofertas")
    _assert_ledger_consistent(cache)
    cache.delete_file(first)
    _assert_ledger_consistent(cache)
    cache.save_file("c.csv", [{"k": 3}], 2023, 12, "Contratos")
    _assert_ledger_consistent(cache)

    metadata = cache.get_metadata()
    assert [item.file_name for item in metadata.files] == ["b.csv", "c.csv"]
    assert metadata.total_records == 8
    assert cache.get_file(second) is not None


def test_filtered_files_match_exactly(cache: CacheService) -> None:
    cache.save_file("a.csv", [{"k": 1}], 2023, 5, "Contratos")
    cache.save_file("b.csv", [{"k": 2}], 2024, 5, "Contratos")
    cache.save_file("c.csv", [{"k": 3}], 2024, 6, "Ofertas")

    assert {item.file_info.year for item in cache.get_filtered_files(year=2024)} == {2024}
    assert len(cache.get_filtered_files(year=2024)) == 2
    assert cache.get_filtered_files(year=1999) == []
    assert len(cache.get_files_by_month(2024, 5)) == 1
    assert len(cache.get_files_by_type("Contratos")) == 2
    assert len(cache.get_files_by_year_and_type(2024, "Ofertas")) == 1
    assert len(cache.get_files_by_year(2023)) == 1


def test_list_files_matches_any_value_within_a_dimension(cache: CacheService) -> None:
    cache.save_file("a.csv", [], 2023, 1, "Contratos")
    cache.save_file("b.csv", [], 2024, 2, "Contratos")
    cache.save_file("c.csv", [], 2024, 3, "Ofertas")

    names = [item.file_name for item in cache.list_files(years=[2023, 2024], months=[1, 3])]

    assert names == ["a.csv", "c.csv"]
    assert len(cache.list_files()) == 3


def test_delete_unknown_file_raises_not_found(cache: CacheService) -> None:
    with pytest.raises(CachedFileNotFoundError) as excinfo:
        cache.delete_file("missing")

    assert excinfo.value.file_id == "missing"


def test_bulk_deletes_return_counts(cache: CacheService) -> None:
    cache.save_file("a.csv", [], 2023, 1, "Contratos")
    cache.save_file("b.csv", [], 2024, 1, "Contratos")
    cache.save_file("c.csv", [], 2024, 2, "Contratos")

    assert cache.delete_files_by_month(2024, 2) == 1
    assert cache.delete_files_by_year(2024) == 1
    assert cache.delete_files_by_year(2024) == 0
    assert [item.year for item in cache.get_metadata().files] == [2023]


def test_clear_cache_is_idempotent(cache: CacheService) -> None:
    cache.save_file("a.csv", [{"k": 1}], 2024, 1, "Contratos")

    for _ in range(2):
        cache.clear_cache()
        metadata = cache.get_metadata()
        assert metadata.files == ()
        assert metadata.total_records == 0
    assert cache.store.count_files() == 0


def test_custom_data_is_isolated_from_file_stats(cache: CacheService) -> None:
    cache.save_file("a.csv", [{"k": 1}, {"k": 2}], 2024, 1, "Contratos")
    cache.set_custom_data("dashboard", {"columns": ["Monto"]})

    stats = cache.get_cache_stats()
    assert stats.total_files == 1
    assert stats.total_records == 2

    cache.clear_cache()
    assert cache.get_custom_data("dashboard") == {"columns": ["Monto"]}
    assert cache.get_custom_data("absent", default=[]) == []

    cache.delete_custom_data("dashboard")
    assert cache.get_custom_data("dashboard") is None


def test_cache_stats_and_size(cache: CacheService) -> None:
    cache.save_file("a.csv", [{"k": 1}], 2024, 1, "Ofertas")
    cache.save_file("b.csv", [{"k": 1}, {"k": 2}], 2023, 1, "Contratos")

    stats = cache.get_cache_stats()

    assert stats.years_list == [2023, 2024]
    assert stats.file_types == ["Contratos", "Ofertas"]
    assert stats.total_size == cache.get_cache_size()
    assert stats.total_size == sum(item.size for item in cache.get_metadata().files)


def test_save_rejects_invalid_month_and_type(cache: CacheService) -> None:
    with pytest.raises(ValueError):
        cache.save_file("a.csv", [], 2024, 13, "Contratos")
    with pytest.raises(ValueError):
        cache.save_file("a.csv", [], 2024, 1, "")
    assert cache.get_metadata().files == ()


def test_save_is_atomic_when_ledger_update_fails(cache: CacheService, monkeypatch) -> None:
    def broken_append(self, conn, new_file):
        raise RuntimeError("ledger write failed")

    monkeypatch.setattr(MetadataLedger, "append", broken_append)

    with pytest.raises(RuntimeError, match="ledger write failed"):
        cache.save_file("a.csv", [{"k": 1}], 2024, 1, "Contratos")

    assert cache.store.count_files() == 0
    assert cache.get_metadata().files == ()


def test_concurrent_saves_do_not_lose_ledger_updates(cache: CacheService) -> None:
    errors: list[BaseException] = []

    def worker(offset: int) -> None:
        try:
            for index in range(5):
                cache.save_file(f"f{offset}_{index}.csv", [{"k": index}] * 2, 2024, 1, "Contratos")
        except BaseException as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(offset,)) for offset in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    metadata = cache.get_metadata()
    assert len(metadata.files) == 30
    assert metadata.total_records == 60
    _assert_ledger_consistent(cache)
