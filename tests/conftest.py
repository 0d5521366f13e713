from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from persistence.cache import CacheService
from persistence.sqlite_store import SqliteStore
from services.consolidation import ConsolidationService
from services.filters import AdvancedFilterService


def contract_rows(count: int, *, start: int = 1, amount: int = 100) -> list[dict]:
    return [
        {
            "NumeroContrato": f"C-{start + index:04d}",
            "Institucion": "MOPT" if index % 2 == 0 else "CCSS",
            "Monto": str(amount * (index + 1)),
        }
        for index in range(count)
    ]


def supplier_rows(count: int) -> list[dict]:
    return [
        {"Cedula": f"3-101-{index:06d}", "idProveedor": f"P{index}", "Nombre": f"Proveedor {index}"}
        for index in range(count)
    ]


@pytest.fixture
def store(tmp_path: Path) -> Iterator[SqliteStore]:
    sqlite_store = SqliteStore(tmp_path / "cache.sqlite")
    sqlite_store.initialize()
    yield sqlite_store
    sqlite_store.close()


@pytest.fixture
def cache(store: SqliteStore) -> CacheService:
    return CacheService(store)


@pytest.fixture
def consolidation(cache: CacheService) -> ConsolidationService:
    return ConsolidationService(cache)


@pytest.fixture
def filters(consolidation: ConsolidationService) -> AdvancedFilterService:
    return AdvancedFilterService(consolidation)


@pytest.fixture
def seeded_cache(cache: CacheService) -> dict[str, str]:
    """Contratos 2024-01 (5 rows), Contratos 2024-02 (3 rows), Proveedores 2024-01 (2 rows)."""
    return {
        "jan": cache.save_file("Contratos.csv", contract_rows(5), 2024, 1, "Contratos"),
        "feb": cache.save_file("Contratos.csv", contract_rows(3, start=100), 2024, 2, "Contratos"),
        "suppliers": cache.save_file("Proveedores_unido.csv", supplier_rows(2), 2024, 1, "Proveedores"),
    }
