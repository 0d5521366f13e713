from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

import pytest
from typer.testing import CliRunner

from cli.app import app
from core.config import get_settings
from persistence.cache import get_cache_service
from sicop import __version__


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch) -> Iterator[Path]:
    monkeypatch.setenv("SICOP_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("SICOP_EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setenv("SICOP_LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    get_cache_service.cache_clear()
    yield tmp_path
    settings = get_settings()
    get_cache_service(str(settings.cache_path), settings.sqlite_timeout).store.close()
    get_cache_service.cache_clear()
    get_settings.cache_clear()


def _invoke(*args: str) -> dict | list:
    result = runner.invoke(app, list(args))
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def _write_contracts(tmp_path: Path) -> Path:
    path = tmp_path / "Contratos.csv"
    path.write_text(
        "\ufeffNumeroContrato,Institucion,Monto\n"
        'C-1,"Ministerio, Obras",100\n'
        "C-2,CCSS,250\n"
        "C-3,CCSS,50\n",
        encoding="utf-8",
    )
    return path


def test_version_flag() -> None:
    result = runner.invoke(app, ["-v"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_import_list_consolidate_round_trip(isolated_settings: Path) -> None:
    csv_path = _write_contracts(isolated_settings)

    imported = _invoke("cache", "import", str(csv_path), "--year", "2024", "--month", "3")
    assert imported["type"] == "Contratos"
    assert imported["records"] == 3

    listed = _invoke("cache", "list", "--json")
    assert [item["id"] for item in listed] == [imported["id"]]
    assert listed[0]["recordCount"] == 3

    shown = _invoke("cache", "show", imported["id"], "--limit", "1")
    assert shown["rows"] == [{"NumeroContrato": "C-1", "Institucion": "Ministerio, Obras", "Monto": "100"}]

    consolidated = _invoke("consolidate", "run", "--type", "Contratos", "--sort-by", "Monto", "--order", "desc")
    assert consolidated["metadata"]["total_records"] == 3
    assert [row["Monto"] for row in consolidated["rows"]] == ["250", "100", "50"]

    aggregated = _invoke("consolidate", "aggregate", "--field", "Monto", "--group-by", "Institucion")
    assert aggregated["value"] == {"Ministerio, Obras": 100.0, "CCSS": 300.0}

    stats = _invoke("cache", "stats")
    assert stats["total_files"] == 1
    assert stats["file_types"] == ["Contratos"]


def test_table_listing_renders(isolated_settings: Path) -> None:
    _invoke("cache", "import", str(_write_contracts(isolated_settings)), "--year", "2024", "--month", "3")

    result = runner.invoke(app, ["cache", "list"])

    assert result.exit_code == 0
    assert "Cached files (1)" in result.stdout


def test_exports_and_filters(isolated_settings: Path) -> None:
    _invoke("cache", "import", str(_write_contracts(isolated_settings)), "--year", "2024", "--month", "2")

    exported = _invoke("consolidate", "export", "--file-name", "todo.csv")
    path = Path(exported["path"])
    assert path == isolated_settings / "exports" / "todo.csv"
    assert '"Ministerio, Obras"' in path.read_text(encoding="utf-8")

    quarter = _invoke("filter", "quarter", "2024", "1")
    assert quarter["metadata"]["filtered_records"] == 3

    criteria = json.dumps({"customFilters": [{"field": "Monto", "operator": "greaterThan", "value": 60}]})
    filtered = _invoke("filter", "run", "--criteria", criteria)
    assert filtered["metadata"]["filtered_records"] == 2
    assert filtered["metadata"]["reduction_percentage"] == 33

    summary = _invoke("filter", "summary", "--field", "Monto", "--group-by", "month")
    assert summary == [{"year": None, "month": 2, "value": 400.0, "record_count": 3}]

    comparison = _invoke("filter", "compare", "2023", "2024-02", "--type", "Contratos", "--field", "Monto")
    assert comparison["percentage_change"] == 0.0
    assert comparison["trend"] == "stable"


def test_sync_report_and_load(isolated_settings: Path) -> None:
    _invoke("cache", "import", str(_write_contracts(isolated_settings)), "--year", "2024", "--month", "1")

    report = _invoke("sync", "report")
    assert report["integrity"]["is_healthy"] is True
    assert "Contratos" in report["validation"]["stats"]["cached_types"]

    loaded = _invoke("consolidate", "load")
    assert loaded == {"Contratos": 3}


def test_delete_unknown_file_fails(isolated_settings: Path) -> None:
    result = runner.invoke(app, ["cache", "delete", "nope"])

    assert result.exit_code == 1


def test_import_requires_type_for_unknown_file_name(isolated_settings: Path) -> None:
    path = isolated_settings / "custom.csv"
    path.write_text("a,b\n1,2\n", encoding="utf-8")

    rejected = runner.invoke(app, ["cache", "import", str(path), "--year", "2024", "--month", "1"])
    assert rejected.exit_code != 0

    accepted = _invoke("cache", "import", str(path), "--year", "2024", "--month", "1", "--type", "Otros")
    assert accepted["type"] == "Otros"


def test_clear_and_config(isolated_settings: Path) -> None:
    _invoke("cache", "import", str(_write_contracts(isolated_settings)), "--year", "2024", "--month", "1")

    assert _invoke("cache", "clear") == {"cleared": True, "total_files": 0}
    assert _invoke("cache", "clear") == {"cleared": True, "total_files": 0}

    config = _invoke("config", "show")
    assert config["cache_dir"] == str(isolated_settings / "cache")
    assert config["cache_path"].endswith("sicop_cache.sqlite")
