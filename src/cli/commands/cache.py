"""Cache management commands."""

from __future__ import annotations

import csv
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from persistence.errors import CacheError, CachedFileNotFoundError
from sicop.record_types import type_for_file_name
from .shared import build_cache_service, emit_json, fail


app = typer.Typer(
    help="Inspect, import and prune cached datasets",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)


@app.command("stats", help="Show cache totals")
def cache_stats() -> None:
    emit_json(build_cache_service().get_cache_stats())


@app.command("list", help="List cached files")
def cache_list(
    years: list[int] | None = typer.Option(None, "--year", help="Filter by year; repeatable"),
    months: list[int] | None = typer.Option(None, "--month", help="Filter by month; repeatable"),
    types: list[str] | None = typer.Option(None, "--type", help="Filter by record type; repeatable"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    files = build_cache_service().list_files(years, months, types)
    if json_out:
        emit_json([item.to_payload() for item in files])
        return

    table = Table(title=f"Cached files ({len(files)})")
    table.add_column("ID", no_wrap=True)
    table.add_column("File")
    table.add_column("Type")
    table.add_column("Period", justify="right")
    table.add_column("Records", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Uploaded")
    for item in files:
        table.add_row(
            item.id,
            item.file_name,
            item.type,
            f"{item.year}-{item.month:02d}",
            str(item.record_count),
            str(item.size),
            item.upload_date,
        )
    Console().print(table)


@app.command("show", help="Show one cached file")
def cache_show(
    file_id: str = typer.Argument(..., metavar="ID"),
    limit: int = typer.Option(5, "--limit", min=0, help="Rows to print"),
) -> None:
    stored = build_cache_service().get_file(file_id)
    if stored is None:
        fail(f"Cached file not found: {file_id}")
    emit_json({"file_info": stored.file_info.to_payload(), "rows": stored.data[:limit]})


@app.command("import", help="Import a CSV export into the cache")
def cache_import(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, metavar="CSV"),
    year: int = typer.Option(..., "--year", help="Reporting year"),
    month: int = typer.Option(..., "--month", min=1, max=12, help="Reporting month"),
    record_type: str | None = typer.Option(
        None,
        "--type",
        help="Record type (default: inferred from the SICOP file name)",
    ),
    delimiter: str = typer.Option(",", "--delimiter", help="CSV delimiter"),
) -> None:
    resolved_type = record_type or type_for_file_name(csv_path.name)
    if not resolved_type:
        raise typer.BadParameter(
            f"Cannot infer the record type of {csv_path.name}; pass --type"
        )
    with csv_path.open("r", encoding="utf-8-sig", newline="") as handle:
        rows = [dict(row) for row in csv.DictReader(handle, delimiter=delimiter)]
    try:
        file_id = build_cache_service().save_file(csv_path.name, rows, year, month, resolved_type)
    except CacheError as exc:
        fail(str(exc))
    emit_json({"id": file_id, "type": resolved_type, "records": len(rows)})


@app.command("delete", help="Delete one cached file")
def cache_delete(file_id: str = typer.Argument(..., metavar="ID")) -> None:
    try:
        build_cache_service().delete_file(file_id)
    except CachedFileNotFoundError as exc:
        fail(str(exc))
    emit_json({"deleted": [file_id]})


@app.command("delete-year", help="Delete every cached file of a year")
def cache_delete_year(year: int = typer.Argument(...)) -> None:
    emit_json({"deleted": build_cache_service().delete_files_by_year(year)})


@app.command("delete-month", help="Delete every cached file of a year and month")
def cache_delete_month(
    year: int = typer.Argument(...),
    month: int = typer.Argument(..., min=1, max=12),
) -> None:
    emit_json({"deleted": build_cache_service().delete_files_by_month(year, month)})


@app.command("clear", help="Remove all cached files and reset the ledger")
def cache_clear() -> None:
    cache = build_cache_service()
    cache.clear_cache()
    emit_json({"cleared": True, "total_files": cache.get_cache_stats().total_files})


__all__ = ["app"]
