"""Consolidation commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from persistence.errors import CacheError
from schemas.consolidation import ConsolidationOptions
from schemas.loader import LoadProgress
from .shared import (
    build_consolidation_service,
    build_loader,
    emit_json,
    fail,
    selection_payload,
)


app = typer.Typer(
    help="Merge cached files into one row set",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)

_YEARS = typer.Option(None, "--year", help="Year to include; repeatable")
_MONTHS = typer.Option(None, "--month", help="Month to include; repeatable")
_TYPES = typer.Option(None, "--type", help="Record type to include; repeatable")


def _options(
    years: list[int] | None,
    months: list[int] | None,
    types: list[str] | None,
    dedupe_by: str | None = None,
    sort_by: str | None = None,
    order: str = "asc",
) -> ConsolidationOptions:
    payload: dict[str, Any] = selection_payload(years, months, types)
    payload.update(deduplicate_by=dedupe_by, sort_by=sort_by, sort_order=order)
    try:
        return ConsolidationOptions.model_validate(payload)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command("run", help="Consolidate and print metadata plus a row preview")
def consolidate_run(
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
    dedupe_by: str | None = typer.Option(None, "--dedupe-by", help="Keep the first row per value"),
    sort_by: str | None = typer.Option(None, "--sort-by", help="Field to sort by"),
    order: str = typer.Option("asc", "--order", help="asc|desc"),
    limit: int = typer.Option(10, "--limit", min=0, help="Rows to print"),
) -> None:
    result = build_consolidation_service().consolidate_data(
        _options(years, months, types, dedupe_by, sort_by, order)
    )
    emit_json({"metadata": result.metadata, "rows": result.data[:limit]})


@app.command("stats", help="Summarize a consolidation without printing rows")
def consolidate_stats(
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
) -> None:
    emit_json(
        build_consolidation_service().get_consolidated_stats(_options(years, months, types))
    )


@app.command("aggregate", help="Aggregate a numeric field, optionally per group")
def consolidate_aggregate(
    field: str = typer.Option(..., "--field", help="Numeric field"),
    fn: str = typer.Option("sum", "--fn", help="sum|avg|min|max|count"),
    group_by: str | None = typer.Option(None, "--group-by", help="Field to group by"),
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
) -> None:
    try:
        value = build_consolidation_service().consolidate_and_aggregate(
            field, fn, group_by, _options(years, months, types)
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    emit_json({"field": field, "fn": fn, "value": value})


@app.command("export", help="Write the consolidated rows as CSV")
def consolidate_export(
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
    dedupe_by: str | None = typer.Option(None, "--dedupe-by"),
    sort_by: str | None = typer.Option(None, "--sort-by"),
    order: str = typer.Option("asc", "--order"),
    file_name: str = typer.Option("datos_consolidados.csv", "--file-name", help="Output file name"),
    output_dir: Path | None = typer.Option(
        None, "--output-dir", help="Output directory (default: SICOP_EXPORT_DIR)"
    ),
) -> None:
    path = build_consolidation_service().download_consolidated_csv(
        file_name,
        _options(years, months, types, dedupe_by, sort_by, order),
        output_dir=output_dir,
    )
    emit_json({"path": path})


@app.command("compare", help="Compare the summed field of two months")
def consolidate_compare(
    year1: int = typer.Argument(...),
    month1: int = typer.Argument(..., min=1, max=12),
    year2: int = typer.Argument(...),
    month2: int = typer.Argument(..., min=1, max=12),
    record_type: str = typer.Option(..., "--type", help="Record type"),
    field: str = typer.Option(..., "--field", help="Numeric field to sum"),
) -> None:
    emit_json(
        build_consolidation_service().compare_period(
            year1, month1, year2, month2, record_type, field
        )
    )


@app.command("load", help="Load cached rows grouped by type, as the analytics loader does")
def consolidate_load(
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
    progress: bool = typer.Option(False, "--progress", help="Print progress to stderr"),
) -> None:
    def _report(update: LoadProgress) -> None:
        typer.echo(f"[{update.percentage:>3}%] {update.stage}", err=True)

    try:
        loaded = build_loader().load_data_from_cache(
            years, months, types, on_progress=_report if progress else None
        )
    except CacheError as exc:
        fail(str(exc))
    emit_json({name: len(rows) for name, rows in loaded.items()})


__all__ = ["app"]
