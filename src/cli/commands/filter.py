"""Advanced filter commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from schemas.filters import FilterCriteria, PeriodSelector
from .shared import build_filter_service, emit_json, load_payload, selection_payload


app = typer.Typer(
    help="Filter, compare and summarize consolidated rows",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)

_CRITERIA = typer.Option(
    None,
    "--criteria",
    help="FilterCriteria as a JSON object (camelCase or snake_case keys)",
)
_CRITERIA_FILE = typer.Option(None, "--criteria-file", help="JSON file holding FilterCriteria")
_YEARS = typer.Option(None, "--year", help="Year to include; repeatable")
_MONTHS = typer.Option(None, "--month", help="Month to include; repeatable")
_TYPES = typer.Option(None, "--type", help="Record type to include; repeatable")


def _criteria(
    raw: str | None,
    criteria_file: Path | None,
    years: list[int] | None,
    months: list[int] | None,
    types: list[str] | None,
) -> FilterCriteria:
    payload: dict[str, Any] = load_payload(raw, criteria_file)
    payload.update(selection_payload(years, months, types))
    try:
        return FilterCriteria.model_validate(payload)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _period(value: str) -> PeriodSelector:
    """Parse ``YYYY`` or ``YYYY-MM``."""
    year, _, month = value.partition("-")
    try:
        return PeriodSelector(year=int(year), month=int(month) if month else None)
    except (ValueError, ValidationError) as exc:
        raise typer.BadParameter(f"Invalid period {value!r}; use YYYY or YYYY-MM") from exc


@app.command("run", help="Apply filter criteria and print metadata plus a row preview")
def filter_run(
    criteria: str | None = _CRITERIA,
    criteria_file: Path | None = _CRITERIA_FILE,
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
    limit: int = typer.Option(10, "--limit", min=0, help="Rows to print"),
) -> None:
    result = build_filter_service().filter_consolidated_data(
        _criteria(criteria, criteria_file, years, months, types)
    )
    emit_json({"metadata": result.metadata, "rows": result.data[:limit]})


@app.command("quarter", help="Rows of one quarter of a year")
def filter_quarter(
    year: int = typer.Argument(...),
    quarter: int = typer.Argument(...),
    types: list[str] | None = _TYPES,
    limit: int = typer.Option(10, "--limit", min=0),
) -> None:
    try:
        result = build_filter_service().filter_by_quarter(year, quarter, types)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    emit_json({"metadata": result.metadata, "rows": result.data[:limit]})


@app.command("semester", help="Rows of one half of a year")
def filter_semester(
    year: int = typer.Argument(...),
    semester: int = typer.Argument(...),
    types: list[str] | None = _TYPES,
    limit: int = typer.Option(10, "--limit", min=0),
) -> None:
    try:
        result = build_filter_service().filter_by_semester(year, semester, types)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    emit_json({"metadata": result.metadata, "rows": result.data[:limit]})


@app.command("compare", help="Compare the summed field of two periods with a trend")
def filter_compare(
    period1: str = typer.Argument(..., metavar="PERIOD1", help="YYYY or YYYY-MM"),
    period2: str = typer.Argument(..., metavar="PERIOD2", help="YYYY or YYYY-MM"),
    record_type: str = typer.Option(..., "--type", help="Record type"),
    field: str = typer.Option(..., "--field", help="Numeric field to sum"),
) -> None:
    result = build_filter_service().compare_periods(
        _period(period1), _period(period2), record_type, field
    )
    emit_json(result.comparison)


@app.command("summary", help="Aggregate a field per period")
def filter_summary(
    field: str = typer.Option(..., "--field", help="Numeric field"),
    group_by: str = typer.Option("yearMonth", "--group-by", help="year|month|yearMonth"),
    fn: str = typer.Option("sum", "--fn", help="sum|avg|min|max|count"),
    criteria: str | None = _CRITERIA,
    criteria_file: Path | None = _CRITERIA_FILE,
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
) -> None:
    try:
        entries = build_filter_service().get_summary_by_period(
            _criteria(criteria, criteria_file, years, months, types), group_by, field, fn
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    emit_json(entries)


@app.command("export", help="Write the filtered rows as CSV")
def filter_export(
    criteria: str | None = _CRITERIA,
    criteria_file: Path | None = _CRITERIA_FILE,
    years: list[int] | None = _YEARS,
    months: list[int] | None = _MONTHS,
    types: list[str] | None = _TYPES,
    file_name: str = typer.Option("datos_filtrados.csv", "--file-name", help="Output file name"),
    output_dir: Path | None = typer.Option(
        None, "--output-dir", help="Output directory (default: SICOP_EXPORT_DIR)"
    ),
) -> None:
    path = build_filter_service().export_filtered_data_to_csv(
        _criteria(criteria, criteria_file, years, months, types),
        file_name,
        output_dir=output_dir,
    )
    emit_json({"path": path})


__all__ = ["app"]
