"""Cache/schema sync diagnostics."""

from __future__ import annotations

import typer

from .shared import build_sync_validator, emit_json


app = typer.Typer(
    help="Check the cache against the expected record types",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)


@app.command("validate", help="Compare cached types with the expected ones")
def sync_validate() -> None:
    emit_json(build_sync_validator().validate_cache_data_manager_sync())


@app.command("integrity", help="Look for duplicate keys and missing fields")
def sync_integrity() -> None:
    emit_json(build_sync_validator().check_cache_integrity())


@app.command("report", help="Run both checks and collect recommendations")
def sync_report() -> None:
    emit_json(build_sync_validator().generate_sync_report())


@app.command("usage", help="Type distribution and temporal coverage of the cache")
def sync_usage() -> None:
    emit_json(build_sync_validator().get_cache_usage_stats())


@app.command("types", help="Per-type mapping status")
def sync_types() -> None:
    emit_json(build_sync_validator().get_type_mapping_status())


__all__ = ["app"]
