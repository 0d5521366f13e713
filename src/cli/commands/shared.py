"""Shared helpers for CLI subcommands."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, NoReturn

import typer
from pydantic import BaseModel

from core.config import get_settings
from persistence.cache import CacheService, get_cache_service
from services.consolidation import ConsolidationService
from services.filters import AdvancedFilterService
from services.loader import DataLoaderService
from services.sync import CacheSyncValidator


def build_cache_service() -> CacheService:
    settings = get_settings()
    return get_cache_service(str(settings.cache_path), settings.sqlite_timeout)


def build_consolidation_service() -> ConsolidationService:
    return ConsolidationService(build_cache_service())


def build_filter_service() -> AdvancedFilterService:
    return AdvancedFilterService(build_consolidation_service())


def build_sync_validator() -> CacheSyncValidator:
    return CacheSyncValidator(build_cache_service())


def build_loader() -> DataLoaderService:
    cache = build_cache_service()
    return DataLoaderService(cache, ConsolidationService(cache))


def load_payload(raw: str | None, payload_file: Path | None) -> dict[str, Any]:
    """Merge a JSON object from ``--criteria-file`` and ``--criteria`` (string wins)."""
    payload: dict[str, Any] = {}
    if payload_file:
        if not payload_file.exists():
            raise typer.BadParameter(f"File not found: {payload_file}")
        payload.update(_parse_json_object(payload_file.read_text(encoding="utf-8")))
    if raw:
        payload.update(_parse_json_object(raw))
    return payload


def selection_payload(
    years: list[int] | None,
    months: list[int] | None,
    types: list[str] | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if years:
        payload["years"] = list(years)
    if months:
        payload["months"] = list(months)
    if types:
        payload["types"] = list(types)
    return payload


def to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    if isinstance(data, dict):
        return {
            ("null" if key is None else str(key)): to_jsonable(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    if isinstance(data, Path):
        return str(data)
    return data


def emit_json(data: Any) -> None:
    typer.echo(json.dumps(to_jsonable(data), ensure_ascii=False, indent=2))


def fail(message: str, code: int = 1) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=code)


def _parse_json_object(text: str) -> dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise typer.BadParameter("Expected a JSON object")
    return payload


__all__ = [
    "build_cache_service",
    "build_consolidation_service",
    "build_filter_service",
    "build_loader",
    "build_sync_validator",
    "emit_json",
    "fail",
    "load_payload",
    "selection_payload",
    "to_jsonable",
]
