"""CLI command groups."""

__all__ = [
    "cache",
    "config",
    "consolidate",
    "filter",
    "sync",
]

from . import cache, config, consolidate, filter, sync
