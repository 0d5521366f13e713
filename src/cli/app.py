"""Typer CLI entrypoint for the SICOP cache."""

from __future__ import annotations

from importlib import import_module

import typer

from core.log import configure_logging
from sicop import __version__

_SUBCOMMAND_SPECS: list[tuple[str, str]] = [
    ("cache", "cli.commands.cache"),
    ("consolidate", "cli.commands.consolidate"),
    ("filter", "cli.commands.filter"),
    ("sync", "cli.commands.sync"),
    ("config", "cli.commands.config"),
]

app = typer.Typer(
    help="SICOP local cache: import, consolidate, filter and diagnose procurement CSV exports",
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
    add_completion=True,
)


@app.callback()
def root(
    ctx: typer.Context,
    version_flag: bool = typer.Option(
        False,
        "-v",
        "--version",
        help="Print the version and exit",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Override SICOP_LOG_LEVEL for this run",
    ),
) -> None:
    if version_flag:
        typer.echo(__version__)
        raise typer.Exit()
    configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _register_subcommands() -> None:
    for name, module_path in _SUBCOMMAND_SPECS:
        module = import_module(module_path)
        app.add_typer(module.app, name=name)


_register_subcommands()


def main() -> None:
    app()


__all__ = ["app", "main"]
