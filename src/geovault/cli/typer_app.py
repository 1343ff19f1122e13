"""
GeoVault Typer CLI Application

This is the main Typer-based CLI application for GeoVault. The common
options are parsed by the callback into a :class:`CliContext`; each command
delegates to its handler module.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from geovault.cli.cache_handler import handle_cache_command
from geovault.cli.common.context import CliContext, LogLevel, get_cli_context, set_cli_context
from geovault.cli.common.error_handler import handle_cli_error
from geovault.cli.common.options import (
    config_option,
    json_output_option,
    log_level_option,
    verbose_option,
    version_option,
)
from geovault.cli.lookup_handler import handle_lookup_command
from geovault.cli.mode_handler import handle_mode_command
from geovault.services import Mode
from geovault.shared.constants import CLICommands, CLIDefaults, CLIHelp
from geovault.shared.logging import setup_structured_logger

# Version information
__version__ = CLIDefaults.VERSION


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=__version__))
        raise typer.Exit


app = typer.Typer(
    name="geovault",
    help=CLIHelp.APP_HELP,
    no_args_is_help=True,
    invoke_without_command=True,
)


@app.callback()
def main(
    verbose: Annotated[int, verbose_option] = 0,
    log_level: Annotated[LogLevel, log_level_option] = LogLevel.WARNING,
    json_output: Annotated[bool, json_output_option] = False,
    config: Annotated[Path | None, config_option] = None,
    version: Annotated[bool, version_option] = False,
) -> None:
    """Process the common options before any command runs."""
    if version:
        version_callback(value=True)

    context = CliContext(
        verbose=verbose,
        log_level=log_level,
        json_output=json_output,
        config_path=config,
    )
    set_cli_context(context)
    setup_structured_logger(level=context.get_effective_log_level())


def _run(command: str, handler, *args, **kwargs) -> None:
    try:
        exit_code = handler(*args, **kwargs)
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, command, json_output=get_cli_context().is_json_output_enabled())
    raise typer.Exit(exit_code)


@app.command(CLICommands.LOOKUP, help=CLIHelp.LOOKUP_HELP)
def lookup_command(
    keys: Annotated[list[str], typer.Argument(help="Account keys (screen names) to look up.")],
    mode: Annotated[
        Mode | None,
        typer.Option("--mode", "-m", case_sensitive=False, help="Dispatch mode for this run (auto, manual)."),
    ] = None,
    trigger: Annotated[
        bool,
        typer.Option("--trigger/--no-trigger", help="In manual mode, explicitly request uncached keys."),
    ] = True,
) -> None:
    """
    Look up where accounts are based.

    Cached results are answered immediately; the rest are fetched under the
    configured rate limits.

    Examples:
        geovault lookup alice bob
        geovault --json lookup alice --mode manual --no-trigger
    """
    _run(CLICommands.LOOKUP, handle_lookup_command, keys, mode, trigger=trigger)


@app.command(CLICommands.CACHE, help=CLIHelp.CACHE_HELP)
def cache_command(
    stats: Annotated[bool, typer.Option("--stats", help="Show cache statistics.")] = False,
    show: Annotated[str | None, typer.Option("--show", help="Show the cache entry for one key.")] = None,
    clear: Annotated[bool, typer.Option("--clear", help="Remove every cache entry.")] = False,
) -> None:
    """Inspect or clear the persisted location cache."""
    _run(CLICommands.CACHE, handle_cache_command, show_stats=stats, show_key=show, clear=clear)


@app.command(CLICommands.MODE, help=CLIHelp.MODE_HELP)
def mode_command(
    mode: Annotated[
        Mode | None,
        typer.Argument(case_sensitive=False, help="New dispatch mode (auto, manual)."),
    ] = None,
) -> None:
    """Show the dispatch mode, or change and persist it."""
    _run(CLICommands.MODE, handle_mode_command, mode)
