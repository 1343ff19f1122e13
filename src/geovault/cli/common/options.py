"""
Reusable Typer Options Module

This module provides the Typer options shared by the main callback and
the commands. Use them as ``Annotated`` metadata with a plain default::

    verbose: Annotated[int, verbose_option] = 0
"""

from __future__ import annotations

import typer

# Verbose option - count-based for multiple -v flags
verbose_option = typer.Option(
    "--verbose",
    "-v",
    count=True,
    help="Enable verbose output (equivalent to --log-level DEBUG).",
)


# Log level option - enum-based with case-insensitive choices
log_level_option = typer.Option(
    "--log-level",
    case_sensitive=False,
    help="Set the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Default: WARNING.",
)


# JSON output option - flag-based
json_output_option = typer.Option(
    "--json",
    help="Enable machine-readable JSON output instead of human-readable format.",
)


# Configuration file option
config_option = typer.Option(
    "--config",
    "-c",
    help="Configuration file (TOML). Defaults to the standard locations.",
    dir_okay=False,
)


# Version option - for main app only
version_option = typer.Option(
    "--version",
    "-V",
    help="Show version information and exit.",
    is_eager=True,
)
