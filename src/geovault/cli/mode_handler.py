"""Mode command handler for GeoVault CLI."""

from __future__ import annotations

import logging

import typer

from geovault.cli.common.context import get_cli_context
from geovault.cli.common.error_handler import format_json_output, write_json_output
from geovault.cli.common.setup import build_container, load_cli_settings
from geovault.services import Mode
from geovault.shared.constants import CLICommands, CLIDefaults, CLIMessages

logger = logging.getLogger(__name__)


def handle_mode_command(mode: Mode | None = None) -> int:
    """Show the dispatch mode, or change and persist it.

    Returns:
        Exit code
    """
    context = get_cli_context()
    settings = load_cli_settings(context)
    container = build_container(settings, context)
    policy = container.dispatch_policy()

    changed = False
    if mode is not None and mode is not policy.mode:
        # The location service persists mode changes to the config file
        service = container.location_service()
        service.set_mode(mode)
        changed = True

    current = policy.mode.value
    if context.is_json_output_enabled():
        write_json_output(
            format_json_output(
                CLICommands.MODE,
                success=True,
                data={"mode": current, "changed": changed},
            ),
        )
    elif changed:
        typer.echo(CLIMessages.MODE_CHANGED.format(mode=current))
    else:
        typer.echo(CLIMessages.MODE_CURRENT.format(mode=current))

    return CLIDefaults.EXIT_SUCCESS
