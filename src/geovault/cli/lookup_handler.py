"""Lookup command handler for GeoVault CLI."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from rich.console import Console
from rich.table import Table

from geovault.cli.common.context import get_cli_context
from geovault.cli.common.error_handler import format_json_output, write_json_output
from geovault.cli.common.setup import build_container, load_cli_settings
from geovault.services import DisplayState, LocationService, Mode
from geovault.shared.constants import CLICommands, CLIDefaults, CLIMessages

logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    DisplayState.CACHED: "found",
    DisplayState.FAILED: CLIMessages.NO_RESULT,
    DisplayState.FETCH_AVAILABLE: "fetch available",
    DisplayState.LOADING: "pending",
}


def handle_lookup_command(
    keys: list[str],
    mode: Mode | None = None,
    *,
    trigger: bool = True,
) -> int:
    """Look up ``keys`` through the dispatch policy and print the results.

    Args:
        keys: Account keys, in output order
        mode: Dispatch mode for this run only (the configured one if None)
        trigger: In manual mode, explicitly request uncached keys

    Returns:
        Exit code
    """
    context = get_cli_context()
    settings = load_cli_settings(context)
    if mode is not None:
        settings = settings.model_copy(deep=True)
        settings.dispatch.mode = mode.value

    container = build_container(settings, context)
    service = container.location_service()
    results = asyncio.run(_run_lookup(service, keys, trigger=trigger))

    rows = [
        {
            "key": key,
            "status": _status_of(service, key),
            "location": value,
        }
        for key, value in results.items()
    ]

    if context.is_json_output_enabled():
        write_json_output(
            format_json_output(
                CLICommands.LOOKUP,
                success=True,
                data={
                    "mode": service.policy.mode.value,
                    "results": rows,
                    "stats": service.scheduler.get_stats(),
                },
            ),
        )
    else:
        _print_table(rows)

    return CLIDefaults.EXIT_SUCCESS


async def _run_lookup(service: LocationService, keys: list[str], *, trigger: bool) -> dict[str, Any]:
    async with service:
        return await service.lookup(keys, trigger=trigger)


def _status_of(service: LocationService, key: str) -> str:
    state = service.policy.display_state(key)
    if state is None:
        return "disabled"
    return _STATUS_LABELS.get(state, state.value)


def _print_table(rows: list[dict[str, Any]]) -> None:
    table = Table(title="Account locations")
    table.add_column("Key", style="cyan")
    table.add_column("Status")
    table.add_column("Location")
    table.add_column("Source")
    table.add_column("Accurate")
    table.add_column("VPN")

    for row in rows:
        info = row["location"] or {}
        table.add_row(
            row["key"],
            row["status"],
            info.get("location") or "-",
            info.get("source") or "-",
            _yes_no(info.get("location_accurate")),
            _yes_no(info.get("is_vpn")),
        )

    Console().print(table)


def _yes_no(value: Any) -> str:
    if value is None:
        return "-"
    return "yes" if value else "no"
