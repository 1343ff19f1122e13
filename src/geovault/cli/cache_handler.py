"""Cache command handler for GeoVault CLI."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from geovault.cli.common.context import get_cli_context
from geovault.cli.common.error_handler import format_json_output, write_json_output
from geovault.cli.common.setup import build_container, load_cli_settings
from geovault.services import ResultCache
from geovault.shared.constants import BASE_SECOND, CLICommands, CLIDefaults, CLIMessages


def handle_cache_command(
    *,
    show_stats: bool = False,
    show_key: str | None = None,
    clear: bool = False,
) -> int:
    """Inspect or clear the persisted cache.

    Returns:
        Exit code
    """
    context = get_cli_context()
    settings = load_cli_settings(context)
    container = build_container(settings, context)
    cache = container.result_cache()
    cache.hydrate()

    if clear:
        removed = asyncio.run(_clear(cache))
        _emit(
            context.is_json_output_enabled(),
            {"removed": removed},
            CLIMessages.CACHE_CLEARED.format(count=removed),
        )
        return CLIDefaults.EXIT_SUCCESS

    if show_stats:
        stats = {**cache.stats(), "path": settings.cache.path, "ttl_ms": cache.ttl_ms}
        if context.is_json_output_enabled():
            _emit(True, stats, "")
        else:
            _print_mapping("Cache statistics", stats)
        return CLIDefaults.EXIT_SUCCESS

    if show_key is not None:
        entry = cache.lookup(show_key)
        if entry is None:
            _emit(
                context.is_json_output_enabled(),
                {"key": show_key, "entry": None},
                CLIMessages.KEY_NOT_CACHED.format(key=show_key),
            )
            return CLIDefaults.EXIT_ERROR
        data = {"key": show_key, "entry": entry.model_dump()}
        if context.is_json_output_enabled():
            _emit(True, data, "")
        else:
            fields = entry.value if isinstance(entry.value, dict) else {"value": entry.value}
            _print_mapping(show_key, {**fields, "expires": _format_ts(entry.expires_at)})
        return CLIDefaults.EXIT_SUCCESS

    live = {key: entry for key, entry in cache.snapshot().items() if cache.has(key)}
    if context.is_json_output_enabled():
        _emit(True, {"entries": {key: entry.model_dump() for key, entry in live.items()}}, "")
    elif not live:
        typer.echo(CLIMessages.CACHE_EMPTY)
    else:
        table = Table(title="Cached locations")
        table.add_column("Key", style="cyan")
        table.add_column("Location")
        table.add_column("Expires")
        for key, entry in sorted(live.items()):
            value = entry.value if isinstance(entry.value, dict) else {}
            table.add_row(key, value.get("location") or "-", _format_ts(entry.expires_at))
        Console().print(table)
    return CLIDefaults.EXIT_SUCCESS


async def _clear(cache: ResultCache) -> int:
    removed = cache.clear()
    cache.flush()
    return removed


def _emit(json_output: bool, data: dict[str, Any], message: str) -> None:
    if json_output:
        write_json_output(format_json_output(CLICommands.CACHE, success=True, data=data))
    else:
        typer.echo(message)


def _print_mapping(title: str, data: dict[str, Any]) -> None:
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in data.items():
        table.add_row(field, str(value))
    Console().print(table)


def _format_ts(timestamp_ms: float | None) -> str:
    if timestamp_ms is None:
        return "-"
    return datetime.fromtimestamp(timestamp_ms / BASE_SECOND, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
