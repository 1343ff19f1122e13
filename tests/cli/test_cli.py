"""
End-to-end tests for the Typer CLI.

Every run points ``--config`` at a temporary TOML file whose cache path is
inside ``tmp_path``; no test performs a network lookup.
"""

from __future__ import annotations

import json
import time
from pathlib import Path

import pytest
import toml
from typer.testing import CliRunner

from geovault.cli.typer_app import app
from geovault.config import load_settings
from geovault.services.cache_models import CacheEntry
from geovault.services.storage import JsonFileStore

DAY_MS = 24 * 3600 * 1000

runner = CliRunner()


@pytest.fixture
def cache_file(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "locations.json"


@pytest.fixture
def config_file(tmp_path: Path, cache_file: Path) -> Path:
    config = tmp_path / "config.toml"
    config.write_text(
        toml.dumps(
            {
                "api": {"url_template": "http://127.0.0.1:9/accounts/{key}"},
                "cache": {"path": str(cache_file)},
                "dispatch": {"mode": "auto"},
            },
        ),
        encoding="utf-8",
    )
    return config


@pytest.fixture
def cached_alice(cache_file: Path) -> None:
    now = time.time() * 1000
    JsonFileStore(cache_file).save(
        {
            "alice": CacheEntry(
                value={"location": "Canada", "source": "Web", "location_accurate": True, "is_vpn": False},
                expires_at=now + DAY_MS,
                created_at=now,
            ),
        },
    )


def invoke(config_file: Path, *args: str):
    return runner.invoke(app, ["--config", str(config_file), *args])


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "GeoVault v" in result.stdout


class TestModeCommand:
    """Showing and persisting the dispatch mode."""

    def test_show_mode(self, config_file: Path) -> None:
        result = invoke(config_file, "mode")

        assert result.exit_code == 0
        assert "Current mode: auto" in result.stdout

    def test_change_mode_is_persisted(self, config_file: Path, cache_file: Path) -> None:
        # When
        result = invoke(config_file, "mode", "manual")

        # Then
        assert result.exit_code == 0
        assert "Mode changed to manual" in result.stdout
        saved = toml.load(config_file)
        assert saved["dispatch"]["mode"] == "manual"
        assert saved["cache"]["path"] == str(cache_file)

    def test_mode_change_without_config_option_updates_local_file(
        self,
        config_file: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        # Given: ./config.toml is the file settings are read from
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        # When
        result = runner.invoke(app, ["mode", "manual"])

        # Then
        assert result.exit_code == 0
        assert toml.load(config_file)["dispatch"]["mode"] == "manual"
        assert load_settings().dispatch.mode == "manual"
        assert not (tmp_path / "home" / ".geovault" / "config.toml").exists()

    def test_mode_json_output(self, config_file: Path) -> None:
        result = invoke(config_file, "--json", "mode", "manual")

        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["command"] == "mode"
        assert payload["data"] == {"mode": "manual", "changed": True}

    def test_unknown_mode_is_a_usage_error(self, config_file: Path) -> None:
        result = invoke(config_file, "mode", "sometimes")

        assert result.exit_code == 2


class TestLookupCommand:
    """Lookups answered from the persisted cache or left to a trigger."""

    @pytest.mark.usefixtures("cached_alice")
    def test_cached_key_is_answered_from_cache(self, config_file: Path) -> None:
        result = invoke(config_file, "--json", "lookup", "alice")

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["data"]["mode"] == "auto"
        assert payload["data"]["results"] == [
            {
                "key": "alice",
                "status": "found",
                "location": {"location": "Canada", "source": "Web", "location_accurate": True, "is_vpn": False},
            },
        ]
        assert payload["data"]["stats"]["dispatched"] == 0

    def test_manual_mode_without_trigger_does_not_fetch(self, config_file: Path) -> None:
        result = invoke(config_file, "--json", "lookup", "bob", "--mode", "manual", "--no-trigger")

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["data"]["results"] == [{"key": "bob", "status": "fetch available", "location": None}]
        assert payload["data"]["stats"]["dispatched"] == 0

    def test_mode_override_is_not_persisted(self, config_file: Path) -> None:
        invoke(config_file, "--json", "lookup", "bob", "--mode", "manual", "--no-trigger")

        assert toml.load(config_file)["dispatch"]["mode"] == "auto"

    @pytest.mark.usefixtures("cached_alice")
    def test_table_output(self, config_file: Path) -> None:
        result = invoke(config_file, "lookup", "alice")

        assert result.exit_code == 0
        assert "Canada" in result.stdout


class TestCacheCommand:
    """Inspecting and clearing the persisted cache."""

    def test_empty_cache(self, config_file: Path) -> None:
        result = invoke(config_file, "cache")

        assert result.exit_code == 0
        assert "Cache is empty" in result.stdout

    @pytest.mark.usefixtures("cached_alice")
    def test_list_entries_as_json(self, config_file: Path) -> None:
        result = invoke(config_file, "--json", "cache")

        payload = json.loads(result.stdout)
        assert list(payload["data"]["entries"]) == ["alice"]

    @pytest.mark.usefixtures("cached_alice")
    def test_show_key(self, config_file: Path) -> None:
        result = invoke(config_file, "--json", "cache", "--show", "alice")

        payload = json.loads(result.stdout)
        assert payload["data"]["entry"]["value"]["location"] == "Canada"

    def test_show_missing_key_fails(self, config_file: Path) -> None:
        result = invoke(config_file, "cache", "--show", "nobody")

        assert result.exit_code == 1
        assert "No cache entry for nobody" in result.stdout

    @pytest.mark.usefixtures("cached_alice")
    def test_stats(self, config_file: Path) -> None:
        result = invoke(config_file, "--json", "cache", "--stats")

        payload = json.loads(result.stdout)
        assert payload["data"]["entries"] == 1
        assert payload["data"]["live_entries"] == 1

    @pytest.mark.usefixtures("cached_alice")
    def test_clear(self, config_file: Path, cache_file: Path) -> None:
        result = invoke(config_file, "cache", "--clear")

        assert result.exit_code == 0
        assert "1 entries removed" in result.stdout
        assert JsonFileStore(cache_file).load() == {}


class TestErrors:
    def test_invalid_config_exits_with_error(self, tmp_path: Path) -> None:
        config = tmp_path / "config.toml"
        config.write_text('[dispatch]\nmode = "sometimes"\n')

        result = invoke(config, "--json", "mode")

        assert result.exit_code == 1
        assert "CONFIG_INVALID" in result.output
        assert '"success": false' in result.output
