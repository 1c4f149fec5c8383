from __future__ import annotations

from pathlib import Path

import tomli_w
from typer.testing import CliRunner

from tokenforge.cli import app
from tokenforge.core.config import ConfigManager

runner = CliRunner()


def invoke(tmp_path: Path, *args: str):
    return runner.invoke(app, ["--config-dir", str(tmp_path), *args])


def test_show_defaults_to_devnet(tmp_path: Path) -> None:
    result = invoke(tmp_path, "network", "show")

    assert result.exit_code == 0, result.output
    assert "Network: devnet" in result.stdout
    assert "https://api.devnet.solana.com" in result.stdout


def test_use_persists_selection(tmp_path: Path) -> None:
    result = invoke(tmp_path, "network", "use", "mainnet-beta")

    assert result.exit_code == 0, result.output
    assert ConfigManager(config_dir=tmp_path, environ={}).load().network == "mainnet"


def test_unknown_network_is_rejected(tmp_path: Path) -> None:
    result = invoke(tmp_path, "network", "use", "moonnet")

    assert result.exit_code == 1
    assert "Unknown network" in result.stdout


def test_custom_url_selects_custom_network(tmp_path: Path) -> None:
    result = invoke(tmp_path, "network", "custom", "https://rpc.example.com")

    assert result.exit_code == 0, result.output
    manager = ConfigManager(config_dir=tmp_path, environ={})
    assert manager.endpoint() == "https://rpc.example.com"


def test_custom_url_must_be_http(tmp_path: Path) -> None:
    result = invoke(tmp_path, "network", "custom", "rpc.example.com")

    assert result.exit_code == 1
    assert ConfigManager(config_dir=tmp_path, environ={}).load().network == "devnet"


def test_custom_without_url_is_rejected(tmp_path: Path) -> None:
    result = invoke(tmp_path, "network", "use", "custom")

    assert result.exit_code == 1
    assert "requires a custom RPC URL" in result.stdout
    assert ConfigManager(config_dir=tmp_path, environ={}).load().network == "devnet"


def test_config_option_merges_override_file(tmp_path: Path) -> None:
    override = tmp_path / "override.toml"
    override.write_text(tomli_w.dumps({"network": "localhost"}))

    result = runner.invoke(app, ["--config-dir", str(tmp_path), "--config", str(override), "network", "show"])

    assert result.exit_code == 0, result.output
    assert "Network: localhost" in result.stdout
    assert "http://localhost:8899" in result.stdout
    assert ConfigManager(config_dir=tmp_path, environ={}).load().network == "devnet"
