"""Configuration management for TokenForge."""

from __future__ import annotations

import os
import tomllib
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ValidationError

from .errors import ConfigurationError
from .network import DEFAULT_NETWORK, normalize_network, resolve_endpoint

DEFAULT_CONFIG_DIR = Path(os.environ.get("TOKENFORGE_HOME", Path.home() / ".tokenforge"))
CONFIG_FILENAME = "config.toml"
DEFAULT_UPLOAD_PRESET = "token_launchpad_upload_preset"

# Environment variables win over the config file for these keys.
ENV_OVERRIDES: dict[str, str] = {
    "TOKENFORGE_MAINNET_RPC_URL": "mainnet_rpc_url",
    "TOKENFORGE_CLOUDINARY_CLOUD_NAME": "cloudinary_cloud_name",
    "TOKENFORGE_CLOUDINARY_UPLOAD_PRESET": "cloudinary_upload_preset",
}


class LaunchpadConfig(BaseModel):
    """Persisted TokenForge configuration settings."""

    config_version: int = 1
    network: str = DEFAULT_NETWORK
    custom_rpc_url: str = ""
    mainnet_rpc_url: str | None = None
    cloudinary_cloud_name: str | None = None
    cloudinary_upload_preset: str = DEFAULT_UPLOAD_PRESET
    upload_timeout: float = 10.0
    confirm_timeout: float = 30.0
    commitment: str = "confirmed"


@dataclass(frozen=True, slots=True)
class LaunchSettings:
    """Resolved, immutable settings injected into a pipeline run."""

    network: str
    rpc_url: str
    cloudinary_cloud_name: str | None
    cloudinary_upload_preset: str = DEFAULT_UPLOAD_PRESET
    upload_timeout: float = 10.0
    confirm_timeout: float = 30.0
    commitment: str = "confirmed"


class ConfigManager:
    """Handles loading and persisting TokenForge configuration."""

    def __init__(
        self,
        config_dir: Path | None = None,
        override_config_path: Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        self.config_dir = config_dir or DEFAULT_CONFIG_DIR
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path = self.config_dir / CONFIG_FILENAME
        self.override_config_path = override_config_path
        self._environ = os.environ if environ is None else environ

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load(self) -> LaunchpadConfig:
        data: dict[str, Any] = self._read_config_dict(self.config_path)
        if self.override_config_path:
            data = self._merge_dicts(data, self._read_config_dict(self.override_config_path))
        for env_name, key in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                data[key] = value
        try:
            return LaunchpadConfig(**data)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    def set_network(self, network: str) -> LaunchpadConfig:
        self._update_base_config(network=normalize_network(network))
        return self.load()

    def set_custom_rpc_url(self, url: str) -> LaunchpadConfig:
        """Persist a custom RPC URL; a non-empty URL also selects `custom`."""
        url = url.strip()
        updates: dict[str, object] = {"custom_rpc_url": url}
        if url:
            updates["network"] = "custom"
        self._update_base_config(**updates)
        return self.load()

    def endpoint(self, config: LaunchpadConfig | None = None) -> str:
        config = config or self.load()
        return resolve_endpoint(
            config.network,
            custom_rpc_url=config.custom_rpc_url,
            mainnet_rpc_url=config.mainnet_rpc_url,
        )

    def settings(self, *, network: str | None = None) -> LaunchSettings:
        """Resolve the settings for one launch, optionally on another network."""
        config = self.load()
        if network is not None:
            config = config.model_copy(update={"network": normalize_network(network)})
        return LaunchSettings(
            network=normalize_network(config.network),
            rpc_url=self.endpoint(config),
            cloudinary_cloud_name=config.cloudinary_cloud_name,
            cloudinary_upload_preset=config.cloudinary_upload_preset,
            upload_timeout=config.upload_timeout,
            confirm_timeout=config.confirm_timeout,
            commitment=config.commitment,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _save_config(self, config: LaunchpadConfig) -> None:
        self.config_path.write_text(tomli_w.dumps(config.model_dump(exclude_none=True)))

    def _update_base_config(self, **updates: object) -> None:
        current = self._read_config_dict(self.config_path)
        current = current.copy() if current else {}
        current.update(updates)
        try:
            base_config = LaunchpadConfig(**current)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
        self._save_config(base_config)

    def _read_config_dict(self, path: Path | None) -> dict[str, Any]:
        if path is None:
            return {}
        if not path.exists():
            return {}
        try:
            return tomllib.loads(path.read_text())
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigurationError(f"Failed to load config from {path}: {exc}") from exc

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        result = deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CONFIG_DIR",
    "ConfigManager",
    "ConfigurationError",
    "LaunchSettings",
    "LaunchpadConfig",
]
