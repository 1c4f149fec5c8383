"""Symbolic network names and their RPC endpoints."""

from __future__ import annotations

from typing import Literal, get_args

from .errors import ConfigurationError

NetworkName = Literal["mainnet", "devnet", "testnet", "localhost", "custom"]

NETWORK_NAMES: tuple[str, ...] = get_args(NetworkName)
DEFAULT_NETWORK: NetworkName = "devnet"

DEFAULT_RPC_URLS: dict[str, str] = {
    "mainnet": "https://api.mainnet-beta.solana.com",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "localhost": "http://localhost:8899",
}

# Public faucets only exist off mainnet.
AIRDROP_NETWORKS: frozenset[str] = frozenset({"devnet", "testnet", "localhost"})


def normalize_network(value: str) -> NetworkName:
    """Map user input onto a known network name."""
    candidate = value.strip().lower()
    if candidate == "mainnet-beta":
        candidate = "mainnet"
    if candidate not in NETWORK_NAMES:
        choices = ", ".join(NETWORK_NAMES)
        raise ConfigurationError(f"Unknown network '{value}'. Choose one of: {choices}.")
    return candidate  # type: ignore[return-value]


def resolve_endpoint(
    network: str,
    *,
    custom_rpc_url: str | None = None,
    mainnet_rpc_url: str | None = None,
) -> str:
    """Return the RPC URL for `network`."""
    name = normalize_network(network)
    if name == "custom":
        url = (custom_rpc_url or "").strip()
        if not url:
            raise ConfigurationError("Network 'custom' requires a custom RPC URL.")
        return url
    if name == "mainnet" and mainnet_rpc_url and mainnet_rpc_url.strip():
        return mainnet_rpc_url.strip()
    return DEFAULT_RPC_URLS[name]


def supports_airdrop(network: str) -> bool:
    return normalize_network(network) in AIRDROP_NETWORKS


__all__ = [
    "AIRDROP_NETWORKS",
    "DEFAULT_NETWORK",
    "DEFAULT_RPC_URLS",
    "NETWORK_NAMES",
    "NetworkName",
    "normalize_network",
    "resolve_endpoint",
    "supports_airdrop",
]
