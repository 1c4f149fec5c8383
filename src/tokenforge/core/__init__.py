"""Core services for TokenForge."""

from .config import (
    DEFAULT_CONFIG_DIR,
    ConfigManager,
    LaunchpadConfig,
    LaunchSettings,
)
from .errors import (
    AmbiguousOutcomeError,
    ConfigurationError,
    LaunchFailedError,
    LaunchpadError,
    NetworkError,
    ProtocolError,
    ReadBackError,
    RemoteError,
    SizingError,
    SubmissionError,
    UploadError,
    UploadTimeoutError,
    ValidationError,
    WalletNotConnectedError,
)
from .logs import LogBuffer, LogEntry
from .network import NETWORK_NAMES, normalize_network, resolve_endpoint, supports_airdrop

__all__ = [
    "AmbiguousOutcomeError",
    "ConfigManager",
    "ConfigurationError",
    "DEFAULT_CONFIG_DIR",
    "LaunchFailedError",
    "LaunchSettings",
    "LaunchpadConfig",
    "LaunchpadError",
    "LogBuffer",
    "LogEntry",
    "NETWORK_NAMES",
    "NetworkError",
    "ProtocolError",
    "ReadBackError",
    "RemoteError",
    "SizingError",
    "SubmissionError",
    "UploadError",
    "UploadTimeoutError",
    "ValidationError",
    "WalletNotConnectedError",
    "normalize_network",
    "resolve_endpoint",
    "supports_airdrop",
]
