"""tokenforge: launch Token-2022 mints with on-chain metadata."""

__version__ = "0.1.0"
