"""Solana-focused utilities for TokenForge."""

from .rpc import SolanaRPCClient, SolanaRPCError
from .wallet import KeystoreSigner, WalletError, WalletManager, WalletSigner, WalletStatus

__all__ = [
    "KeystoreSigner",
    "SolanaRPCClient",
    "SolanaRPCError",
    "WalletError",
    "WalletManager",
    "WalletSigner",
    "WalletStatus",
]
