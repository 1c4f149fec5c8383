"""Mint account sizing and rent."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tokenforge.core.errors import SizingError
from tokenforge.solana.rpc import SolanaRPCClient, SolanaRPCError
from tokenforge.solana.token2022 import LENGTH_SIZE, TYPE_SIZE, ExtensionType, TokenMetadata, get_mint_len

logger = logging.getLogger(__name__)

METADATA_TLV_OVERHEAD = TYPE_SIZE + LENGTH_SIZE


@dataclass(frozen=True, slots=True)
class AccountSizing:
    mint_account_length: int
    metadata_length: int
    rent_lamports: int

    @property
    def funded_length(self) -> int:
        """Bytes the rent covers: the mint plus the metadata the initialize step reallocates."""
        return self.mint_account_length + METADATA_TLV_OVERHEAD + self.metadata_length


async def compute_sizing(record: TokenMetadata, rpc: SolanaRPCClient) -> AccountSizing:
    metadata_length = len(record.pack())
    mint_length = get_mint_len([ExtensionType.METADATA_POINTER])
    total = mint_length + METADATA_TLV_OVERHEAD + metadata_length
    try:
        lamports = await rpc.get_minimum_balance_for_rent_exemption(total)
    except SolanaRPCError as exc:
        raise SizingError(f"Rent query for {total} bytes failed: {exc}") from exc
    logger.debug("Mint account %d bytes, metadata %d bytes, rent %d lamports", mint_length, metadata_length, lamports)
    return AccountSizing(
        mint_account_length=mint_length,
        metadata_length=metadata_length,
        rent_lamports=lamports,
    )


__all__ = ["AccountSizing", "METADATA_TLV_OVERHEAD", "compute_sizing"]
