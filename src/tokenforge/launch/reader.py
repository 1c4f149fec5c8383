"""Read back the confirmed mint's extension state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from solders.pubkey import Pubkey

from tokenforge.core.errors import ReadBackError
from tokenforge.solana.rpc import SolanaRPCClient, SolanaRPCError
from tokenforge.solana.token2022 import (
    TOKEN_2022_PROGRAM_ID,
    ExtensionType,
    MetadataPointerState,
    TokenLayoutError,
    TokenMetadata,
    decode_mint,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReadBackState:
    metadata_pointer: MetadataPointerState | None
    metadata: TokenMetadata | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "metadataPointer": self.metadata_pointer.as_dict() if self.metadata_pointer else None,
            "metadata": self.metadata.as_dict() if self.metadata else None,
        }


async def read(mint_address: str | Pubkey, rpc: SolanaRPCClient) -> ReadBackState:
    try:
        account = await rpc.get_account_info(mint_address)
    except SolanaRPCError as exc:
        raise ReadBackError(f"Unable to fetch mint {mint_address}: {exc}") from exc
    if account is None:
        raise ReadBackError(f"Mint account {mint_address} not found")
    if account.owner != TOKEN_2022_PROGRAM_ID:
        raise ReadBackError(f"Mint account {mint_address} is owned by {account.owner}, not Token-2022")

    try:
        mint = decode_mint(account.data)
        pointer_raw = mint.extension(ExtensionType.METADATA_POINTER)
        metadata_raw = mint.extension(ExtensionType.TOKEN_METADATA)
        pointer = MetadataPointerState.unpack(pointer_raw) if pointer_raw is not None else None
        metadata = TokenMetadata.unpack(metadata_raw) if metadata_raw is not None else None
    except TokenLayoutError as exc:
        raise ReadBackError(f"Unable to decode mint {mint_address}: {exc}") from exc

    logger.debug("Read back mint %s: pointer=%s metadata=%s", mint_address, pointer, metadata)
    return ReadBackState(metadata_pointer=pointer, metadata=metadata)


__all__ = ["ReadBackState", "read"]
