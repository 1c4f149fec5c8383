"""Token-2022 layouts and the extension instructions spl.token does not ship.

The mint base layout, initialize-mint, mint-to, set-authority and associated
account helpers come from `spl.token`; this module covers the metadata-pointer
extension, the token-metadata interface, account sizing and the TLV decoder
used for read-back.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterator, Sequence

from construct import (
    Bytes,
    ConstructError,
    Int8ul,
    Int16ul,
    Int32ul,
    Int64ul,
    PascalString,
    PrefixedArray,
    Struct,
)
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_2022_PROGRAM_ID

TYPE_SIZE = 2
LENGTH_SIZE = 2
MINT_SIZE = 82
ACCOUNT_SIZE = 165
MULTISIG_SIZE = 355
ACCOUNT_TYPE_SIZE = 1
ACCOUNT_TYPE_MINT = 1

_ZERO_KEY = bytes(32)

# sha256("spl_token_metadata_interface:<name>")[:8]
INITIALIZE_METADATA_DISCRIMINATOR = hashlib.sha256(
    b"spl_token_metadata_interface:initialize_account"
).digest()[:8]
UPDATE_FIELD_DISCRIMINATOR = hashlib.sha256(
    b"spl_token_metadata_interface:updating_field"
).digest()[:8]

METADATA_POINTER_EXTENSION_INSTRUCTION = 39
METADATA_POINTER_INITIALIZE = 0


class TokenLayoutError(ValueError):
    """Raised when on-chain bytes do not match the expected Token-2022 layout."""


class ExtensionType(IntEnum):
    UNINITIALIZED = 0
    TRANSFER_FEE_CONFIG = 1
    MINT_CLOSE_AUTHORITY = 3
    DEFAULT_ACCOUNT_STATE = 6
    NON_TRANSFERABLE = 9
    INTEREST_BEARING_CONFIG = 10
    PERMANENT_DELEGATE = 12
    TRANSFER_HOOK = 14
    METADATA_POINTER = 18
    TOKEN_METADATA = 19


# Fixed-size extensions only; token metadata is variable length.
EXTENSION_SIZES: dict[ExtensionType, int] = {
    ExtensionType.TRANSFER_FEE_CONFIG: 108,
    ExtensionType.MINT_CLOSE_AUTHORITY: 32,
    ExtensionType.DEFAULT_ACCOUNT_STATE: 1,
    ExtensionType.NON_TRANSFERABLE: 0,
    ExtensionType.INTEREST_BEARING_CONFIG: 52,
    ExtensionType.PERMANENT_DELEGATE: 32,
    ExtensionType.TRANSFER_HOOK: 64,
    ExtensionType.METADATA_POINTER: 64,
}


class MetadataField(IntEnum):
    NAME = 0
    SYMBOL = 1
    URI = 2
    KEY = 3


BorshString = PascalString(Int32ul, "utf8")

MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / Bytes(32),
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Int8ul,
    "freeze_authority_option" / Int32ul,
    "freeze_authority" / Bytes(32),
)

TLV_HEADER_LAYOUT = Struct("type" / Int16ul, "length" / Int16ul)

METADATA_POINTER_LAYOUT = Struct(
    "authority" / Bytes(32),
    "metadata_address" / Bytes(32),
)

TOKEN_METADATA_LAYOUT = Struct(
    "update_authority" / Bytes(32),
    "mint" / Bytes(32),
    "name" / BorshString,
    "symbol" / BorshString,
    "uri" / BorshString,
    "additional_metadata" / PrefixedArray(Int32ul, Struct("key" / BorshString, "value" / BorshString)),
)


def _optional_key(raw: bytes) -> Pubkey | None:
    return None if raw == _ZERO_KEY else Pubkey.from_bytes(raw)


def _key_bytes(key: Pubkey | None) -> bytes:
    return _ZERO_KEY if key is None else bytes(key)


@dataclass(slots=True)
class TokenMetadata:
    """Token-metadata interface record embedded in the mint account."""

    update_authority: Pubkey | None
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    additional_metadata: list[tuple[str, str]] = field(default_factory=list)

    def pack(self) -> bytes:
        return TOKEN_METADATA_LAYOUT.build(
            {
                "update_authority": _key_bytes(self.update_authority),
                "mint": bytes(self.mint),
                "name": self.name,
                "symbol": self.symbol,
                "uri": self.uri,
                "additional_metadata": [
                    {"key": key, "value": value} for key, value in self.additional_metadata
                ],
            }
        )

    @classmethod
    def unpack(cls, data: bytes) -> TokenMetadata:
        try:
            parsed = TOKEN_METADATA_LAYOUT.parse(data)
        except ConstructError as exc:
            raise TokenLayoutError(f"Invalid token metadata: {exc}") from exc
        return cls(
            update_authority=_optional_key(parsed.update_authority),
            mint=Pubkey.from_bytes(parsed.mint),
            name=parsed.name,
            symbol=parsed.symbol,
            uri=parsed.uri,
            additional_metadata=[(item.key, item.value) for item in parsed.additional_metadata],
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "updateAuthority": str(self.update_authority) if self.update_authority else None,
            "mint": str(self.mint),
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "additionalMetadata": [list(pair) for pair in self.additional_metadata],
        }


@dataclass(slots=True)
class MetadataPointerState:
    authority: Pubkey | None
    metadata_address: Pubkey | None

    @classmethod
    def unpack(cls, data: bytes) -> MetadataPointerState:
        try:
            parsed = METADATA_POINTER_LAYOUT.parse(data)
        except ConstructError as exc:
            raise TokenLayoutError(f"Invalid metadata pointer: {exc}") from exc
        return cls(
            authority=_optional_key(parsed.authority),
            metadata_address=_optional_key(parsed.metadata_address),
        )

    def as_dict(self) -> dict[str, str | None]:
        return {
            "authority": str(self.authority) if self.authority else None,
            "metadataAddress": str(self.metadata_address) if self.metadata_address else None,
        }


@dataclass(slots=True)
class MintState:
    """Base mint fields plus the raw TLV extension entries."""

    mint_authority: Pubkey | None
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Pubkey | None
    extensions: dict[int, bytes] = field(default_factory=dict)

    def extension(self, extension_type: ExtensionType) -> bytes | None:
        return self.extensions.get(int(extension_type))


def get_mint_len(extensions: Sequence[ExtensionType]) -> int:
    """Byte length of a mint account carrying the given fixed-size extensions."""
    if not extensions:
        return MINT_SIZE
    length = ACCOUNT_SIZE + ACCOUNT_TYPE_SIZE
    for extension in extensions:
        try:
            length += TYPE_SIZE + LENGTH_SIZE + EXTENSION_SIZES[extension]
        except KeyError as exc:
            raise TokenLayoutError(f"Extension {extension!r} has no fixed size") from exc
    if length == MULTISIG_SIZE:
        return length + TYPE_SIZE
    return length


def iter_tlv_entries(data: bytes) -> Iterator[tuple[int, bytes]]:
    """Yield `(type, value)` pairs from the extension area of an account."""
    offset = ACCOUNT_SIZE + ACCOUNT_TYPE_SIZE
    header_size = TYPE_SIZE + LENGTH_SIZE
    while offset + header_size <= len(data):
        header = TLV_HEADER_LAYOUT.parse(data[offset : offset + header_size])
        if header.type == ExtensionType.UNINITIALIZED:
            return
        start = offset + header_size
        end = start + header.length
        if end > len(data):
            raise TokenLayoutError(f"Extension {header.type} overruns account data")
        yield header.type, data[start:end]
        offset = end


def decode_mint(data: bytes) -> MintState:
    """Decode a Token-2022 mint account, including its extension entries."""
    if len(data) < MINT_SIZE:
        raise TokenLayoutError(f"Mint account too short: {len(data)} bytes")
    try:
        base = MINT_LAYOUT.parse(data[:MINT_SIZE])
    except ConstructError as exc:
        raise TokenLayoutError(f"Invalid mint layout: {exc}") from exc
    extensions: dict[int, bytes] = {}
    if len(data) > ACCOUNT_SIZE:
        if data[ACCOUNT_SIZE] != ACCOUNT_TYPE_MINT:
            raise TokenLayoutError("Account is not a mint")
        extensions = dict(iter_tlv_entries(data))
    return MintState(
        mint_authority=Pubkey.from_bytes(base.mint_authority) if base.mint_authority_option else None,
        supply=base.supply,
        decimals=base.decimals,
        is_initialized=bool(base.is_initialized),
        freeze_authority=Pubkey.from_bytes(base.freeze_authority) if base.freeze_authority_option else None,
        extensions=extensions,
    )


def initialize_metadata_pointer(
    mint: Pubkey,
    authority: Pubkey | None,
    metadata_address: Pubkey | None,
    program_id: Pubkey = TOKEN_2022_PROGRAM_ID,
) -> Instruction:
    """MetadataPointer extension, Initialize sub-instruction."""
    data = (
        bytes([METADATA_POINTER_EXTENSION_INSTRUCTION, METADATA_POINTER_INITIALIZE])
        + _key_bytes(authority)
        + _key_bytes(metadata_address)
    )
    accounts = [AccountMeta(pubkey=mint, is_signer=False, is_writable=True)]
    return Instruction(program_id, data, accounts)


def initialize_token_metadata(
    *,
    metadata: Pubkey,
    update_authority: Pubkey,
    mint: Pubkey,
    mint_authority: Pubkey,
    name: str,
    symbol: str,
    uri: str,
    program_id: Pubkey = TOKEN_2022_PROGRAM_ID,
) -> Instruction:
    data = (
        INITIALIZE_METADATA_DISCRIMINATOR
        + BorshString.build(name)
        + BorshString.build(symbol)
        + BorshString.build(uri)
    )
    accounts = [
        AccountMeta(pubkey=metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint_authority, is_signer=True, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)


def update_token_metadata_field(
    *,
    metadata: Pubkey,
    update_authority: Pubkey,
    field_name: str,
    value: str,
    program_id: Pubkey = TOKEN_2022_PROGRAM_ID,
) -> Instruction:
    """Set one metadata field; unknown names become custom `Key` fields."""
    known = {"name": MetadataField.NAME, "symbol": MetadataField.SYMBOL, "uri": MetadataField.URI}
    if field_name in known:
        encoded_field = bytes([known[field_name]])
    else:
        encoded_field = bytes([MetadataField.KEY]) + BorshString.build(field_name)
    data = UPDATE_FIELD_DISCRIMINATOR + encoded_field + BorshString.build(value)
    accounts = [
        AccountMeta(pubkey=metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=True, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)


__all__ = [
    "ExtensionType",
    "INITIALIZE_METADATA_DISCRIMINATOR",
    "LENGTH_SIZE",
    "MetadataField",
    "MetadataPointerState",
    "MintState",
    "TOKEN_2022_PROGRAM_ID",
    "TYPE_SIZE",
    "TokenLayoutError",
    "TokenMetadata",
    "UPDATE_FIELD_DISCRIMINATOR",
    "decode_mint",
    "get_mint_len",
    "initialize_metadata_pointer",
    "initialize_token_metadata",
    "iter_tlv_entries",
    "update_token_metadata_field",
]
