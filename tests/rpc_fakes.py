"""Scripted RPC endpoint and wallet used across the test suite."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

import httpx
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from tokenforge.solana.rpc import SolanaRPCClient
from tokenforge.solana.token2022 import (
    ACCOUNT_SIZE,
    ACCOUNT_TYPE_MINT,
    MINT_LAYOUT,
    MINT_SIZE,
    TLV_HEADER_LAYOUT,
    ExtensionType,
    TokenMetadata,
)

RPC_URL = "https://rpc.example.com"
BLOCKHASH = str(Hash.hash(b"tokenforge-tests"))


@dataclass
class RPCFailure:
    message: str
    code: int = -32000


def make_response(status_code: int, json_data: Any) -> httpx.Response:
    request = httpx.Request("POST", RPC_URL)
    return httpx.Response(status_code=status_code, json=json_data, request=request)


class FakeRPC:
    """JSON-RPC endpoint keyed by method name.

    A handler is a literal result, an `RPCFailure`, an exception to raise, a
    callable receiving the params, or a list of those consumed one per call
    (the last item repeats).
    """

    def __init__(self, handlers: dict[str, Any]) -> None:
        self.handlers = {key: list(value) if isinstance(value, list) else value for key, value in handlers.items()}
        self.calls: list[dict[str, Any]] = []

    def methods(self) -> list[str]:
        return [call["method"] for call in self.calls]

    def params(self, method: str) -> list[list[Any]]:
        return [call["params"] for call in self.calls if call["method"] == method]

    async def __call__(self, url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:  # noqa: ARG002
        self.calls.append(json)
        method = json["method"]
        if method not in self.handlers:
            error = {"code": -32601, "message": f"Method not scripted: {method}"}
            return make_response(200, {"jsonrpc": "2.0", "id": json["id"], "error": error})
        handler = self.handlers[method]
        if isinstance(handler, list):
            handler = handler.pop(0) if len(handler) > 1 else handler[0]
        if callable(handler):
            handler = handler(json["params"])
        if isinstance(handler, Exception):
            raise handler
        if isinstance(handler, RPCFailure):
            error = {"code": handler.code, "message": handler.message}
            return make_response(200, {"jsonrpc": "2.0", "id": json["id"], "error": error})
        return make_response(200, {"jsonrpc": "2.0", "id": json["id"], "result": handler})


async def no_sleep(_seconds: float) -> None:
    return None


def make_client(fake: FakeRPC, **kwargs: Any) -> SolanaRPCClient:
    kwargs.setdefault("confirm_timeout", 0.0)
    return SolanaRPCClient(endpoint=RPC_URL, _request=fake, _sleep=no_sleep, **kwargs)


def with_context(value: Any, slot: int = 1) -> dict[str, Any]:
    return {"context": {"slot": slot}, "value": value}


def blockhash_result() -> dict[str, Any]:
    return with_context({"blockhash": BLOCKHASH, "lastValidBlockHeight": 150})


def status_result(confirmation: str | None, err: Any = None) -> dict[str, Any]:
    if confirmation is None:
        return with_context([None])
    return with_context([{"slot": 5, "confirmations": None, "err": err, "confirmationStatus": confirmation}])


class FakeWallet:
    """Signs with an in-memory keypair and broadcasts through the given client."""

    def __init__(self, keypair: Keypair | None = None, *, connected: bool = True, fail: bool = False) -> None:
        self.keypair = keypair or Keypair()
        self.connected = connected
        self.fail = fail
        self.sent: list[Transaction] = []

    @property
    def public_key(self) -> Pubkey | None:
        return self.keypair.pubkey() if self.connected else None

    async def sign_and_send(self, transaction: Transaction, connection: SolanaRPCClient) -> str:
        if self.fail:
            raise RuntimeError("User rejected the request")
        transaction.partial_sign([self.keypair], transaction.message.recent_blockhash)
        self.sent.append(transaction)
        return await connection.send_transaction(bytes(transaction))


def account_info_result(data: bytes, owner: Pubkey, lamports: int = 4_000_000) -> dict[str, Any]:
    encoded = base64.b64encode(data).decode("ascii")
    return with_context(
        {"data": [encoded, "base64"], "owner": str(owner), "lamports": lamports, "executable": False, "rentEpoch": 0}
    )


def mint_account_data(
    authority: Pubkey,
    *,
    metadata: TokenMetadata | None = None,
    pointer_to: Pubkey | None = None,
    supply: int = 0,
    decimals: int = 9,
) -> bytes:
    """Serialize a Token-2022 mint with optional pointer and metadata entries."""
    data = MINT_LAYOUT.build(
        {
            "mint_authority_option": 1,
            "mint_authority": bytes(authority),
            "supply": supply,
            "decimals": decimals,
            "is_initialized": 1,
            "freeze_authority_option": 1,
            "freeze_authority": bytes(authority),
        }
    )
    data += bytes(ACCOUNT_SIZE - MINT_SIZE) + bytes([ACCOUNT_TYPE_MINT])
    if pointer_to is not None:
        value = bytes(authority) + bytes(pointer_to)
        data += TLV_HEADER_LAYOUT.build({"type": ExtensionType.METADATA_POINTER, "length": len(value)}) + value
    if metadata is not None:
        value = metadata.pack()
        data += TLV_HEADER_LAYOUT.build({"type": ExtensionType.TOKEN_METADATA, "length": len(value)}) + value
    return data
