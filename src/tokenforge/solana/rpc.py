"""Solana JSON-RPC helpers."""

from __future__ import annotations

import asyncio
import base64
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


class SolanaRPCError(RuntimeError):
    """Raised when Solana RPC calls fail."""

    def __init__(self, message: str, *, code: int | None = None, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(message)


class TransactionFailedError(SolanaRPCError):
    """The ledger executed the transaction and reported an error."""


class ConfirmationTimeoutError(SolanaRPCError):
    """The requested commitment was not observed before the deadline."""


RequestFn = Callable[..., Awaitable[httpx.Response]]
SleepFn = Callable[[float], Awaitable[None]]


async def _post(url: str, *, json: dict[str, Any], timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.post(url, json=json)


@dataclass(slots=True)
class LatestBlockhash:
    blockhash: Hash
    last_valid_block_height: int


@dataclass(slots=True)
class AccountInfo:
    """Decoded `getAccountInfo` value."""

    data: bytes
    owner: Pubkey
    lamports: int
    executable: bool = False


@dataclass(slots=True)
class SignatureStatus:
    slot: int | None
    confirmation_status: str | None
    err: Any = None

    def satisfies(self, commitment: str) -> bool:
        if self.confirmation_status not in COMMITMENT_LEVELS:
            return False
        return COMMITMENT_LEVELS.index(self.confirmation_status) >= COMMITMENT_LEVELS.index(commitment)


@dataclass
class SolanaRPCClient:
    """Thin async wrapper around Solana's JSON-RPC interface."""

    endpoint: str
    timeout: float = 10.0
    commitment: str = "confirmed"
    confirm_timeout: float = 30.0
    poll_interval: float = 0.5
    _request: RequestFn | None = None
    _sleep: SleepFn | None = None
    _ids: Any = field(default_factory=lambda: itertools.count(1), repr=False)

    def __post_init__(self) -> None:
        if self._request is None:
            self._request = _post
        if self._sleep is None:
            self._sleep = asyncio.sleep

    async def get_balance(self, public_key: str | Pubkey) -> float:
        """Return balance for `public_key` in SOL."""
        result = await self._call("getBalance", [str(public_key), {"commitment": self.commitment}])
        lamports = self._value(result, "balance")
        if not isinstance(lamports, int):
            raise SolanaRPCError("Balance value is not an integer")
        balance = lamports / LAMPORTS_PER_SOL
        logger.debug("Fetched balance %.9f SOL for %s", balance, public_key)
        return balance

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        result = await self._call("getMinimumBalanceForRentExemption", [size, {"commitment": self.commitment}])
        if not isinstance(result, int):
            raise SolanaRPCError("Rent exemption value is not an integer")
        logger.debug("Rent-exempt minimum for %d bytes is %d lamports", size, result)
        return result

    async def get_latest_blockhash(self) -> LatestBlockhash:
        result = await self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        value = self._value(result, "blockhash")
        try:
            return LatestBlockhash(
                blockhash=Hash.from_string(value["blockhash"]),
                last_valid_block_height=int(value["lastValidBlockHeight"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SolanaRPCError("Malformed RPC response; invalid blockhash value") from exc

    async def get_account_info(self, public_key: str | Pubkey) -> AccountInfo | None:
        params = [str(public_key), {"encoding": "base64", "commitment": self.commitment}]
        value = self._value(await self._call("getAccountInfo", params), "account")
        if value is None:
            return None
        try:
            encoded, encoding = value["data"]
            if encoding != "base64":
                raise ValueError(f"unexpected encoding {encoding}")
            return AccountInfo(
                data=base64.b64decode(encoded),
                owner=Pubkey.from_string(value["owner"]),
                lamports=int(value["lamports"]),
                executable=bool(value.get("executable", False)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SolanaRPCError(f"Malformed account info for {public_key}: {exc}") from exc

    async def send_transaction(self, raw_transaction: bytes, *, skip_preflight: bool = False) -> str:
        """Broadcast a signed, serialized transaction and return its signature."""
        encoded = base64.b64encode(raw_transaction).decode("ascii")
        options = {
            "encoding": "base64",
            "skipPreflight": skip_preflight,
            "preflightCommitment": self.commitment,
        }
        result = await self._call("sendTransaction", [encoded, options])
        if not isinstance(result, str):
            raise SolanaRPCError("sendTransaction did not return a signature")
        logger.info("Transaction sent with signature %s", result)
        return result

    async def get_signature_status(self, signature: str, *, search_history: bool = False) -> SignatureStatus | None:
        params = [[signature], {"searchTransactionHistory": search_history}]
        values = self._value(await self._call("getSignatureStatuses", params), "signature status")
        if not isinstance(values, list) or not values:
            raise SolanaRPCError("Malformed RPC response; missing signature statuses")
        entry = values[0]
        if entry is None:
            return None
        return SignatureStatus(
            slot=entry.get("slot"),
            confirmation_status=entry.get("confirmationStatus"),
            err=entry.get("err"),
        )

    async def confirm_transaction(
        self,
        signature: str,
        *,
        commitment: str | None = None,
        timeout: float | None = None,
    ) -> SignatureStatus:
        """Poll until `signature` reaches `commitment`, fails, or times out."""
        level = commitment or self.commitment
        limit = self.confirm_timeout if timeout is None else timeout
        deadline = time.monotonic() + limit
        while True:
            status = await self.get_signature_status(signature)
            if status is not None:
                if status.err is not None:
                    raise TransactionFailedError(f"Transaction {signature} failed: {status.err}", data=status.err)
                if status.satisfies(level):
                    logger.debug("Signature %s reached %s at slot %s", signature, level, status.slot)
                    return status
            if time.monotonic() >= deadline:
                raise ConfirmationTimeoutError(
                    f"Transaction {signature} was not {level} within {limit:.0f} seconds"
                )
            await self._sleep(self.poll_interval)  # type: ignore[misc]

    async def request_airdrop(self, public_key: str | Pubkey, amount_sol: float) -> str:
        lamports = int(round(amount_sol * LAMPORTS_PER_SOL))
        result = await self._call("requestAirdrop", [str(public_key), lamports, {"commitment": self.commitment}])
        if not isinstance(result, str):
            raise SolanaRPCError("requestAirdrop did not return a signature")
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self._request(self.endpoint, json=payload, timeout=self.timeout)  # type: ignore[misc]
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SolanaRPCError(f"RPC request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:  # pragma: no cover - unexpected for compliant RPC
            raise SolanaRPCError("Invalid JSON in RPC response") from exc

        if "error" in data:
            error = data["error"] or {}
            message = error.get("message", "Unknown RPC error")
            raise SolanaRPCError(message, code=error.get("code"), data=error.get("data"))

        try:
            return data["result"]
        except KeyError as exc:
            raise SolanaRPCError(f"Malformed RPC response to {method}; missing result") from exc

    @staticmethod
    def _value(result: Any, what: str) -> Any:
        try:
            return result["value"]
        except (KeyError, TypeError) as exc:
            raise SolanaRPCError(f"Malformed RPC response; missing {what} value") from exc


__all__ = [
    "AccountInfo",
    "ConfirmationTimeoutError",
    "LAMPORTS_PER_SOL",
    "LatestBlockhash",
    "SignatureStatus",
    "SolanaRPCClient",
    "SolanaRPCError",
    "TransactionFailedError",
]
