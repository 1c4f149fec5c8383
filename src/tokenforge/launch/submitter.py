"""Sign, broadcast, and confirm the launch transaction."""

from __future__ import annotations

import logging
from typing import Sequence

import httpx
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from tokenforge.core.errors import AmbiguousOutcomeError, SubmissionError
from tokenforge.solana.rpc import ConfirmationTimeoutError, SignatureStatus, SolanaRPCClient, SolanaRPCError
from tokenforge.solana.wallet import WalletSigner

logger = logging.getLogger(__name__)


async def build_transaction(
    instructions: Sequence[Instruction],
    payer: Pubkey,
    mint_keypair: Keypair,
    rpc: SolanaRPCClient,
) -> Transaction:
    """Wrap `instructions` in one transaction carrying the mint's signature."""
    try:
        latest = await rpc.get_latest_blockhash()
    except SolanaRPCError as exc:
        raise SubmissionError(f"Unable to fetch a recent blockhash: {exc}") from exc
    message = Message.new_with_blockhash(list(instructions), payer, latest.blockhash)
    transaction = Transaction.new_unsigned(message)
    transaction.partial_sign([mint_keypair], latest.blockhash)
    return transaction


async def submit(
    instructions: Sequence[Instruction],
    payer: Pubkey,
    mint_keypair: Keypair,
    rpc: SolanaRPCClient,
    wallet: WalletSigner,
    *,
    irreversible: bool = False,
) -> str:
    """Submit the launch transaction and wait for `confirmed` commitment.

    Once the transaction may have reached a node, a missing confirmation is
    reported as an ambiguous outcome rather than a failure: it may still land.
    """
    transaction = await build_transaction(instructions, payer, mint_keypair, rpc)

    try:
        signature = await wallet.sign_and_send(transaction, rpc)
    except Exception as exc:  # noqa: BLE001
        payer_signature = transaction.signatures[0]
        if not _possibly_broadcast(exc) or payer_signature == Signature.default():
            raise SubmissionError(f"Wallet failed to sign or send the transaction: {exc}") from exc
        logger.warning("Broadcast of %s was interrupted: %s", payer_signature, exc)
        return await _resolve_unconfirmed(rpc, str(payer_signature), irreversible, exc)
    logger.info("Launch transaction sent with signature %s", signature)

    try:
        await rpc.confirm_transaction(signature, commitment="confirmed")
    except ConfirmationTimeoutError as exc:
        return await _resolve_unconfirmed(rpc, signature, irreversible, exc)
    except SolanaRPCError as exc:
        raise SubmissionError(f"Transaction {signature} failed: {exc}", signature=signature) from exc

    logger.info("Launch transaction %s confirmed", signature)
    return signature


def _possibly_broadcast(exc: BaseException) -> bool:
    """True when the request may have reached the node before failing."""
    if isinstance(exc, httpx.TimeoutException):
        return True
    cause = exc.__cause__
    if not isinstance(exc, SolanaRPCError) or isinstance(cause, httpx.ConnectError):
        return False
    return isinstance(cause, httpx.TransportError)


async def _resolve_unconfirmed(
    rpc: SolanaRPCClient,
    signature: str,
    irreversible: bool,
    cause: Exception,
) -> str:
    status = await _history_status(rpc, signature)
    if status is not None and status.err is not None:
        raise SubmissionError(f"Transaction {signature} failed: {status.err}", signature=signature) from cause
    if status is not None and status.satisfies("confirmed"):
        logger.warning("Confirmation was not observed but %s is on the ledger", signature)
        return signature
    raise AmbiguousOutcomeError(
        _ambiguous_message(signature, irreversible),
        signature=signature,
        irreversible=irreversible,
    ) from cause


async def _history_status(rpc: SolanaRPCClient, signature: str) -> SignatureStatus | None:
    try:
        return await rpc.get_signature_status(signature, search_history=True)
    except SolanaRPCError as exc:
        logger.warning("Status re-query for %s failed: %s", signature, exc)
        return None


def _ambiguous_message(signature: str, irreversible: bool) -> str:
    message = (
        f"Transaction {signature} was broadcast but not confirmed in time; "
        "its outcome is unknown. Check the signature on an explorer before retrying."
    )
    if irreversible:
        message += " It includes irreversible authority revocations."
    return message


__all__ = ["build_transaction", "submit"]
