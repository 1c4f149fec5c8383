from __future__ import annotations

import httpx
import pytest
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from rpc_fakes import FakeRPC, FakeWallet, RPCFailure, blockhash_result, make_client, status_result
from tokenforge.core.errors import AmbiguousOutcomeError, SubmissionError
from tokenforge.launch.submitter import build_transaction, submit
from tokenforge.solana.token2022 import TOKEN_2022_PROGRAM_ID


def create_mint_instruction(payer: Pubkey, mint: Pubkey) -> list[Instruction]:
    params = CreateAccountParams(
        from_pubkey=payer, to_pubkey=mint, lamports=1_000, space=234, owner=TOKEN_2022_PROGRAM_ID
    )
    return [create_account(params)]


@pytest.mark.asyncio
async def test_build_transaction_is_partially_signed_by_mint() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    client = make_client(FakeRPC({"getLatestBlockhash": blockhash_result()}))

    transaction = await build_transaction(
        create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()), wallet.keypair.pubkey(), mint, client
    )

    assert transaction.message.account_keys[0] == wallet.keypair.pubkey()
    assert transaction.message.header.num_required_signatures == 2
    assert not transaction.is_signed()
    mint_index = transaction.message.account_keys.index(mint.pubkey())
    assert transaction.signatures[mint_index] != transaction.signatures[0]


@pytest.mark.asyncio
async def test_submit_returns_signature_once_confirmed() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": "5igSig",
            "getSignatureStatuses": [status_result("processed"), status_result("confirmed")],
        }
    )

    signature = await submit(
        create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
        wallet.keypair.pubkey(),
        mint,
        make_client(fake, confirm_timeout=30.0),
        wallet,
    )

    assert signature == "5igSig"
    assert fake.methods() == ["getLatestBlockhash", "sendTransaction", "getSignatureStatuses", "getSignatureStatuses"]
    assert wallet.sent[0].is_signed()


@pytest.mark.asyncio
async def test_blockhash_failure_is_submission_error() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC({"getLatestBlockhash": RPCFailure("node unhealthy")})

    with pytest.raises(SubmissionError):
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake),
            wallet,
        )
    assert wallet.sent == []


@pytest.mark.asyncio
async def test_wallet_rejection_is_submission_error() -> None:
    wallet = FakeWallet(fail=True)
    mint = Keypair()
    fake = FakeRPC({"getLatestBlockhash": blockhash_result()})

    with pytest.raises(SubmissionError, match="User rejected"):
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake),
            wallet,
        )


@pytest.mark.asyncio
async def test_send_timeout_after_signing_is_ambiguous() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": httpx.ReadTimeout("read timed out"),
            "getSignatureStatuses": status_result(None),
        }
    )

    with pytest.raises(AmbiguousOutcomeError) as excinfo:
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake),
            wallet,
            irreversible=True,
        )

    assert excinfo.value.signature == str(wallet.sent[0].signatures[0])
    assert excinfo.value.irreversible is True
    assert fake.params("getSignatureStatuses")[0][1]["searchTransactionHistory"] is True


@pytest.mark.asyncio
async def test_send_timeout_but_landed_returns_payer_signature() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": httpx.ReadTimeout("read timed out"),
            "getSignatureStatuses": status_result("confirmed"),
        }
    )

    signature = await submit(
        create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
        wallet.keypair.pubkey(),
        mint,
        make_client(fake),
        wallet,
    )

    assert signature == str(wallet.sent[0].signatures[0])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "send_outcome",
    [RPCFailure("Transaction simulation failed"), httpx.ConnectError("connection refused")],
)
async def test_rejected_or_unsent_broadcast_is_submission_error(send_outcome: object) -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC({"getLatestBlockhash": blockhash_result(), "sendTransaction": send_outcome})

    with pytest.raises(SubmissionError) as excinfo:
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake),
            wallet,
            irreversible=True,
        )

    assert not isinstance(excinfo.value, AmbiguousOutcomeError)
    assert "getSignatureStatuses" not in fake.methods()


@pytest.mark.asyncio
async def test_ledger_failure_carries_signature() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": "failedSig",
            "getSignatureStatuses": status_result("confirmed", err={"InstructionError": [3, {"Custom": 1}]}),
        }
    )

    with pytest.raises(SubmissionError) as excinfo:
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake, confirm_timeout=30.0),
            wallet,
        )

    assert excinfo.value.signature == "failedSig"
    assert not isinstance(excinfo.value, AmbiguousOutcomeError)


@pytest.mark.asyncio
async def test_timeout_without_status_is_ambiguous() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": "pendingSig",
            "getSignatureStatuses": status_result(None),
        }
    )

    with pytest.raises(AmbiguousOutcomeError) as excinfo:
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake),
            wallet,
            irreversible=True,
        )

    assert excinfo.value.signature == "pendingSig"
    assert excinfo.value.irreversible is True
    assert "irreversible" in str(excinfo.value)
    history_lookups = [params for params in fake.params("getSignatureStatuses") if params[1]["searchTransactionHistory"]]
    assert len(history_lookups) == 1


@pytest.mark.asyncio
async def test_timeout_then_landed_counts_as_success() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": "lateSig",
            "getSignatureStatuses": [status_result(None), status_result("finalized")],
        }
    )

    signature = await submit(
        create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
        wallet.keypair.pubkey(),
        mint,
        make_client(fake),
        wallet,
    )

    assert signature == "lateSig"


@pytest.mark.asyncio
async def test_timeout_then_failed_on_ledger_is_submission_error() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": "failedLateSig",
            "getSignatureStatuses": [
                status_result(None),
                status_result("confirmed", err={"InstructionError": [6, {"Custom": 1}]}),
            ],
        }
    )

    with pytest.raises(SubmissionError) as excinfo:
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake),
            wallet,
            irreversible=True,
        )

    assert not isinstance(excinfo.value, AmbiguousOutcomeError)
    assert excinfo.value.signature == "failedLateSig"


@pytest.mark.asyncio
async def test_timeout_then_only_processed_is_ambiguous() -> None:
    wallet = FakeWallet()
    mint = Keypair()
    fake = FakeRPC(
        {
            "getLatestBlockhash": blockhash_result(),
            "sendTransaction": "slowSig",
            "getSignatureStatuses": [status_result(None), status_result("processed")],
        }
    )

    with pytest.raises(AmbiguousOutcomeError):
        await submit(
            create_mint_instruction(wallet.keypair.pubkey(), mint.pubkey()),
            wallet.keypair.pubkey(),
            mint,
            make_client(fake),
            wallet,
        )
