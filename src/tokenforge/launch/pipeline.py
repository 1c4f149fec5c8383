"""Token launch orchestration.

Each stage returns a `StageOutcome` holding either its value or the narrow
error it raised. `TokenLaunchPipeline.run` walks the stages in order and stops
at the first failed outcome, so every stage can be exercised on its own and
the abort-on-failure contract stays visible in one place.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from tokenforge.core.config import LaunchSettings
from tokenforge.core.errors import (
    AmbiguousOutcomeError,
    LaunchFailedError,
    LaunchpadError,
    ValidationError,
    WalletNotConnectedError,
)
from tokenforge.core.logs import LogBuffer
from tokenforge.solana.rpc import SolanaRPCClient
from tokenforge.solana.wallet import WalletSigner

from . import reader, submitter
from .assembler import AssembledInstruction, assemble, associated_token_address, instructions_of
from .reader import ReadBackState
from .request import TokenLaunchRequest, authority_plan
from .sizing import AccountSizing, compute_sizing
from .uploader import MetadataUploader

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGES: tuple[str, ...] = ("validate", "wallet", "upload", "sizing", "assemble", "submit", "read_back")

_STAGE_CATEGORIES = {
    "validate": "system",
    "wallet": "wallet",
    "upload": "upload",
    "sizing": "ledger",
    "assemble": "ledger",
    "submit": "ledger",
    "read_back": "ledger",
}


@dataclass(slots=True)
class StageOutcome(Generic[T]):
    stage: str
    value: T | None = None
    error: LaunchpadError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class TokenLaunchResult:
    mint_address: str
    associated_token_address: str
    signature: str
    metadata_uri: str
    read_back: ReadBackState | None = None
    read_back_error: str | None = None

    @property
    def metadata_pointer_state(self) -> dict[str, Any] | None:
        if self.read_back is None or self.read_back.metadata_pointer is None:
            return None
        return self.read_back.metadata_pointer.as_dict()

    @property
    def metadata_state(self) -> dict[str, Any] | None:
        if self.read_back is None or self.read_back.metadata is None:
            return None
        return self.read_back.metadata.as_dict()

    def as_dict(self) -> dict[str, Any]:
        return {
            "mintAddress": self.mint_address,
            "associatedTokenAddress": self.associated_token_address,
            "signature": self.signature,
            "metadataUri": self.metadata_uri,
            "metadataPointer": self.metadata_pointer_state,
            "metadata": self.metadata_state,
            "readBackError": self.read_back_error,
        }


@dataclass(slots=True)
class LaunchReport:
    outcomes: list[StageOutcome[Any]] = field(default_factory=list)
    result: TokenLaunchResult | None = None

    @property
    def failure(self) -> StageOutcome[Any] | None:
        for outcome in self.outcomes:
            if not outcome.ok and outcome.stage != "read_back":
                return outcome
        return None

    @property
    def completed_stages(self) -> list[str]:
        return [outcome.stage for outcome in self.outcomes if outcome.ok]

    def raise_for_failure(self) -> TokenLaunchResult:
        failure = self.failure
        if failure is not None:
            raise LaunchFailedError(failure.stage, failure.error)  # type: ignore[arg-type]
        if self.result is None:  # pragma: no cover - run() always sets one or the other
            raise LaunchpadError("Launch finished without a result")
        return self.result


class TokenLaunchPipeline:
    """Runs one launch request through upload, sizing, assembly, submission and read-back."""

    def __init__(
        self,
        settings: LaunchSettings,
        wallet: WalletSigner,
        *,
        rpc: SolanaRPCClient | None = None,
        uploader: MetadataUploader | None = None,
        log_buffer: LogBuffer | None = None,
        keypair_factory: Callable[[], Keypair] = Keypair,
    ) -> None:
        self.settings = settings
        self.wallet = wallet
        self.rpc = rpc or SolanaRPCClient(
            endpoint=settings.rpc_url,
            commitment=settings.commitment,
            confirm_timeout=settings.confirm_timeout,
        )
        self.uploader = uploader or MetadataUploader.from_settings(settings)
        self.log = log_buffer or LogBuffer()
        self._keypair_factory = keypair_factory

    async def run(self, request: TokenLaunchRequest | Mapping[str, Any]) -> LaunchReport:
        report = LaunchReport()

        validated = await self._stage(report, "validate", self._validate, request)
        if not validated.ok:
            return report
        launch: TokenLaunchRequest = validated.value  # type: ignore[assignment]

        connected = await self._stage(report, "wallet", self._payer)
        if not connected.ok:
            return report
        payer: Pubkey = connected.value  # type: ignore[assignment]

        # One fresh mint identity per run; it is never stored.
        mint_keypair = self._keypair_factory()
        mint = mint_keypair.pubkey()

        uploaded = await self._stage(report, "upload", self.uploader.upload, launch.metadata_json())
        if not uploaded.ok:
            return report
        uri: str = uploaded.value  # type: ignore[assignment]

        record = launch.metadata_record(mint=mint, update_authority=payer, uri=uri)
        sized = await self._stage(report, "sizing", compute_sizing, record, self.rpc)
        if not sized.ok:
            return report
        sizing: AccountSizing = sized.value  # type: ignore[assignment]

        assembled = await self._stage(report, "assemble", self._assemble, launch, mint, record, sizing, payer)
        if not assembled.ok:
            return report
        steps: list[AssembledInstruction] = assembled.value  # type: ignore[assignment]

        submitted = await self._stage(
            report,
            "submit",
            submitter.submit,
            instructions_of(steps),
            payer,
            mint_keypair,
            self.rpc,
            self.wallet,
            irreversible=authority_plan(launch).irreversible,
        )
        if not submitted.ok:
            return report

        result = TokenLaunchResult(
            mint_address=str(mint),
            associated_token_address=str(associated_token_address(payer, mint)),
            signature=submitted.value,  # type: ignore[arg-type]
            metadata_uri=uri,
        )
        read_back = await self._stage(report, "read_back", reader.read, mint, self.rpc)
        if read_back.ok:
            result.read_back = read_back.value
        else:
            result.read_back_error = str(read_back.error)
        report.result = result
        return report

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    async def _validate(self, request: TokenLaunchRequest | Mapping[str, Any]) -> TokenLaunchRequest:
        if isinstance(request, TokenLaunchRequest):
            request.raw_amount()
            return request
        if not isinstance(request, Mapping):
            raise ValidationError(f"Unsupported request type: {type(request).__name__}")
        return TokenLaunchRequest.create(**request)

    async def _payer(self) -> Pubkey:
        payer = self.wallet.public_key
        if payer is None:
            raise WalletNotConnectedError("Connect (unlock) a wallet before launching a token.")
        return payer

    async def _assemble(self, *args: Any) -> list[AssembledInstruction]:
        steps = assemble(*args)
        self.log.record(
            "ledger",
            "Instructions: " + ", ".join(step.kind.value for step in steps),
            stage="assemble",
        )
        return steps

    async def _stage(
        self,
        report: LaunchReport,
        stage: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> StageOutcome[T]:
        category = _STAGE_CATEGORIES.get(stage, "system")
        self.log.record(category, f"{stage} started", stage=stage)
        try:
            outcome = StageOutcome(stage, value=await fn(*args, **kwargs))
        except LaunchpadError as exc:
            outcome = StageOutcome(stage, error=exc)
            severity = "warning" if stage == "read_back" or isinstance(exc, AmbiguousOutcomeError) else "error"
            self.log.record(category, f"{stage} failed: {exc}", severity=severity, stage=stage)
            logger.log(logging.WARNING if severity == "warning" else logging.ERROR, "Stage %s failed: %s", stage, exc)
        else:
            self.log.record(category, f"{stage} completed", stage=stage)
        report.outcomes.append(outcome)
        return outcome


async def launch_token(
    request: TokenLaunchRequest | Mapping[str, Any],
    *,
    settings: LaunchSettings,
    wallet: WalletSigner,
    rpc: SolanaRPCClient | None = None,
    uploader: MetadataUploader | None = None,
    log_buffer: LogBuffer | None = None,
) -> TokenLaunchResult:
    """Launch a token, raising `LaunchFailedError` naming the failed stage."""
    pipeline = TokenLaunchPipeline(settings, wallet, rpc=rpc, uploader=uploader, log_buffer=log_buffer)
    report = await pipeline.run(request)
    return report.raise_for_failure()


def launch_token_sync(
    request: TokenLaunchRequest | Mapping[str, Any],
    *,
    settings: LaunchSettings,
    wallet: WalletSigner,
    rpc: SolanaRPCClient | None = None,
    uploader: MetadataUploader | None = None,
    log_buffer: LogBuffer | None = None,
) -> TokenLaunchResult:
    """Synchronous helper for environments without an event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(
            launch_token(
                request,
                settings=settings,
                wallet=wallet,
                rpc=rpc,
                uploader=uploader,
                log_buffer=log_buffer,
            )
        )
    raise LaunchpadError("Cannot launch synchronously while an event loop is active; await launch_token() instead.")


__all__ = [
    "LaunchReport",
    "STAGES",
    "StageOutcome",
    "TokenLaunchPipeline",
    "TokenLaunchResult",
    "launch_token",
    "launch_token_sync",
]
