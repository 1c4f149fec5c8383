"""Token-2022 launch pipeline: upload, sizing, assembly, submission, read-back."""

from .assembler import AssembledInstruction, InstructionKind, assemble, associated_token_address
from .pipeline import (
    STAGES,
    LaunchReport,
    StageOutcome,
    TokenLaunchPipeline,
    TokenLaunchResult,
    launch_token,
    launch_token_sync,
)
from .reader import ReadBackState, read
from .request import (
    AuthorityPlans,
    AuthorityState,
    MetadataAttribute,
    MetadataJson,
    TokenLaunchRequest,
    authority_plan,
)
from .sizing import AccountSizing, compute_sizing
from .submitter import build_transaction, submit
from .uploader import MetadataUploader

__all__ = [
    "AccountSizing",
    "AssembledInstruction",
    "AuthorityPlans",
    "AuthorityState",
    "InstructionKind",
    "LaunchReport",
    "MetadataAttribute",
    "MetadataJson",
    "MetadataUploader",
    "ReadBackState",
    "STAGES",
    "StageOutcome",
    "TokenLaunchPipeline",
    "TokenLaunchRequest",
    "TokenLaunchResult",
    "assemble",
    "associated_token_address",
    "authority_plan",
    "build_transaction",
    "compute_sizing",
    "launch_token",
    "launch_token_sync",
    "read",
    "submit",
]
