"""Ordered instruction list for a token launch.

Order is part of the contract: extensions are declared before the mint is
initialized, metadata exists before fields are updated on it, and authority
revocations come last so every earlier step still holds mint authority.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.instructions import (
    AuthorityType,
    create_associated_token_account,
    get_associated_token_address,
    initialize_mint,
    mint_to,
    set_authority,
)
from spl.token.models import InitializeMintParams, MintToParams, SetAuthorityParams

from tokenforge.solana.token2022 import (
    TOKEN_2022_PROGRAM_ID,
    TokenMetadata,
    initialize_metadata_pointer,
    initialize_token_metadata,
    update_token_metadata_field,
)

from .request import AuthorityPlan, AuthorityState, TokenLaunchRequest, authority_plan
from .sizing import AccountSizing


class InstructionKind(str, Enum):
    CREATE_ACCOUNT = "create_account"
    INIT_METADATA_POINTER = "initialize_metadata_pointer"
    INIT_MINT = "initialize_mint"
    INIT_METADATA = "initialize_metadata"
    UPDATE_METADATA_FIELD = "update_metadata_field"
    CREATE_ASSOCIATED_ACCOUNT = "create_associated_account"
    MINT_TO = "mint_to"
    SET_AUTHORITY = "set_authority"


@dataclass(frozen=True, slots=True)
class AssembledInstruction:
    kind: InstructionKind
    instruction: Instruction
    note: str = ""


def associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    return get_associated_token_address(owner, mint, TOKEN_2022_PROGRAM_ID)


def assemble(
    request: TokenLaunchRequest,
    mint: Pubkey,
    record: TokenMetadata,
    sizing: AccountSizing,
    payer: Pubkey,
) -> list[AssembledInstruction]:
    """Build every instruction of the launch transaction, in execution order."""
    ata = associated_token_address(payer, mint)
    steps = [
        AssembledInstruction(
            InstructionKind.CREATE_ACCOUNT,
            create_account(
                CreateAccountParams(
                    from_pubkey=payer,
                    to_pubkey=mint,
                    lamports=sizing.rent_lamports,
                    space=sizing.mint_account_length,
                    owner=TOKEN_2022_PROGRAM_ID,
                )
            ),
        ),
        AssembledInstruction(
            InstructionKind.INIT_METADATA_POINTER,
            initialize_metadata_pointer(mint, authority=payer, metadata_address=mint),
        ),
        AssembledInstruction(
            InstructionKind.INIT_MINT,
            initialize_mint(
                InitializeMintParams(
                    decimals=request.decimals,
                    program_id=TOKEN_2022_PROGRAM_ID,
                    mint=mint,
                    mint_authority=payer,
                    freeze_authority=payer,
                )
            ),
        ),
        AssembledInstruction(
            InstructionKind.INIT_METADATA,
            initialize_token_metadata(
                metadata=mint,
                update_authority=payer,
                mint=mint,
                mint_authority=payer,
                name=record.name,
                symbol=record.symbol,
                uri=record.uri,
            ),
        ),
    ]

    for key, value in record.additional_metadata:
        steps.append(
            AssembledInstruction(
                InstructionKind.UPDATE_METADATA_FIELD,
                update_token_metadata_field(metadata=mint, update_authority=payer, field_name=key, value=value),
                note=key,
            )
        )

    steps.append(
        AssembledInstruction(
            InstructionKind.CREATE_ASSOCIATED_ACCOUNT,
            create_associated_token_account(payer, payer, mint, TOKEN_2022_PROGRAM_ID),
        )
    )
    steps.append(
        AssembledInstruction(
            InstructionKind.MINT_TO,
            mint_to(
                MintToParams(
                    program_id=TOKEN_2022_PROGRAM_ID,
                    mint=mint,
                    dest=ata,
                    mint_authority=payer,
                    amount=request.raw_amount(),
                )
            ),
        )
    )

    plans = authority_plan(request)
    steps.extend(authority_instructions(mint, payer, plans.mint, AuthorityType.MINT_TOKENS))
    steps.extend(authority_instructions(mint, payer, plans.freeze, AuthorityType.FREEZE_ACCOUNT))
    return steps


def authority_instructions(
    mint: Pubkey,
    payer: Pubkey,
    plan: AuthorityPlan,
    authority_type: AuthorityType,
) -> list[AssembledInstruction]:
    """Zero or one set-authority instruction moving `authority_type` per `plan`."""
    if not plan.changes:
        return []
    if plan.state is AuthorityState.TRANSFERRED and plan.new_authority is None:
        raise ValueError("A transferred authority needs a new authority key")
    new_authority = plan.new_authority if plan.state is AuthorityState.TRANSFERRED else None
    instruction = set_authority(
        SetAuthorityParams(
            program_id=TOKEN_2022_PROGRAM_ID,
            account=mint,
            authority=authority_type,
            current_authority=payer,
            new_authority=new_authority,
        )
    )
    label = "mint" if authority_type == AuthorityType.MINT_TOKENS else "freeze"
    return [AssembledInstruction(InstructionKind.SET_AUTHORITY, instruction, note=f"{label}:{plan.state.value}")]


def instructions_of(steps: list[AssembledInstruction]) -> list[Instruction]:
    return [step.instruction for step in steps]


__all__ = [
    "AssembledInstruction",
    "InstructionKind",
    "assemble",
    "associated_token_address",
    "authority_instructions",
    "instructions_of",
]
