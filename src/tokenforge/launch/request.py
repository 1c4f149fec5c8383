"""Launch request, off-chain metadata document, and authority planning."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from solders.pubkey import Pubkey

from tokenforge.core.errors import ValidationError
from tokenforge.solana.token2022 import TokenMetadata

U64_MAX = 2**64 - 1
DESCRIPTION_KEY = "description"


class MetadataAttribute(BaseModel):
    """One `trait_type`/`value` pair of the off-chain metadata document."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    trait_type: str = Field(min_length=1, max_length=32)
    value: str = Field(max_length=64)


class TokenLaunchRequest(BaseModel):
    """User-entered launch parameters, validated before any network call."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=20)
    symbol: str = Field(min_length=2, max_length=8)
    decimals: int = Field(ge=0, le=18)
    initial_supply: Decimal = Field(gt=0)
    image_url: str | None = None
    description: str = ""
    revoke_mint: bool = False
    revoke_freeze: bool = False
    attributes: tuple[MetadataAttribute, ...] = ()

    @field_validator("initial_supply", mode="before")
    @classmethod
    def _supply_as_decimal(cls, value: Any) -> Any:
        # str() keeps floats like 0.1 from dragging binary noise into the amount.
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @field_validator("image_url")
    @classmethod
    def _check_image_url(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        if not value.startswith(("http://", "https://")):
            raise ValueError("Please enter a valid URL.")
        return value

    @field_validator("description")
    @classmethod
    def _check_description(cls, value: str) -> str:
        if value and not 8 <= len(value) <= 50:
            raise ValueError("Description must be empty or between 8 and 50 characters.")
        return value

    @classmethod
    def create(cls, **fields: Any) -> TokenLaunchRequest:
        """Build a request, raising the launchpad `ValidationError` on bad input."""
        try:
            request = cls(**fields)
        except PydanticValidationError as exc:
            raise ValidationError(_summarize(exc)) from exc
        request.raw_amount()
        return request

    def raw_amount(self) -> int:
        """`initial_supply × 10^decimals` as an exact u64 integer."""
        try:
            with localcontext() as ctx:
                ctx.prec = 80
                scaled = self.initial_supply.scaleb(self.decimals)
            if scaled != scaled.to_integral_value():
                raise ValidationError(
                    f"Initial supply {self.initial_supply} has more than {self.decimals} decimal places."
                )
            amount = int(scaled)
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid initial supply: {self.initial_supply}") from exc
        if amount > U64_MAX:
            raise ValidationError("Initial supply exceeds the ledger's 64-bit amount limit.")
        return amount

    def metadata_json(self) -> MetadataJson:
        return MetadataJson(
            name=self.name,
            symbol=self.symbol,
            description=self.description,
            image=self.image_url or "",
            attributes=list(self.attributes),
        )

    def metadata_record(self, *, mint: Pubkey, update_authority: Pubkey, uri: str) -> TokenMetadata:
        additional = [(DESCRIPTION_KEY, self.description)] if self.description else []
        return TokenMetadata(
            update_authority=update_authority,
            mint=mint,
            name=self.name,
            symbol=self.symbol,
            uri=uri,
            additional_metadata=additional,
        )


class MetadataJson(BaseModel):
    """Off-chain JSON document referenced by the on-chain metadata URI."""

    name: str
    symbol: str
    description: str = ""
    image: str = ""
    attributes: list[MetadataAttribute] = Field(default_factory=list)


class AuthorityState(Enum):
    PAYER_HELD = "payer_held"
    REVOKED = "revoked"
    TRANSFERRED = "transferred"


@dataclass(frozen=True, slots=True)
class AuthorityPlan:
    state: AuthorityState
    new_authority: Pubkey | None = None

    @property
    def changes(self) -> bool:
        return self.state is not AuthorityState.PAYER_HELD


@dataclass(frozen=True, slots=True)
class AuthorityPlans:
    mint: AuthorityPlan
    freeze: AuthorityPlan

    @property
    def irreversible(self) -> bool:
        return AuthorityState.REVOKED in (self.mint.state, self.freeze.state)


def authority_plan(request: TokenLaunchRequest) -> AuthorityPlans:
    """Derive the final mint/freeze authority states from the request flags."""
    held = AuthorityPlan(AuthorityState.PAYER_HELD)
    revoked = AuthorityPlan(AuthorityState.REVOKED)
    return AuthorityPlans(
        mint=revoked if request.revoke_mint else held,
        freeze=revoked if request.revoke_freeze else held,
    )


def _summarize(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "request"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


__all__ = [
    "AuthorityPlan",
    "AuthorityPlans",
    "AuthorityState",
    "DESCRIPTION_KEY",
    "MetadataAttribute",
    "MetadataJson",
    "TokenLaunchRequest",
    "U64_MAX",
    "authority_plan",
]
