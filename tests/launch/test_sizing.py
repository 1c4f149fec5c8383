from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from rpc_fakes import FakeRPC, RPCFailure, make_client
from tokenforge.core.errors import SizingError
from tokenforge.launch.sizing import METADATA_TLV_OVERHEAD, compute_sizing
from tokenforge.solana.token2022 import TokenMetadata


def make_record(description: str = "") -> TokenMetadata:
    return TokenMetadata(
        update_authority=Pubkey.new_unique(),
        mint=Pubkey.new_unique(),
        name="My Token",
        symbol="MTK",
        uri="https://res.cloudinary.com/demo/raw/upload/token-metadata-1.json",
        additional_metadata=[("description", description)] if description else [],
    )


@pytest.mark.asyncio
async def test_rent_covers_mint_and_metadata() -> None:
    record = make_record()
    fake = FakeRPC({"getMinimumBalanceForRentExemption": 4_245_120})

    sizing = await compute_sizing(record, make_client(fake))

    assert sizing.mint_account_length == 234
    assert sizing.metadata_length == len(record.pack())
    assert sizing.rent_lamports == 4_245_120
    queried = fake.params("getMinimumBalanceForRentExemption")[0][0]
    assert queried == 234 + METADATA_TLV_OVERHEAD + len(record.pack())
    assert queried == sizing.funded_length


@pytest.mark.asyncio
async def test_description_grows_the_rent_query() -> None:
    fake = FakeRPC({"getMinimumBalanceForRentExemption": 1})
    client = make_client(fake)

    plain = await compute_sizing(make_record(), client)
    described = await compute_sizing(make_record("A community token"), client)

    assert described.metadata_length - plain.metadata_length == 4 + len("description") + 4 + len("A community token")


@pytest.mark.asyncio
async def test_rpc_failure_is_sizing_error() -> None:
    fake = FakeRPC({"getMinimumBalanceForRentExemption": RPCFailure("node is behind")})

    with pytest.raises(SizingError):
        await compute_sizing(make_record(), make_client(fake))
