from __future__ import annotations

import pytest

from rpc_fakes import RPC_URL
from tokenforge.core.config import LaunchSettings


@pytest.fixture
def settings() -> LaunchSettings:
    return LaunchSettings(network="devnet", rpc_url=RPC_URL, cloudinary_cloud_name="demo-cloud")
