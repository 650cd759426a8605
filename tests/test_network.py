from __future__ import annotations

import pytest

from conftest import FakeEth, FakeWeb3
from shape_mcp.tools import network

BLOCK_TIMES = {97: 1_000, 98: 1_002, 99: 1_005, 100: 1_006}


def _use(monkeypatch: pytest.MonkeyPatch, eth: FakeEth) -> None:
    monkeypatch.setattr(network, "rpc_client", lambda *a, **k: FakeWeb3(eth))


@pytest.mark.asyncio
async def test_chain_status_healthy(monkeypatch: pytest.MonkeyPatch) -> None:
    _use(monkeypatch, FakeEth(latest=100, block_times=BLOCK_TIMES, gas_price=1_000_000))

    result = await network.get_chain_status()

    assert result["network"] == "shape-mainnet"
    assert result["chain_id"] == 360
    assert result["rpc_healthy"] is True
    assert result["latest_block_number"] == 100
    assert result["gas_price"] == {"wei": "1000000", "gwei": "0.0010", "eth": "0.000000000001"}
    # blocks 99, 98, 97 -> gaps of 3s and 2s
    assert result["avg_block_time"] == 2.5


@pytest.mark.asyncio
async def test_chain_status_when_latest_block_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    _use(monkeypatch, FakeEth(latest=100, block_times=BLOCK_TIMES, latest_error=ConnectionError("timeout")))

    result = await network.get_chain_status()

    assert "error" not in result
    assert result["rpc_healthy"] is False
    assert result["avg_block_time"] is None
    assert result["latest_block_number"] == 100
    assert result["gas_price"]["wei"] == "1000000"


@pytest.mark.asyncio
async def test_chain_status_without_gas_price(monkeypatch: pytest.MonkeyPatch) -> None:
    _use(monkeypatch, FakeEth(latest=100, block_times=BLOCK_TIMES, gas_price=ConnectionError("rate limited")))

    result = await network.get_chain_status()

    assert result["rpc_healthy"] is True
    assert result["gas_price"] is None


@pytest.mark.asyncio
async def test_average_block_time_needs_two_blocks() -> None:
    w3 = FakeWeb3(FakeEth(latest=100, block_times={99: 1_005, 100: 1_006}))

    assert await network._average_block_time(w3, 100) is None


@pytest.mark.asyncio
async def test_average_block_time_near_genesis() -> None:
    w3 = FakeWeb3(FakeEth(latest=2, block_times={0: 10, 1: 12, 2: 14}))

    assert await network._average_block_time(w3, 2) == 2.0


@pytest.mark.asyncio
async def test_chain_status_reports_missing_key(monkeypatch: pytest.MonkeyPatch) -> None:
    from shape_mcp.config import get_settings

    monkeypatch.delenv("ALCHEMY_API_KEY")
    get_settings.cache_clear()

    result = await network.get_chain_status()

    assert result["error"] is True
    assert "Error fetching chain status" in result["message"]
