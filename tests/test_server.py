from __future__ import annotations

import json

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from conftest import CONTRACT_X, FakeEth, FakeWeb3
from shape_mcp.server import mcp
from shape_mcp.tools import gasback, network

TOOL_NAMES = {
    "get_shape_creator_analytics",
    "get_top_shape_creators",
    "simulate_gasback_rewards",
    "get_shape_gasback_stats",
    "get_collection_analytics",
    "get_shape_nft",
    "get_chain_status",
    "get_stack_achievements",
}


@pytest.mark.asyncio
async def test_all_tools_registered_read_only() -> None:
    async with Client(mcp) as client:
        tools = await client.list_tools()

    assert {t.name for t in tools} == TOOL_NAMES
    for tool in tools:
        hints = tool.annotations.model_dump(by_alias=True)
        assert hints["readOnlyHint"] is True
        assert hints["destructiveHint"] is False
        assert hints["title"]
        assert tool.description


@pytest.mark.asyncio
async def test_chain_status_over_mcp(monkeypatch: pytest.MonkeyPatch) -> None:
    eth = FakeEth(latest=10, block_times={7: 100, 8: 102, 9: 104, 10: 106})
    monkeypatch.setattr(network, "rpc_client", lambda *a, **k: FakeWeb3(eth))

    async with Client(mcp) as client:
        result = await client.call_tool("get_chain_status", {})

    payload = json.loads(result.content[0].text)
    assert payload["rpc_healthy"] is True
    assert payload["latest_block_number"] == 10
    assert payload["avg_block_time"] == 2.0


@pytest.mark.asyncio
async def test_simulation_defaults_over_mcp(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gasback, "rpc_client", lambda *a, **k: FakeWeb3(FakeEth(gas_price=1_000_000)))

    async with Client(mcp) as client:
        result = await client.call_tool("simulate_gasback_rewards", {"contract_address": CONTRACT_X})

    payload = json.loads(result.content[0].text)
    assert payload["hypothetical_txs"] == 100
    assert payload["avg_gas_per_tx"] == 100_000
    assert payload["estimated_earnings_wei"] == "8000000000000"
    assert payload["estimated_earnings_eth"] == "0.000008"


@pytest.mark.asyncio
async def test_invalid_address_rejected_before_tool_runs(monkeypatch: pytest.MonkeyPatch) -> None:
    def unreachable(*args, **kwargs):
        raise AssertionError("tool body should not run")

    monkeypatch.setattr(gasback, "gasback_contract", unreachable)

    async with Client(mcp) as client:
        with pytest.raises(ToolError):
            await client.call_tool("get_shape_creator_analytics", {"creator_address": "0x1234"})


@pytest.mark.asyncio
async def test_top_creators_limit_bounds() -> None:
    async with Client(mcp) as client:
        with pytest.raises(ToolError):
            await client.call_tool("get_top_shape_creators", {"limit": 101})
