from __future__ import annotations

import asyncio
import logging

from shape_mcp.clients import rpc_client
from shape_mcp.config import get_settings
from shape_mcp.models import ChainStatus, GasPrice
from shape_mcp.units import tool_error, utc_now, wei_to_eth, wei_to_gwei

logger = logging.getLogger(__name__)

BLOCK_TIME_SAMPLES = 3


async def _average_block_time(w3, latest_number: int) -> float | None:
    numbers = [latest_number - i for i in range(1, BLOCK_TIME_SAMPLES + 1) if latest_number - i >= 0]
    outcomes = await asyncio.gather(*(w3.eth.get_block(n) for n in numbers), return_exceptions=True)
    timestamps = [int(b["timestamp"]) for b in outcomes if not isinstance(b, BaseException)]
    if len(timestamps) < 2:
        return None
    diffs = [a - b for a, b in zip(timestamps, timestamps[1:])]
    return sum(diffs) / len(diffs)


async def get_chain_status() -> dict:
    """Get Shape network status: RPC health, gas price, latest block and
    average block time, for monitoring and educational purposes."""
    try:
        settings = get_settings()
        status = ChainStatus(timestamp=utc_now(), network=settings.network, chain_id=settings.chain_id)
        w3 = rpc_client(settings)

        async def _gas_price() -> int:
            return int(await w3.eth.gas_price)

        async def _block_number() -> int:
            return int(await w3.eth.block_number)

        latest, gas_price, block_number = await asyncio.gather(
            w3.eth.get_block("latest"), _gas_price(), _block_number(), return_exceptions=True
        )

        status.rpc_healthy = not isinstance(latest, BaseException)
        if status.rpc_healthy:
            status.latest_block_number = int(latest["number"])
            status.avg_block_time = await _average_block_time(w3, status.latest_block_number)
        else:
            logger.warning("Latest block unavailable: %s", latest)
        if status.latest_block_number is None and not isinstance(block_number, BaseException):
            status.latest_block_number = block_number

        if isinstance(gas_price, BaseException):
            logger.warning("Gas price unavailable: %s", gas_price)
        else:
            status.gas_price = GasPrice(
                wei=str(gas_price),
                gwei=wei_to_gwei(gas_price, 4),
                eth=wei_to_eth(gas_price, 12),
            )

        return status.model_dump()
    except Exception as exc:  # noqa: BLE001
        return tool_error("Error fetching chain status", exc)
