from __future__ import annotations

import logging
import sys

from fastmcp import FastMCP

from shape_mcp.config import get_settings
from shape_mcp.middleware import LoggingMiddleware, RateLimitMiddleware
from shape_mcp.tools import annotations
from shape_mcp.tools.gasback import (
    get_shape_creator_analytics,
    get_shape_gasback_stats,
    get_top_shape_creators,
    simulate_gasback_rewards,
)
from shape_mcp.tools.network import get_chain_status
from shape_mcp.tools.nft import get_collection_analytics, get_shape_nft
from shape_mcp.tools.stack import get_stack_achievements

logger = logging.getLogger(__name__)

settings = get_settings()

mcp = FastMCP(
    name="Shape MCP",
    instructions=(
        "Read-only analytics for the Shape L2 network: gasback creator earnings, "
        "NFT collections and ownership, chain health and Stack achievements. "
        "ETH amounts are decimal strings; wei amounts are integer strings."
    ),
)

# -----------------------------------------------------------------------------
# Middleware: outermost first, so rate-limited calls are still logged
# -----------------------------------------------------------------------------

mcp.add_middleware(LoggingMiddleware())
mcp.add_middleware(
    RateLimitMiddleware(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        enabled=settings.is_production,
    )
)

# -----------------------------------------------------------------------------
# Tools
# -----------------------------------------------------------------------------

mcp.tool(
    get_shape_creator_analytics,
    name="get_shape_creator_analytics",
    annotations=annotations("Shape Creator Gasback Analytics"),
    tags={"gasback"},
)
mcp.tool(
    get_top_shape_creators,
    name="get_top_shape_creators",
    annotations=annotations("Top Shape Creators by Gasback"),
    tags={"gasback"},
)
mcp.tool(
    simulate_gasback_rewards,
    name="simulate_gasback_rewards",
    annotations=annotations("Gasback Earnings Simulator"),
    tags={"gasback", "simulation"},
)
mcp.tool(
    get_shape_gasback_stats,
    name="get_shape_gasback_stats",
    annotations=annotations("Shape Gasback Ecosystem Stats"),
    tags={"gasback"},
)
mcp.tool(
    get_collection_analytics,
    name="get_collection_analytics",
    annotations=annotations("NFT Collection Analytics"),
    tags={"nft"},
)
mcp.tool(
    get_shape_nft,
    name="get_shape_nft",
    annotations=annotations("Get Shape NFTs"),
    tags={"nft"},
)
mcp.tool(
    get_chain_status,
    name="get_chain_status",
    annotations=annotations("Shape Chain Status"),
    tags={"monitoring"},
)
mcp.tool(
    get_stack_achievements,
    name="get_stack_achievements",
    annotations=annotations("Stack Achievement Tracker"),
    tags={"stack"},
)


def configure_logging(level: str) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())


def main() -> None:
    """Entry point for running the Streamable HTTP server."""
    configure_logging(settings.log_level)
    logger.info(
        "Starting Shape MCP for chain %s at http://%s:%s%s",
        settings.chain_id,
        settings.host,
        settings.port,
        settings.path,
    )
    mcp.run(transport="streamable-http", host=settings.host, port=settings.port, path=settings.path)


if __name__ == "__main__":
    main()
