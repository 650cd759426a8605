from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from shape_mcp.models import ToolErrorOutput

logger = logging.getLogger(__name__)

WEI_PER_ETH = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9


def _fixed(value: Decimal, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return f"{value.quantize(quantum, rounding=ROUND_HALF_UP):f}"


def wei_to_eth(wei: int, places: int = 6) -> str:
    """Convert a wei amount into an ETH decimal string with ``places`` digits."""
    return _fixed(Decimal(wei) / WEI_PER_ETH, places)


def wei_to_gwei(wei: int, places: int = 4) -> str:
    return _fixed(Decimal(wei) / WEI_PER_GWEI, places)


def eth_to_str(eth: float | Decimal, places: int = 4) -> str:
    """Format an ETH amount reported by an API (float) as a decimal string."""
    return _fixed(Decimal(str(eth)), places)


def utc_now() -> str:
    return iso_from_unix(datetime.now(timezone.utc).timestamp())


def iso_from_unix(seconds: float) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def tool_error(message: str, exc: BaseException | None = None, **context: Any) -> dict[str, Any]:
    """Build the tagged error object tools return instead of raising.

    ``context`` carries the tool's primary input (e.g. ``creator_address``)
    so callers can correlate the failure.
    """
    if exc is not None:
        logger.warning("%s: %s", message, exc, exc_info=exc)
        message = f"{message}: {str(exc) or type(exc).__name__}"
    output = ToolErrorOutput(message=message, timestamp=utc_now(), **context)
    return output.model_dump(exclude_none=True)
