from __future__ import annotations

import logging
from typing import Annotated

from pydantic import Field
from web3 import AsyncWeb3

from shape_mcp.clients import resolve_ens, stack_contract
from shape_mcp.models import LastMedal, MedalsByTier, StackAchievements
from shape_mcp.units import iso_from_unix, tool_error, utc_now

logger = logging.getLogger(__name__)

TIER_NAMES = {1: "bronze", 2: "silver", 3: "gold"}


async def get_stack_achievements(
    user_address: Annotated[
        str, Field(min_length=3, description="The user address or ENS name to fetch Stack achievements for")
    ],
) -> dict:
    """Get a user's Stack achievements: total medals by tier (bronze, silver,
    gold, special), total count, and last medal claimed.

    ENS names are resolved on Ethereum mainnet before querying Shape.
    """
    try:
        if AsyncWeb3.is_address(user_address):
            resolved = user_address
        else:
            resolved = await resolve_ens(user_address)
            if not resolved:
                return tool_error(f"Unable to resolve ENS name: {user_address}", user_address=user_address)

        stack = stack_contract()
        stack_id = await stack.token_id_for(resolved)
        if stack_id == 0:
            return StackAchievements(user_address=resolved, timestamp=utc_now(), has_stack=False).model_dump()

        medals = await stack.medals(stack_id)
        by_tier = MedalsByTier()
        last = None
        for medal in medals:
            tier = TIER_NAMES.get(medal.tier, "special")
            setattr(by_tier, tier, getattr(by_tier, tier) + 1)
            if medal.timestamp > 0 and (last is None or medal.timestamp > last.timestamp):
                last = medal

        return StackAchievements(
            user_address=resolved,
            timestamp=utc_now(),
            has_stack=True,
            total_medals=len(medals),
            medals_by_tier=by_tier,
            last_medal_claimed=(
                LastMedal(medal_uid=last.medal_uid, claimed_at=iso_from_unix(last.timestamp)) if last else None
            ),
        ).model_dump()
    except Exception as exc:  # noqa: BLE001
        return tool_error("Error fetching Stack achievements", exc, user_address=user_address)
