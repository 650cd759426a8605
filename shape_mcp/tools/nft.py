from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Annotated, Any

from pydantic import Field

from shape_mcp.cache import get_cache
from shape_mcp.clients import AlchemyClient, alchemy_client
from shape_mcp.config import get_settings
from shape_mcp.models import CollectionAnalytics, OwnedNft, SampleNft, ShapeNfts
from shape_mcp.tools import ADDRESS_PATTERN
from shape_mcp.units import eth_to_str, tool_error, utc_now, wei_to_eth

logger = logging.getLogger(__name__)

# ~7 days of Shape blocks at a 2s block time
SEVEN_DAYS_OF_BLOCKS = 302_400
SAMPLE_NFT_COUNT = 5


def _image_url(nft: dict[str, Any]) -> str | None:
    image = nft.get("image") or {}
    return image.get("originalUrl") or image.get("thumbnailUrl") or None


async def _recent_sales(alchemy: AlchemyClient, contract_address: str) -> list[dict]:
    latest = await alchemy.block_number()
    response = await alchemy.get_nft_sales(contract_address, max(0, latest - SEVEN_DAYS_OF_BLOCKS))
    return response.get("nftSales") or []


def _floor_price(data: dict[str, Any]) -> float | None:
    for marketplace in ("looksRare", "openSea"):
        price = (data.get(marketplace) or {}).get("floorPrice")
        if price is not None:
            return float(price)
    return None


async def get_collection_analytics(
    contract_address: Annotated[
        str, Field(pattern=ADDRESS_PATTERN, description="The NFT collection contract address to analyze")
    ],
) -> dict:
    """Get NFT collection analytics: name, symbol, total supply, owner count,
    token standard, sample NFTs, floor price, 7-day sales volume and market cap.

    Each figure comes from its own upstream request; any that fail are
    returned as null while the rest of the report is still filled in.
    """
    try:
        settings = get_settings()
        cache = get_cache()
        if cache is not None:
            cached = await cache.get("collection_analytics", settings.chain_id, contract_address)
            if cached is not None:
                return cached

        alchemy = alchemy_client(settings)
        analytics = CollectionAnalytics(contract_address=contract_address, timestamp=utc_now())

        collection, owners, floor, sales = await asyncio.gather(
            alchemy.get_nfts_for_contract(contract_address, limit=10),
            alchemy.get_owners_for_contract(contract_address),
            alchemy.get_floor_price(contract_address),
            _recent_sales(alchemy, contract_address),
            return_exceptions=True,
        )
        degraded = any(isinstance(r, BaseException) for r in (collection, owners, floor, sales))

        if isinstance(collection, BaseException):
            logger.warning("Could not fetch collection info for %s: %s", contract_address, collection)
        elif collection.get("nfts"):
            nfts = collection["nfts"]
            contract = nfts[0].get("contract") or {}
            analytics.name = contract.get("name") or None
            analytics.symbol = contract.get("symbol") or None
            analytics.contract_type = contract.get("tokenType") or None
            if contract.get("totalSupply"):
                analytics.total_supply = int(contract["totalSupply"])
            analytics.sample_nfts = [
                SampleNft(token_id=str(nft.get("tokenId")), name=nft.get("name") or None, image_url=_image_url(nft))
                for nft in nfts[:SAMPLE_NFT_COUNT]
            ]

        if isinstance(owners, BaseException):
            logger.warning("Could not fetch owners for %s: %s", contract_address, owners)
        else:
            analytics.owner_count = len(owners.get("owners") or [])

        if isinstance(floor, BaseException):
            logger.warning("Could not fetch floor price for %s: %s", contract_address, floor)
        else:
            price = _floor_price(floor)
            if price is not None:
                analytics.floor_price_eth = eth_to_str(price)

        if isinstance(sales, BaseException):
            logger.warning("Could not fetch sales data for %s: %s", contract_address, sales)
        else:
            volume = sum(int((s.get("sellerFee") or {}).get("amount") or 0) for s in sales)
            analytics.seven_day_sales_count = len(sales)
            analytics.seven_day_volume_eth = wei_to_eth(volume, 4)
            analytics.average_sale_price_eth = wei_to_eth(volume // len(sales) if sales else 0, 4)

        if analytics.floor_price_eth is not None and analytics.total_supply:
            analytics.market_cap_eth = eth_to_str(Decimal(analytics.floor_price_eth) * analytics.total_supply)

        result = analytics.model_dump()
        # degraded reports are never cached
        if cache is not None and not degraded:
            await cache.set("collection_analytics", settings.chain_id, contract_address, result)
        return result
    except Exception as exc:  # noqa: BLE001
        return tool_error("Error fetching collection analytics", exc, contract_address=contract_address)


async def get_shape_nft(
    address: Annotated[str, Field(pattern=ADDRESS_PATTERN, description="The wallet address to get NFTs for")],
) -> dict:
    """Get NFT ownership data for an address on Shape: token count and basic
    NFT information (first 100 tokens)."""
    try:
        response = await alchemy_client().get_nfts_for_owner(address, page_size=100)
        owned = response.get("ownedNfts") or []
        return ShapeNfts(
            owner_address=address,
            timestamp=utc_now(),
            total_nfts=response.get("totalCount") or len(owned),
            nfts=[
                OwnedNft(
                    token_id=str(nft.get("tokenId")),
                    contract_address=(nft.get("contract") or {}).get("address", ""),
                    name=nft.get("name") or None,
                    image_url=_image_url(nft),
                )
                for nft in owned
            ],
        ).model_dump()
    except Exception as exc:  # noqa: BLE001
        return tool_error("Error fetching NFTs", exc, owner_address=address)
