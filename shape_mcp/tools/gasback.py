"""Gasback tools: per-creator earnings, creator leaderboard, rebate simulation
and sampled ecosystem statistics."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Annotated, Sequence

from pydantic import Field
from web3 import AsyncWeb3

from shape_mcp.cache import get_cache
from shape_mcp.clients import (
    FAILED_CALL,
    MULTICALL_BATCH_SIZE,
    CallResult,
    GasbackContract,
    gasback_contract,
    rpc_client,
)
from shape_mcp.config import get_settings
from shape_mcp.models import (
    ContractEarnings,
    ContractsSection,
    CreatorAnalytics,
    CreatorSummary,
    DistributionSection,
    EarningsSection,
    EcosystemSection,
    GasbackSimulation,
    GasbackStats,
    SamplesSection,
    StatsMetadata,
    TokenEarnings,
    TopCreators,
)
from shape_mcp.tools import ADDRESS_PATTERN
from shape_mcp.units import tool_error, utc_now, wei_to_eth

logger = logging.getLogger(__name__)

# Gasback pays 80% of the gas fee back to the registered contract's owner
REBATE_BPS = 8000
BPS_DENOMINATOR = 10_000

STATS_SAMPLE_SIZE = 100
TOP_SAMPLE_COUNT = 10


@dataclass
class _TokenFigures:
    earned: int
    balance: int
    contracts: int


async def _token_figures(gasback: GasbackContract, token_id: int) -> _TokenFigures:
    earned, balance, contracts = await asyncio.gather(
        gasback.token_total_gasback(token_id),
        gasback.token_gasback_balance(token_id),
        gasback.token_registered_contracts(token_id),
    )
    return _TokenFigures(earned=earned, balance=balance, contracts=len(contracts))


async def get_shape_creator_analytics(
    creator_address: Annotated[
        str,
        Field(pattern=ADDRESS_PATTERN, description="The creator/owner address to analyze gasback data for"),
    ],
) -> dict:
    """Get essential gasback analytics for a Shape creator: token count, earnings,
    balance, withdrawals, and registered contracts.

    Amounts are reported in wei and ETH. Chain with get_top_shape_creators to
    compare against the leaderboard or simulate_gasback_rewards to project
    future earnings.
    """
    try:
        settings = get_settings()
        cache = get_cache()
        if cache is not None:
            cached = await cache.get("creator_analytics", settings.chain_id, creator_address)
            if cached is not None:
                return cached

        gasback = gasback_contract(settings)
        tokens = await gasback.owned_tokens(creator_address)
        analytics = CreatorAnalytics(
            creator_address=creator_address,
            timestamp=utc_now(),
            has_tokens=bool(tokens),
            total_tokens=len(tokens),
        )

        if tokens:
            figures = await asyncio.gather(*(_token_figures(gasback, t) for t in tokens))
            earned = sum(f.earned for f in figures)
            balance = sum(f.balance for f in figures)
            withdrawn = max(0, earned - balance)
            analytics.total_earned_wei = str(earned)
            analytics.total_earned_eth = wei_to_eth(earned)
            analytics.current_balance_wei = str(balance)
            analytics.current_balance_eth = wei_to_eth(balance)
            analytics.total_withdrawn_wei = str(withdrawn)
            analytics.total_withdrawn_eth = wei_to_eth(withdrawn)
            analytics.registered_contracts = sum(f.contracts for f in figures)

        result = analytics.model_dump()
        if cache is not None:
            await cache.set("creator_analytics", settings.chain_id, creator_address, result)
        return result
    except Exception as exc:  # noqa: BLE001 - report as tagged error
        return tool_error("Error analyzing creator gasback data", exc, creator_address=creator_address)


async def multicall_chunked(gasback: GasbackContract, calls: Sequence[tuple[str, tuple]]) -> list[CallResult]:
    """Multicall in chunks issued together; a failed chunk fails each of its calls."""
    chunks = [calls[i : i + MULTICALL_BATCH_SIZE] for i in range(0, len(calls), MULTICALL_BATCH_SIZE)]
    outcomes = await asyncio.gather(*(gasback.multicall(c) for c in chunks), return_exceptions=True)
    results: list[CallResult] = []
    for chunk, outcome in zip(chunks, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning("Multicall batch of %d calls failed: %s", len(chunk), outcome)
            results.extend([FAILED_CALL] * len(chunk))
        else:
            results.extend(outcome)
    return results


@dataclass
class _CreatorTotals:
    address: str
    tokens: int = 0
    earned: int = 0
    balance: int = 0
    contracts: int = 0


async def get_top_shape_creators(
    limit: Annotated[
        int, Field(ge=1, le=100, description="Number of top creators to return (default: 25, max: 100)")
    ] = 25,
) -> dict:
    """Get the top creators on Shape by gasback earnings: token count, total earned,
    current balance, and registered contracts.

    Enumerates every gasback token with batched multicalls, so it reflects the
    whole registry rather than a sample.
    """
    try:
        gasback = gasback_contract()
        total = await gasback.total_supply()
        result = TopCreators(timestamp=utc_now())
        if total == 0:
            return result.model_dump()

        token_ids = range(1, total + 1)
        owner_results = await multicall_chunked(gasback, [("ownerOf", (t,)) for t in token_ids])
        owners = {t: r.value for t, r in zip(token_ids, owner_results) if r.success and r.value}
        if not owners:
            return result.model_dump()

        calls: list[tuple[str, tuple]] = []
        for token_id in owners:
            calls.extend(
                [
                    ("getTokenTotalGasback", (token_id,)),
                    ("getTokenGasbackBalance", (token_id,)),
                    ("getTokenRegisteredContracts", (token_id,)),
                ]
            )
        analytics = await multicall_chunked(gasback, calls)

        creators: dict[str, _CreatorTotals] = {}
        for i, owner in enumerate(owners.values()):
            earned, balance, contracts = analytics[3 * i : 3 * i + 3]
            if not (earned.success and balance.success and contracts.success):
                continue
            totals = creators.setdefault(
                owner.lower(), _CreatorTotals(address=AsyncWeb3.to_checksum_address(owner))
            )
            totals.tokens += 1
            totals.earned += int(earned.value)
            totals.balance += int(balance.value)
            totals.contracts += len(contracts.value)

        ranked = sorted(creators.values(), key=lambda c: c.earned, reverse=True)[:limit]
        result.total_creators_analyzed = len(creators)
        result.top_creators = [
            CreatorSummary(
                address=c.address,
                total_tokens=c.tokens,
                total_earned_wei=str(c.earned),
                total_earned_eth=wei_to_eth(c.earned),
                current_balance_wei=str(c.balance),
                current_balance_eth=wei_to_eth(c.balance),
                registered_contracts=c.contracts,
            )
            for c in ranked
        ]
        return result.model_dump()
    except Exception as exc:  # noqa: BLE001
        return tool_error("Error fetching top Shape creators", exc)


async def simulate_gasback_rewards(
    contract_address: Annotated[
        str, Field(pattern=ADDRESS_PATTERN, description="The contract address to simulate Gasback for")
    ],
    hypothetical_txs: Annotated[
        int, Field(ge=1, description="Number of hypothetical user transactions")
    ] = 100,
    avg_gas_per_tx: Annotated[int, Field(ge=1, description="Average gas used per transaction")] = 100_000,
) -> dict:
    """Simulate potential Gasback earnings for a contract based on hypothetical
    user interactions, priced at the current Shape gas price (80% rebate model).
    """
    try:
        gas_price = int(await rpc_client().eth.gas_price)
        total_cost = hypothetical_txs * avg_gas_per_tx * gas_price
        earnings = total_cost * REBATE_BPS // BPS_DENOMINATOR
        return GasbackSimulation(
            contract_address=contract_address,
            timestamp=utc_now(),
            hypothetical_txs=hypothetical_txs,
            avg_gas_per_tx=avg_gas_per_tx,
            current_gas_price_wei=str(gas_price),
            rebate_percentage=REBATE_BPS * 100 // BPS_DENOMINATOR,
            total_gas_cost_wei=str(total_cost),
            estimated_earnings_wei=str(earnings),
            estimated_earnings_eth=wei_to_eth(earnings),
        ).model_dump()
    except Exception as exc:  # noqa: BLE001
        return tool_error("Error simulating Gasback", exc, contract_address=contract_address)


@dataclass
class _Sample:
    token_id: int
    owner: str
    earned: int
    balance: int
    contracts: list[str]
    contract_earnings: dict[str, int] = field(default_factory=dict)


async def _sample_token(gasback: GasbackContract, index: int, include_contracts: bool) -> _Sample:
    token_id = await gasback.token_by_index(index)
    owner, earned, balance, contracts = await asyncio.gather(
        gasback.owner_of(token_id),
        gasback.token_total_gasback(token_id),
        gasback.token_gasback_balance(token_id),
        gasback.token_registered_contracts(token_id),
    )
    sample = _Sample(token_id=token_id, owner=owner.lower(), earned=earned, balance=balance, contracts=contracts)
    if include_contracts and contracts:
        outcomes = await asyncio.gather(
            *(gasback.contract_total_earned(c) for c in contracts), return_exceptions=True
        )
        for contract, outcome in zip(contracts, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug("Skipping contract %s: %s", contract, outcome)
                continue
            sample.contract_earnings[contract] = outcome
    return sample


def _percent(part: float, whole: float) -> str:
    return f"{part / whole * 100:.1f}%" if whole else "0%"


async def get_shape_gasback_stats(
    include_sample_data: Annotated[
        bool, Field(description="Include sample data like top tokens and top contracts by earnings")
    ] = True,
) -> dict:
    """Get Shape gasback ecosystem statistics: estimated total earnings, token
    distribution, and network insights.

    Figures are extrapolated from a sample of at most 100 tokens taken at a
    fixed interval across the registry; use get_top_shape_creators for exact
    per-creator totals.
    """
    try:
        settings = get_settings()
        gasback = gasback_contract(settings)
        total = await gasback.total_supply()
        if total == 0:
            return {
                "message": "Shape gasback system has not been initialized yet",
                "total_tokens": 0,
                "timestamp": utc_now(),
            }

        interval = max(1, total // STATS_SAMPLE_SIZE)
        indices = list(range(0, total, interval))[:STATS_SAMPLE_SIZE]
        outcomes = await asyncio.gather(
            *(_sample_token(gasback, i, include_sample_data) for i in indices), return_exceptions=True
        )
        samples = [o for o in outcomes if isinstance(o, _Sample)]
        if len(samples) < len(outcomes):
            logger.warning("Skipped %d of %d sampled gasback tokens", len(outcomes) - len(samples), len(outcomes))
        if not samples:
            raise RuntimeError("no gasback tokens could be sampled")

        sampled = len(samples)

        def scaled(value: int) -> int:
            return (value * total + sampled // 2) // sampled

        earned = sum(s.earned for s in samples)
        balance = sum(s.balance for s in samples)
        withdrawn = sum(max(0, s.earned - s.balance) for s in samples)
        registered = sum(len(s.contracts) for s in samples)
        active = sum(1 for s in samples if s.earned > 0)
        owners = {s.owner for s in samples}
        unique_contracts = {c.lower() for s in samples for c in s.contracts}

        est_earned, est_balance, est_withdrawn = scaled(earned), scaled(balance), scaled(withdrawn)

        ranked = sorted(samples, key=lambda s: s.earned, reverse=True)
        distribution = [s.earned for s in ranked]
        median = distribution[len(distribution) // 2]
        p90 = distribution[int(len(distribution) * 0.1)]
        p95 = distribution[int(len(distribution) * 0.05)]
        average = est_earned // total

        stats = GasbackStats(
            ecosystem=EcosystemSection(
                total_tokens=total,
                sampled_tokens=sampled,
                sample_coverage=_percent(sampled, total),
                unique_owners=len(owners),
                estimated_total_owners=scaled(len(owners)),
                active_tokens=scaled(active),
                active_token_percentage=_percent(active, sampled),
            ),
            earnings=EarningsSection(
                estimated_total_earned_wei=str(est_earned),
                estimated_total_earned_eth=wei_to_eth(est_earned),
                estimated_current_balance_wei=str(est_balance),
                estimated_current_balance_eth=wei_to_eth(est_balance),
                estimated_total_withdrawn_wei=str(est_withdrawn),
                estimated_total_withdrawn_eth=wei_to_eth(est_withdrawn),
                withdrawal_rate=_percent(est_withdrawn, est_earned),
            ),
            distribution=DistributionSection(
                median_earnings_wei=str(median),
                median_earnings_eth=wei_to_eth(median),
                top_10_percentile_wei=str(p90),
                top_10_percentile_eth=wei_to_eth(p90),
                top_5_percentile_wei=str(p95),
                top_5_percentile_eth=wei_to_eth(p95),
                average_earnings_per_token_wei=str(average),
                average_earnings_per_token_eth=wei_to_eth(average),
            ),
            contracts=ContractsSection(
                estimated_total_registered_contracts=scaled(registered),
                average_contracts_per_token=f"{registered / sampled:.2f}",
                sampled_unique_contracts=len(unique_contracts),
            ),
            metadata=StatsMetadata(
                gasback_contract_address=settings.gasback_address,
                chain_id=settings.chain_id,
                timestamp=utc_now(),
            ),
        )

        if include_sample_data:
            contract_earnings: dict[str, int] = {}
            for s in samples:
                contract_earnings.update(s.contract_earnings)
            top_contracts = sorted(contract_earnings.items(), key=lambda kv: kv[1], reverse=True)
            stats.samples = SamplesSection(
                top_tokens_by_earnings=[
                    TokenEarnings(
                        token_id=str(s.token_id),
                        owner=s.owner,
                        total_earned_wei=str(s.earned),
                        total_earned_eth=wei_to_eth(s.earned),
                    )
                    for s in ranked[:TOP_SAMPLE_COUNT]
                ],
                top_contracts_by_earnings=[
                    ContractEarnings(
                        contract_address=address,
                        total_earned_wei=str(amount),
                        total_earned_eth=wei_to_eth(amount),
                    )
                    for address, amount in top_contracts[:TOP_SAMPLE_COUNT]
                ],
            )

        return stats.model_dump(exclude_none=True)
    except Exception as exc:  # noqa: BLE001
        return tool_error("Error fetching Shape gasback ecosystem stats", exc)
