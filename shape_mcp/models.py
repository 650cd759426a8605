"""Response shapes returned by the tools, serialized as JSON objects."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ToolErrorOutput(BaseModel):
    """Tagged error object returned in place of a tool's normal payload."""

    error: Literal[True] = True
    message: str
    contract_address: str | None = None
    creator_address: str | None = None
    owner_address: str | None = None
    user_address: str | None = None
    timestamp: str


# --- gasback -----------------------------------------------------------------


class CreatorAnalytics(BaseModel):
    """Gasback totals across every token a creator owns."""

    creator_address: str
    timestamp: str
    has_tokens: bool
    total_tokens: int
    total_earned_wei: str = "0"
    total_earned_eth: str = "0.000000"
    current_balance_wei: str = "0"
    current_balance_eth: str = "0.000000"
    total_withdrawn_wei: str = "0"
    total_withdrawn_eth: str = "0.000000"
    registered_contracts: int = 0


class CreatorSummary(BaseModel):
    """One leaderboard entry, aggregated per owner."""

    address: str
    total_tokens: int
    total_earned_wei: str
    total_earned_eth: str
    current_balance_wei: str
    current_balance_eth: str
    registered_contracts: int


class TopCreators(BaseModel):
    """Creators ranked by total gasback earned."""

    timestamp: str
    total_creators_analyzed: int = 0
    top_creators: list[CreatorSummary] = Field(default_factory=list)


class GasbackSimulation(BaseModel):
    """Projected rebate for a hypothetical transaction volume."""

    contract_address: str
    timestamp: str
    hypothetical_txs: int
    avg_gas_per_tx: int
    current_gas_price_wei: str
    rebate_percentage: int
    total_gas_cost_wei: str
    estimated_earnings_wei: str
    estimated_earnings_eth: str


class EcosystemSection(BaseModel):
    """Token and owner counts, scaled up from the sample."""

    total_tokens: int
    sampled_tokens: int
    sample_coverage: str
    unique_owners: int
    estimated_total_owners: int
    active_tokens: int
    active_token_percentage: str


class EarningsSection(BaseModel):
    """Estimated registry-wide earnings and withdrawals."""

    estimated_total_earned_wei: str
    estimated_total_earned_eth: str
    estimated_current_balance_wei: str
    estimated_current_balance_eth: str
    estimated_total_withdrawn_wei: str
    estimated_total_withdrawn_eth: str
    withdrawal_rate: str


class DistributionSection(BaseModel):
    """Earnings thresholds observed within the sample."""

    median_earnings_wei: str
    median_earnings_eth: str
    top_10_percentile_wei: str
    top_10_percentile_eth: str
    top_5_percentile_wei: str
    top_5_percentile_eth: str
    average_earnings_per_token_wei: str
    average_earnings_per_token_eth: str


class ContractsSection(BaseModel):
    """Registered contract counts from the sample."""

    estimated_total_registered_contracts: int
    average_contracts_per_token: str
    sampled_unique_contracts: int


class TokenEarnings(BaseModel):
    """A sampled token and what it has earned."""

    token_id: str
    owner: str
    total_earned_wei: str
    total_earned_eth: str


class ContractEarnings(BaseModel):
    """A registered contract and its lifetime gasback."""

    contract_address: str
    total_earned_wei: str
    total_earned_eth: str


class SamplesSection(BaseModel):
    """Top sampled tokens and contracts by earnings."""

    top_tokens_by_earnings: list[TokenEarnings]
    top_contracts_by_earnings: list[ContractEarnings]


class StatsMetadata(BaseModel):
    """Provenance of a stats report."""

    gasback_contract_address: str
    chain_id: int
    data_note: str = "Estimates based on statistical sampling of tokens"
    timestamp: str


class GasbackStats(BaseModel):
    """Ecosystem estimate extrapolated from a token sample."""

    ecosystem: EcosystemSection
    earnings: EarningsSection
    distribution: DistributionSection
    contracts: ContractsSection
    samples: SamplesSection | None = None
    metadata: StatsMetadata


# --- nft ---------------------------------------------------------------------


class SampleNft(BaseModel):
    """Preview of one token in a collection."""

    token_id: str
    name: str | None = None
    image_url: str | None = None


class CollectionAnalytics(BaseModel):
    """Collection report; fields whose source failed stay null."""

    contract_address: str
    timestamp: str
    name: str | None = None
    symbol: str | None = None
    contract_type: str | None = None
    total_supply: int | None = None
    owner_count: int | None = None
    sample_nfts: list[SampleNft] = Field(default_factory=list)
    floor_price_eth: str | None = None
    seven_day_sales_count: int | None = None
    seven_day_volume_eth: str | None = None
    average_sale_price_eth: str | None = None
    market_cap_eth: str | None = None


class OwnedNft(BaseModel):
    """An NFT held by the queried address."""

    token_id: str
    contract_address: str
    name: str | None = None
    image_url: str | None = None


class ShapeNfts(BaseModel):
    """First page of NFTs held by an address."""

    owner_address: str
    timestamp: str
    total_nfts: int
    nfts: list[OwnedNft]


# --- network -----------------------------------------------------------------


class GasPrice(BaseModel):
    """Current gas price in wei, gwei and ETH."""

    wei: str
    gwei: str
    eth: str


class ChainStatus(BaseModel):
    """RPC health and block production for the configured chain."""

    timestamp: str
    network: str
    chain_id: int
    rpc_healthy: bool = False
    latest_block_number: int | None = None
    gas_price: GasPrice | None = None
    avg_block_time: float | None = None


# --- stack -------------------------------------------------------------------


class MedalsByTier(BaseModel):
    """Medal counts; tiers outside 1-3 count as special."""

    bronze: int = 0
    silver: int = 0
    gold: int = 0
    special: int = 0


class LastMedal(BaseModel):
    """Most recently claimed medal."""

    medal_uid: str
    claimed_at: str


class StackAchievements(BaseModel):
    """Stack medals held by a user."""

    user_address: str
    timestamp: str
    has_stack: bool
    total_medals: int = 0
    medals_by_tier: MedalsByTier = Field(default_factory=MedalsByTier)
    last_medal_claimed: LastMedal | None = None
