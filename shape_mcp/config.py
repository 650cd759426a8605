from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

SHAPE_MAINNET_ID = 360
SHAPE_SEPOLIA_ID = 11011

NETWORK_SLUGS: dict[int, str] = {
    SHAPE_MAINNET_ID: "shape-mainnet",
    SHAPE_SEPOLIA_ID: "shape-sepolia",
}

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

GASBACK_ADDRESSES: dict[int, str] = {
    SHAPE_MAINNET_ID: "0xf5e602c87d675E978F097503aedE4A766285a08B",
    SHAPE_SEPOLIA_ID: "0xdF329d59bC797907703F7c198dDA2d770fC45034",
}

STACK_ADDRESSES: dict[int, str] = {
    SHAPE_MAINNET_ID: "0x76d6aC90A62Ca547d51D7AcAeD014167F81B9931",
}

ALCHEMY_API_KEY_ENV = "ALCHEMY_API_KEY"


class Settings(BaseModel):
    """Process-wide configuration read from the environment."""

    chain_id: int = SHAPE_MAINNET_ID
    alchemy_api_key: str | None = None
    stack_address: str | None = None
    redis_url: str | None = None
    cache_ttl_seconds: int = Field(default=300, gt=0)
    environment: str = "development"
    rate_limit_max_requests: int = Field(default=100, gt=0)
    rate_limit_window_seconds: float = Field(default=900.0, gt=0)
    host: str = "0.0.0.0"
    port: int = 8000
    path: str = "/mcp"
    log_level: str = "INFO"

    def require_known_chain(self) -> int:
        """Return the chain id; raises RuntimeError when it is not a Shape network."""
        if self.chain_id not in NETWORK_SLUGS:
            raise RuntimeError(
                f"Unsupported CHAIN_ID {self.chain_id}; "
                f"use {SHAPE_MAINNET_ID} (mainnet) or {SHAPE_SEPOLIA_ID} (sepolia)"
            )
        return self.chain_id

    @classmethod
    def from_env(cls) -> Settings:
        env = os.environ
        return cls(
            chain_id=int(env.get("CHAIN_ID", SHAPE_MAINNET_ID)),
            alchemy_api_key=env.get(ALCHEMY_API_KEY_ENV) or None,
            stack_address=env.get("STACK_CONTRACT_ADDRESS") or None,
            redis_url=env.get("REDIS_URL") or None,
            cache_ttl_seconds=int(env.get("SHAPE_MCP_CACHE_TTL", "300")),
            environment=env.get("SHAPE_MCP_ENV", "development"),
            rate_limit_max_requests=int(env.get("SHAPE_MCP_RATE_LIMIT", "100")),
            rate_limit_window_seconds=float(env.get("SHAPE_MCP_RATE_WINDOW", "900")),
            host=env.get("SHAPE_MCP_HOST", "0.0.0.0"),
            port=int(env.get("SHAPE_MCP_PORT", "8000")),
            path=env.get("SHAPE_MCP_PATH", "/mcp"),
            log_level=env.get("SHAPE_MCP_LOG_LEVEL", "INFO"),
        )

    @property
    def is_mainnet(self) -> bool:
        return self.chain_id == SHAPE_MAINNET_ID

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def network(self) -> str:
        return NETWORK_SLUGS[self.require_known_chain()]

    def api_key(self) -> str:
        """Return the Alchemy API key or fail with a setup hint."""
        if not self.alchemy_api_key:
            raise RuntimeError(
                f"Set {ALCHEMY_API_KEY_ENV} with an Alchemy API key before querying Shape."
            )
        return self.alchemy_api_key

    @property
    def rpc_url(self) -> str:
        return f"https://{self.network}.g.alchemy.com/v2/{self.api_key()}"

    @property
    def mainnet_rpc_url(self) -> str:
        # ENS lives on Ethereum mainnet regardless of the Shape chain in use
        return f"https://eth-mainnet.g.alchemy.com/v2/{self.api_key()}"

    @property
    def gasback_address(self) -> str:
        return GASBACK_ADDRESSES[self.require_known_chain()]

    @property
    def stack_contract_address(self) -> str:
        address = self.stack_address or STACK_ADDRESSES.get(self.chain_id)
        if not address:
            raise RuntimeError(
                f"No Stack contract known for chain {self.chain_id}; set STACK_CONTRACT_ADDRESS."
            )
        return address


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
