"""Shared fixtures and in-process stand-ins for the upstream services."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from shape_mcp.cache import get_cache
from shape_mcp.clients import FAILED_CALL, CallResult, Medal
from shape_mcp.config import get_settings

CREATOR_A = "0x" + "a1" * 20
CREATOR_B = "0x" + "b2" * 20
CONTRACT_X = "0x" + "c3" * 20
CONTRACT_Y = "0x" + "d4" * 20

ETH = 10**18


@pytest.fixture(autouse=True)
def shape_env(monkeypatch: pytest.MonkeyPatch) -> object:
    """Pin configuration to mainnet with a dummy key and no cache."""
    monkeypatch.setenv("ALCHEMY_API_KEY", "test-key")
    monkeypatch.setenv("CHAIN_ID", "360")
    monkeypatch.setenv("SHAPE_MCP_ENV", "development")
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("STACK_CONTRACT_ADDRESS", raising=False)
    get_settings.cache_clear()
    get_cache.cache_clear()
    yield
    get_settings.cache_clear()
    get_cache.cache_clear()


@dataclass
class Token:
    owner: str
    earned: int
    balance: int
    contracts: list[str] = field(default_factory=list)


class FakeGasback:
    """In-memory Gasback registry mirroring ``GasbackContract``'s interface."""

    def __init__(
        self,
        tokens: dict[int, Token],
        *,
        broken: set[int] | None = None,
        contract_earned: dict[str, int] | None = None,
        failing_batches: set[int] | None = None,
    ) -> None:
        self.tokens = tokens
        self.broken = broken or set()
        self.contract_earned = contract_earned or {}
        self.failing_batches = failing_batches or set()
        self.calls = 0

    def _token(self, token_id: int) -> Token:
        self.calls += 1
        if token_id in self.broken or token_id not in self.tokens:
            raise RuntimeError(f"execution reverted for token {token_id}")
        return self.tokens[token_id]

    async def total_supply(self) -> int:
        return len(self.tokens)

    async def token_by_index(self, index: int) -> int:
        return sorted(self.tokens)[index]

    async def owner_of(self, token_id: int) -> str:
        return self._token(token_id).owner

    async def owned_tokens(self, owner: str) -> list[int]:
        self.calls += 1
        return [t for t, tok in sorted(self.tokens.items()) if tok.owner.lower() == owner.lower()]

    async def token_total_gasback(self, token_id: int) -> int:
        return self._token(token_id).earned

    async def token_gasback_balance(self, token_id: int) -> int:
        return self._token(token_id).balance

    async def token_registered_contracts(self, token_id: int) -> list[str]:
        return list(self._token(token_id).contracts)

    async def contract_total_earned(self, contract_address: str) -> int:
        return self.contract_earned[contract_address]

    async def multicall(self, calls) -> list[CallResult]:
        if any(args[0] in self.failing_batches for _, args in calls):
            raise RuntimeError("multicall reverted")
        handlers = {
            "ownerOf": lambda t: self._token(t).owner.lower(),
            "getTokenTotalGasback": lambda t: self._token(t).earned,
            "getTokenGasbackBalance": lambda t: self._token(t).balance,
            "getTokenRegisteredContracts": lambda t: [c.lower() for c in self._token(t).contracts],
        }
        results = []
        for name, args in calls:
            try:
                results.append(CallResult(success=True, value=handlers[name](*args)))
            except RuntimeError:
                results.append(FAILED_CALL)
        return results


class FakeStack:
    def __init__(self, stack_ids: dict[str, int], medals: dict[int, list[Medal]]) -> None:
        self.stack_ids = {k.lower(): v for k, v in stack_ids.items()}
        self._medals = medals

    async def token_id_for(self, owner: str) -> int:
        return self.stack_ids.get(owner.lower(), 0)

    async def medals(self, stack_id: int) -> list[Medal]:
        return self._medals.get(stack_id, [])


async def _resolve(value):
    if isinstance(value, BaseException):
        raise value
    return value


class FakeEth:
    """Subset of ``AsyncWeb3.eth`` used by the tools; awaitable properties included."""

    def __init__(
        self,
        *,
        latest: int = 100,
        block_times: dict[int, int] | None = None,
        gas_price: int | BaseException = 1_000_000,
        latest_error: BaseException | None = None,
    ) -> None:
        self.latest = latest
        self.block_times = block_times or {}
        self._gas_price = gas_price
        self.latest_error = latest_error

    async def get_block(self, ident):
        if ident == "latest":
            if self.latest_error is not None:
                raise self.latest_error
            ident = self.latest
        if ident not in self.block_times:
            raise RuntimeError(f"block {ident} not found")
        return {"number": ident, "timestamp": self.block_times[ident]}

    @property
    def gas_price(self):
        return _resolve(self._gas_price)

    @property
    def block_number(self):
        return _resolve(self.latest)


class FakeWeb3:
    def __init__(self, eth: FakeEth) -> None:
        self.eth = eth


class MockAsyncRedisClient:
    """In-memory mock of the async Redis client."""

    def __init__(self) -> None:
        self.data: dict[str, tuple[str, int]] = {}

    async def get(self, key: str) -> bytes | None:
        if key not in self.data:
            return None
        return self.data[key][0].encode()

    async def setex(self, name: str, time: int, value: str) -> bool:
        self.data[name] = (value, time)
        return True


class BrokenRedisClient:
    async def get(self, key: str) -> bytes | None:
        raise ConnectionError("redis down")

    async def setex(self, name: str, time: int, value: str) -> bool:
        raise ConnectionError("redis down")
