"""Upstream clients: Shape JSON-RPC (web3) and the Alchemy hosted API (httpx)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx
from eth_abi.abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider

from shape_mcp.abi import GASBACK_ABI, MULTICALL3_ABI, STACK_ABI, output_types
from shape_mcp.config import MULTICALL3_ADDRESS, Settings, get_settings

logger = logging.getLogger(__name__)

# Multicall3 chunk size; larger batches hit provider payload limits
MULTICALL_BATCH_SIZE = 100


def rpc_client(settings: Settings | None = None) -> AsyncWeb3:
    """JSON-RPC client for the configured Shape chain."""
    settings = settings or get_settings()
    return AsyncWeb3(AsyncHTTPProvider(settings.rpc_url))


def mainnet_rpc_client(settings: Settings | None = None) -> AsyncWeb3:
    settings = settings or get_settings()
    return AsyncWeb3(AsyncHTTPProvider(settings.mainnet_rpc_url))


@dataclass(frozen=True)
class CallResult:
    success: bool
    value: Any = None


FAILED_CALL = CallResult(success=False)


def _checksum_addresses(abi_type: str, value: Any) -> Any:
    """Match web3's call() output: addresses checksummed, arrays as lists."""
    if abi_type == "address":
        return AsyncWeb3.to_checksum_address(value)
    if abi_type == "address[]":
        return [AsyncWeb3.to_checksum_address(v) for v in value]
    if isinstance(value, tuple):
        return list(value)
    return value


class ContractReader:
    """Read-only view calls against one contract, singly or via Multicall3."""

    abi: list[dict] = []

    def __init__(self, w3: AsyncWeb3, address: str):
        self.w3 = w3
        self.address = AsyncWeb3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=self.abi)

    async def call(self, function_name: str, *args: Any) -> Any:
        return await getattr(self.contract.functions, function_name)(*args).call()

    def _get_multicall_contract(self):
        return self.w3.eth.contract(
            AsyncWeb3.to_checksum_address(MULTICALL3_ADDRESS), abi=MULTICALL3_ABI
        )

    async def multicall(self, calls: Sequence[tuple[str, tuple]]) -> list[CallResult]:
        """Run ``(function_name, args)`` calls through Multicall3 ``aggregate3``.

        Every call is allowed to fail on its own; a failed call (or one that
        returns empty or undecodable data) comes back as ``FAILED_CALL`` in the
        same position.
        """
        if not calls:
            return []
        encoded = [
            (
                self.address,
                True,
                getattr(self.contract.functions, name)(*args)._encode_transaction_data(),
            )
            for name, args in calls
        ]
        raw = await self._get_multicall_contract().functions.aggregate3(encoded).call()

        results: list[CallResult] = []
        for (name, _), (success, data) in zip(calls, raw):
            if not success or not data:
                results.append(FAILED_CALL)
                continue
            types = output_types(self.abi, name)
            try:
                decoded = abi_decode(types, data)[0]
            except DecodingError as exc:
                logger.debug("Undecodable %s result from %s: %s", name, self.address, exc)
                results.append(FAILED_CALL)
                continue
            results.append(CallResult(success=True, value=_checksum_addresses(types[0], decoded)))
        return results


class GasbackContract(ContractReader):
    """Shape Gasback registry: one ERC-721 token per creator registration."""

    abi = GASBACK_ABI

    async def total_supply(self) -> int:
        return int(await self.call("totalSupply"))

    async def token_by_index(self, index: int) -> int:
        return int(await self.call("tokenByIndex", index))

    async def owner_of(self, token_id: int) -> str:
        return str(await self.call("ownerOf", token_id))

    async def owned_tokens(self, owner: str) -> list[int]:
        tokens = await self.call("getOwnedTokens", AsyncWeb3.to_checksum_address(owner))
        return [int(t) for t in tokens]

    async def token_total_gasback(self, token_id: int) -> int:
        return int(await self.call("getTokenTotalGasback", token_id))

    async def token_gasback_balance(self, token_id: int) -> int:
        return int(await self.call("getTokenGasbackBalance", token_id))

    async def token_registered_contracts(self, token_id: int) -> list[str]:
        return list(await self.call("getTokenRegisteredContracts", token_id))

    async def contract_total_earned(self, contract_address: str) -> int:
        return int(
            await self.call("getContractTotalEarned", AsyncWeb3.to_checksum_address(contract_address))
        )


@dataclass(frozen=True)
class Medal:
    medal_uid: str
    tier: int
    timestamp: int


class StackContract(ContractReader):
    """Shape Stack: per-user achievement NFT holding claimed medals."""

    abi = STACK_ABI

    async def token_id_for(self, owner: str) -> int:
        return int(await self.call("addressToTokenId", AsyncWeb3.to_checksum_address(owner)))

    async def medals(self, stack_id: int) -> list[Medal]:
        raw = await self.call("getStackMedals", stack_id)
        medals = []
        for _owner, _stack_id, uid, tier, _data, timestamp in raw:
            medal_uid = "0x" + uid.hex() if isinstance(uid, (bytes, bytearray)) else str(uid)
            medals.append(Medal(medal_uid=medal_uid, tier=int(tier), timestamp=int(timestamp)))
        return medals


def gasback_contract(settings: Settings | None = None) -> GasbackContract:
    settings = settings or get_settings()
    return GasbackContract(rpc_client(settings), settings.gasback_address)


def stack_contract(settings: Settings | None = None) -> StackContract:
    settings = settings or get_settings()
    return StackContract(rpc_client(settings), settings.stack_contract_address)


async def resolve_ens(name: str, settings: Settings | None = None) -> str | None:
    """Resolve an ENS name on Ethereum mainnet; ``None`` when unset."""
    w3 = mainnet_rpc_client(settings)
    address = await w3.ens.address(name)
    return str(address) if address else None


class AlchemyClient:
    """Minimal async client for Alchemy's NFT API v3 and core JSON-RPC."""

    def __init__(
        self,
        api_key: str,
        network: str,
        *,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.network = network
        self.timeout = timeout
        self.transport = transport

    @property
    def host(self) -> str:
        return f"https://{self.network}.g.alchemy.com"

    async def _nft_get(self, method: str, params: dict[str, Any]) -> dict:
        url = f"{self.host}/nft/v3/{self.api_key}/{method}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(url, headers={"Accept": "application/json"}, params=params)
        if response.status_code >= 400:
            raise RuntimeError(
                f"Alchemy NFT API {method} failed with {response.status_code}: {response.text}"
            )
        return response.json()

    async def block_number(self) -> int:
        payload = {"jsonrpc": "2.0", "id": 1, "method": "eth_blockNumber", "params": []}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(f"{self.host}/v2/{self.api_key}", json=payload)
        if response.status_code >= 400:
            raise RuntimeError(f"eth_blockNumber failed with {response.status_code}: {response.text}")
        body = response.json()
        if "error" in body:
            raise RuntimeError(f"eth_blockNumber failed: {body['error']}")
        return int(body["result"], 16)

    async def get_nfts_for_owner(self, owner: str, page_size: int = 100) -> dict:
        return await self._nft_get(
            "getNFTsForOwner",
            {"owner": owner, "pageSize": page_size, "withMetadata": True},
        )

    async def get_nfts_for_contract(self, contract_address: str, limit: int = 10) -> dict:
        return await self._nft_get(
            "getNFTsForContract",
            {"contractAddress": contract_address, "limit": limit, "withMetadata": True},
        )

    async def get_owners_for_contract(self, contract_address: str) -> dict:
        return await self._nft_get("getOwnersForContract", {"contractAddress": contract_address})

    async def get_floor_price(self, contract_address: str) -> dict:
        return await self._nft_get("getFloorPrice", {"contractAddress": contract_address})

    async def get_nft_sales(self, contract_address: str, from_block: int, limit: int = 100) -> dict:
        return await self._nft_get(
            "getNFTSales",
            {
                "contractAddress": contract_address,
                "fromBlock": str(from_block),
                "toBlock": "latest",
                "limit": limit,
            },
        )


def alchemy_client(settings: Settings | None = None) -> AlchemyClient:
    settings = settings or get_settings()
    return AlchemyClient(settings.api_key(), settings.network)
