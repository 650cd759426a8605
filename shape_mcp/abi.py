"""ABI fragments for the contracts the tools read from."""

from __future__ import annotations


def _view(name: str, inputs: list[tuple[str, str]], outputs: list[str]) -> dict:
    return {
        "inputs": [{"internalType": t, "name": n, "type": t} for n, t in inputs],
        "name": name,
        "outputs": [{"internalType": t, "name": "", "type": t} for t in outputs],
        "stateMutability": "view",
        "type": "function",
    }


GASBACK_ABI = [
    _view("totalSupply", [], ["uint256"]),
    _view("tokenByIndex", [("index", "uint256")], ["uint256"]),
    _view("ownerOf", [("tokenId", "uint256")], ["address"]),
    _view("getOwnedTokens", [("owner", "address")], ["uint256[]"]),
    _view("getTokenTotalGasback", [("tokenId", "uint256")], ["uint256"]),
    _view("getTokenGasbackBalance", [("tokenId", "uint256")], ["uint256"]),
    _view("getTokenRegisteredContracts", [("tokenId", "uint256")], ["address[]"]),
    _view("getContractTotalEarned", [("contractAddress", "address")], ["uint256"]),
]

STACK_ABI = [
    _view("addressToTokenId", [("owner", "address")], ["uint256"]),
    {
        "inputs": [{"internalType": "uint256", "name": "stackId", "type": "uint256"}],
        "name": "getStackMedals",
        "outputs": [
            {
                "components": [
                    {"internalType": "address", "name": "stackOwner", "type": "address"},
                    {"internalType": "uint256", "name": "stackId", "type": "uint256"},
                    {"internalType": "bytes32", "name": "medalUID", "type": "bytes32"},
                    {"internalType": "uint16", "name": "medalTier", "type": "uint16"},
                    {"internalType": "bytes", "name": "medalData", "type": "bytes"},
                    {"internalType": "uint256", "name": "timestamp", "type": "uint256"},
                ],
                "internalType": "struct Medal[]",
                "name": "",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

MULTICALL3_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {"internalType": "address", "name": "target", "type": "address"},
                    {"internalType": "bool", "name": "allowFailure", "type": "bool"},
                    {"internalType": "bytes", "name": "callData", "type": "bytes"},
                ],
                "internalType": "struct Multicall3.Call3[]",
                "name": "calls",
                "type": "tuple[]",
            }
        ],
        "name": "aggregate3",
        "outputs": [
            {
                "components": [
                    {"internalType": "bool", "name": "success", "type": "bool"},
                    {"internalType": "bytes", "name": "returnData", "type": "bytes"},
                ],
                "internalType": "struct Multicall3.Result[]",
                "name": "returnData",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "payable",
        "type": "function",
    }
]


def output_types(abi: list[dict], function_name: str) -> list[str]:
    """Return the flat ABI output types of ``function_name``."""
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == function_name:
            return [o["type"] for o in entry["outputs"]]
    raise KeyError(f"{function_name} is not in the ABI")
