"""ABI fragments for the allocation contract."""

from __future__ import annotations

from typing import Final

from eth_utils import function_signature_to_4byte_selector

ENTITY_STATE_SIGNATURE: Final[str] = "entityStateByID(bytes16)"
ENTITY_STATE_SELECTOR: Final[bytes] = function_signature_to_4byte_selector(ENTITY_STATE_SIGNATURE)

ALLOCATION_CONTRACT_ABI: Final[list[dict[str, object]]] = [
    {
        "type": "function",
        "name": "entityByAddress",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [{"name": "", "type": "bytes16"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "entityStateByID",
        "inputs": [{"name": "", "type": "bytes16"}],
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "addr", "type": "address"},
                    {"name": "entityID", "type": "bytes16"},
                    {"name": "acceptedAmount", "type": "uint64"},
                    {"name": "bidTimestamp", "type": "uint32"},
                    {"name": "refunded", "type": "bool"},
                    {"name": "cancelled", "type": "bool"},
                    {
                        "name": "activeBid",
                        "type": "tuple",
                        "components": [
                            {"name": "amount", "type": "uint64"},
                            {"name": "timestamp", "type": "uint32"},
                        ],
                    },
                ],
            }
        ],
        "stateMutability": "view",
    },
    {
        "type": "event",
        "name": "AllocationSet",
        "anonymous": False,
        "inputs": [
            {"name": "entityID", "type": "bytes16", "indexed": True},
            {"name": "acceptedAmountUSDT", "type": "uint256", "indexed": False},
        ],
    },
]

#: ``keccak256("eip1967.proxy.implementation") - 1``
EIP1967_IMPLEMENTATION_SLOT: Final[int] = int(
    "0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc", 16
)
#: Runtime code of an EIP-1167 clone up to the embedded implementation address.
MINIMAL_PROXY_PREFIX: Final[bytes] = bytes.fromhex("363d3d373d3d3d363d73")
