"""
chains.py
---------
Chain registry: which networks the dashboard knows about and how to reach
them.

A registry is an ordinary object. `default_registry()` builds a fresh one
from `DEFAULT_CHAINS` every time it is called, so tests and concurrent
callers never share a table. Writes are not synchronised; callers that
register chains from several threads must serialise them.

Any default chain's RPC URL can be overridden with an environment variable
named `RPC_URL_<ID>` (upper-case id, `-` replaced by `_`), e.g.
`RPC_URL_ARBITRUM_GOERLI`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from l2_leaderboard.utils.errors import ChainValidationError, InvalidArgument
from l2_leaderboard.utils.validators import validate_chain_fields

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_SYMBOL = "ETH"


@dataclass(frozen=True)
class ChainConfig:
    id: str
    name: str
    rpc_url: str
    explorer_url: str = ""
    token_symbol: str = DEFAULT_TOKEN_SYMBOL
    active: bool = True
    is_testnet: bool = False
    numeric_chain_id: Optional[int] = None
    icon_url: Optional[str] = None


# camelCase keys as submitted by the add-chain form
_FIELD_ALIASES = {
    "rpcUrl": "rpc_url",
    "explorerUrl": "explorer_url",
    "tokenSymbol": "token_symbol",
    "isTestnet": "is_testnet",
    "chainId": "numeric_chain_id",
    "numericChainId": "numeric_chain_id",
    "iconUrl": "icon_url",
}
_FIELD_NAMES = {f.name for f in fields(ChainConfig)}


def _normalise_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _FIELD_ALIASES.get(key, key)
        if name in _FIELD_NAMES:
            out[name] = value
    return out


# ────────────────────────────────────────────────────────────────────────────
# Registry
# ────────────────────────────────────────────────────────────────────────────
class ChainRegistry:
    """Insertion-ordered table of chain id -> ChainConfig."""

    def __init__(self, chains: Optional[List[ChainConfig]] = None):
        self._chains: Dict[str, ChainConfig] = {}
        for chain in chains or []:
            self.register(chain)

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._chains

    def __len__(self) -> int:
        return len(self._chains)

    def __iter__(self) -> Iterator[ChainConfig]:
        return iter(list(self._chains.values()))

    # -- lookups -------------------------------------------------------------
    def resolve(self, chain_id: str) -> Optional[ChainConfig]:
        return self._chains.get(chain_id)

    def chain_ids(self) -> List[str]:
        return list(self._chains)

    def list_active(self) -> List[ChainConfig]:
        return [c for c in self._chains.values() if c.active]

    def list_by_network_kind(self, kind: str) -> List[ChainConfig]:
        """Return mainnet or testnet chains, in insertion order."""
        if kind not in ("mainnet", "testnet"):
            raise InvalidArgument(f"network kind must be 'mainnet' or 'testnet', got {kind!r}")
        want_testnet = kind == "testnet"
        return [c for c in self._chains.values() if c.is_testnet == want_testnet]

    def token_symbol_of(self, chain_id: str) -> str:
        chain = self._chains.get(chain_id)
        return chain.token_symbol if chain and chain.token_symbol else DEFAULT_TOKEN_SYMBOL

    def endpoint_of(self, chain_id: str) -> str:
        chain = self._chains.get(chain_id)
        return chain.rpc_url if chain else ""

    def explorer_of(self, chain_id: str) -> str:
        chain = self._chains.get(chain_id)
        return chain.explorer_url if chain else ""

    # -- mutation ------------------------------------------------------------
    def register(self, config: Union[ChainConfig, Mapping[str, Any]]) -> ChainConfig:
        """Add a chain, defaulting optional fields.

        Raises
        ------
        ChainValidationError
            If ``id``, ``name`` or ``rpc_url`` is missing/empty, or the id is
            already registered. The existing entry is left untouched.
        """
        if isinstance(config, ChainConfig):
            raw = {f.name: getattr(config, f.name) for f in fields(ChainConfig)}
        else:
            raw = _normalise_fields(config)

        validate_chain_fields(raw)

        chain_id = raw["id"]
        if chain_id in self._chains:
            raise ChainValidationError(f"chain {chain_id!r} is already registered")

        # explicit None in a form payload means "not supplied"
        raw = {k: v for k, v in raw.items() if v is not None}
        chain = ChainConfig(**raw)
        self._chains[chain_id] = chain
        logger.debug("Registered chain %s (%s)", chain_id, chain.rpc_url)
        return chain


# ────────────────────────────────────────────────────────────────────────────
# Default table
# ────────────────────────────────────────────────────────────────────────────
DEFAULT_CHAINS: List[ChainConfig] = [
    # mainnets
    ChainConfig("ethereum", "Ethereum", "https://ethereum.publicnode.com",
                "https://etherscan.io", "ETH", True, False, 1),
    ChainConfig("arbitrum", "Arbitrum", "https://arbitrum-one.publicnode.com",
                "https://arbiscan.io", "ETH", True, False, 42161),
    ChainConfig("optimism", "Optimism", "https://optimism.publicnode.com",
                "https://optimistic.etherscan.io", "ETH", True, False, 10),
    ChainConfig("base", "Base", "https://base.publicnode.com",
                "https://basescan.org", "ETH", True, False, 8453),
    ChainConfig("polygon", "Polygon", "https://polygon-bor.publicnode.com",
                "https://polygonscan.com", "MATIC", True, False, 137),
    ChainConfig("zksync", "zkSync Era", "https://mainnet.era.zksync.io",
                "https://explorer.zksync.io", "ETH", True, False, 324),
    ChainConfig("linea", "Linea", "https://linea.blockpi.network/v1/rpc/public",
                "https://lineascan.build", "ETH", True, False, 59144),
    ChainConfig("scroll", "Scroll", "https://rpc.scroll.io",
                "https://scrollscan.com", "ETH", True, False, 534352),
    # testnets
    ChainConfig("sepolia", "Sepolia", "https://ethereum-sepolia-rpc.publicnode.com",
                "https://sepolia.etherscan.io", "ETH", True, True, 11155111),
    ChainConfig("mumbai", "Mumbai", "https://polygon-mumbai-bor.publicnode.com",
                "https://mumbai.polygonscan.com", "MATIC", True, True, 80001),
    ChainConfig("arbitrum-goerli", "Arbitrum Goerli", "https://arbitrum-goerli.publicnode.com",
                "https://goerli.arbiscan.io", "ETH", True, True, 421613),
    ChainConfig("optimism-goerli", "Optimism Goerli", "https://optimism-goerli.publicnode.com",
                "https://goerli-optimism.etherscan.io", "ETH", True, True, 420),
    ChainConfig("base-goerli", "Base Goerli", "https://base-goerli.publicnode.com",
                "https://goerli.basescan.org", "ETH", False, True, 84531),
]


def _rpc_override_var(chain_id: str) -> str:
    return "RPC_URL_" + chain_id.upper().replace("-", "_")


def default_registry() -> ChainRegistry:
    """Return a new registry holding the default chains."""
    registry = ChainRegistry()
    for chain in DEFAULT_CHAINS:
        override = os.getenv(_rpc_override_var(chain.id))
        if override:
            raw = {f.name: getattr(chain, f.name) for f in fields(ChainConfig)}
            raw["rpc_url"] = override
            chain = ChainConfig(**raw)
        registry.register(chain)
    return registry


# CLI smoke-test -----------------------------------------------------------
if __name__ == "__main__":
    reg = default_registry()
    for c in reg.list_active():
        print(f"{c.id:<16} {c.token_symbol:<6} {c.rpc_url}")
