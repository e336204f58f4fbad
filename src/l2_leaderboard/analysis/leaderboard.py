"""
leaderboard.py
--------------
Fetch metrics for every active chain in a registry and rank them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from l2_leaderboard.analysis.rollup_metrics import RollupMetrics, fetch_chain_metrics
from l2_leaderboard.config import settings
from l2_leaderboard.config.chains import ChainRegistry

logger = logging.getLogger(__name__)

LEADERBOARD_COLUMNS = [
    "chain",
    "name",
    "transactions",
    "contract_creations",
    "active_users",
    "gas_used",
    "token",
    "tps",
    "latest_block",
    "available",
]


def collect_leaderboard(
    registry: ChainRegistry,
    block_range: int = settings.DEFAULT_BLOCK_RANGE,
    kind: Optional[str] = "mainnet",
    **kwargs: Any,
) -> Dict[str, RollupMetrics]:
    """Return ``{chain_id: RollupMetrics}`` for every active chain.

    ``kind`` restricts the run to ``"mainnet"`` or ``"testnet"`` chains;
    ``None`` includes both. Chains are fetched one after another, each with
    the dashboard's never-raising fetch.
    """
    chains = registry.list_active()
    if kind is not None:
        wanted = {c.id for c in registry.list_by_network_kind(kind)}
        chains = [c for c in chains if c.id in wanted]

    results: Dict[str, RollupMetrics] = {}
    for chain in chains:
        logger.info("Collecting %s (%d blocks)", chain.id, block_range)
        results[chain.id] = fetch_chain_metrics(
            chain.id, block_range, registry=registry, **kwargs
        )
    return results


def leaderboard_frame(
    results: Mapping[str, RollupMetrics], registry: ChainRegistry
) -> pd.DataFrame:
    """Rank chains by transaction count (rank 1 = busiest)."""
    rows = []
    for chain_id, m in results.items():
        chain = registry.resolve(chain_id)
        rows.append(
            {
                "chain": chain_id,
                "name": chain.name if chain else chain_id,
                "transactions": m.transactions,
                "contract_creations": m.contract_creations,
                "active_users": m.active_users,
                "gas_used": float(m.gas_used_native),
                "token": registry.token_symbol_of(chain_id),
                "tps": m.tps,
                "latest_block": m.latest_block_number or 0,
                "available": m.available,
            }
        )

    df = pd.DataFrame(rows, columns=LEADERBOARD_COLUMNS)
    if df.empty:
        return df
    df = df.sort_values(
        ["transactions", "active_users"], ascending=False, kind="stable"
    ).reset_index(drop=True)
    df.index = pd.RangeIndex(1, len(df) + 1, name="rank")
    return df
