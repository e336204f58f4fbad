"""Layer2 Leaderboard: on-chain activity metrics for EVM networks."""

from .analysis.rollup_metrics import (
    RollupMetrics,
    aggregate_by_block_range,
    aggregate_by_interval,
    fetch_chain_metrics,
    fetch_chain_metrics_for_interval,
)
from .config.chains import ChainConfig, ChainRegistry, default_registry
from .utils.retry import RetryPolicy, with_retry

__all__ = [
    "ChainConfig",
    "ChainRegistry",
    "RetryPolicy",
    "RollupMetrics",
    "aggregate_by_block_range",
    "aggregate_by_interval",
    "default_registry",
    "fetch_chain_metrics",
    "fetch_chain_metrics_for_interval",
    "with_retry",
]
