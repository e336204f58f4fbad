"""
main.py
-------
Text dashboard: fetch metrics for one chain (or all active chains) and print
the stat cards / leaderboard.

Configuration comes from the environment or a `.env` file (loaded by
`config.settings` on import):

    DASHBOARD_CHAIN       chain id to show (default: first mainnet)
    DEFAULT_BLOCK_RANGE   blocks to scan (default 1000)
    DASHBOARD_INTERVAL    interval token (e.g. 4h); overrides the block range
    DASHBOARD_ALL_CHAINS  "true" to print the leaderboard for every chain

Run:
$ python -m l2_leaderboard.main
"""

from __future__ import annotations

import logging
import os
import time

from l2_leaderboard.analysis.leaderboard import collect_leaderboard, leaderboard_frame
from l2_leaderboard.analysis.rollup_metrics import (
    fetch_chain_metrics,
    fetch_chain_metrics_for_interval,
)
from l2_leaderboard.config import settings
from l2_leaderboard.config.chains import ChainRegistry, default_registry
from l2_leaderboard.reporting.summary_tables import (
    print_chain_stats_table,
    print_leaderboard_table,
)
from l2_leaderboard.utils.helpers import abbrev_number, format_transaction_count

logger = logging.getLogger("l2_leaderboard")


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _count_label(value: int) -> str:
    """Whole counts below 1000 as-is; larger ones abbreviated (12.3K)."""
    if value < 1000:
        return format_transaction_count(value)
    return abbrev_number(value)


def _selected_chain(registry: ChainRegistry) -> str:
    chain_id = os.getenv("DASHBOARD_CHAIN", "")
    if chain_id:
        return chain_id
    mainnets = registry.list_by_network_kind("mainnet")
    return mainnets[0].id if mainnets else ""


def run_dashboard(registry: ChainRegistry | None = None) -> None:
    registry = registry if registry is not None else default_registry()

    if os.getenv("DASHBOARD_ALL_CHAINS", "false").lower() == "true":
        results = collect_leaderboard(registry, settings.DEFAULT_BLOCK_RANGE)
        print_leaderboard_table(leaderboard_frame(results, registry))
        return

    chain_id = _selected_chain(registry)
    interval = os.getenv("DASHBOARD_INTERVAL", "")
    t0 = time.perf_counter()
    if interval:
        metrics = fetch_chain_metrics_for_interval(chain_id, interval, registry=registry)
    else:
        metrics = fetch_chain_metrics(chain_id, settings.DEFAULT_BLOCK_RANGE, registry=registry)
    elapsed = time.perf_counter() - t0

    print_chain_stats_table(metrics, chain_id, registry)
    logger.info(
        "Fetched %s transactions from %d blocks in %.1fs",
        _count_label(metrics.transactions),
        metrics.blocks_scanned,
        elapsed,
    )


def main() -> None:
    configure_logging(os.getenv("LOG_LEVEL", settings.LOG_LEVEL).upper())
    run_dashboard()


if __name__ == "__main__":
    main()
