"""Utilities for printing dashboard tables about collected chain metrics."""
from __future__ import annotations

from typing import Any, Iterable, List, Optional, Tuple

import pandas as pd

from l2_leaderboard.analysis.rollup_metrics import RollupMetrics
from l2_leaderboard.config.chains import ChainRegistry
from l2_leaderboard.utils.helpers import (
    format_gas_used,
    format_tps,
    format_transaction_count,
    format_user_count,
)


def _format_table(headers: Iterable[str], rows: Iterable[Iterable[Any]]) -> str:
    """Return a simple ASCII table string.

    Column widths follow the longest entry in each column. Numeric columns
    are right-aligned, everything else left-aligned.
    """

    rows_str = [[str(c) for c in row] for row in rows]
    headers_str = [str(h) for h in headers]

    widths = [
        max(len(headers_str[i]), *(len(row[i]) for row in rows_str))
        if rows_str
        else len(headers_str[i])
        for i in range(len(headers_str))
    ]

    def _is_numeric(text: str) -> bool:
        """Return ``True`` if *text* looks like a number.

        Thousands separators and a trailing token symbol (``1.23 ETH``) are
        stripped before parsing. Empty strings and placeholder dashes are
        treated as non-numeric.
        """

        s = text.strip()
        if not s or s in {"-", "nan", "NaN"}:
            return False
        s = s.split(" ")[0].replace(",", "")
        try:
            float(s)
            return True
        except ValueError:
            return False

    numeric_cols = [
        bool(rows_str)
        and all(_is_numeric(row[i]) or row[i] in {"-", ""} for row in rows_str)
        for i in range(len(headers_str))
    ]

    fmt = " | ".join(
        f"{{:>{w}}}" if numeric_cols[i] else f"{{:<{w}}}" for i, w in enumerate(widths)
    )
    sep = "-+-".join("-" * w for w in widths)

    lines = [fmt.format(*headers_str), sep]
    for row in rows_str:
        lines.append(fmt.format(*row))
    return "\n".join(lines)


def stat_cards(
    metrics: Optional[RollupMetrics],
    chain_id: Optional[str] = None,
    registry: Optional[ChainRegistry] = None,
) -> List[Tuple[str, str]]:
    """Return ``(title, value)`` pairs for the selected chain's stat cards.

    Without metrics every card reads ``"0"``.
    """
    if metrics is None or not chain_id:
        titles = [
            "Total Transactions",
            "Contract Creations",
            "Active Users",
            "Gas Used",
            "TPS",
            "Latest Block",
        ]
        return [(t, "0") for t in titles]

    return [
        ("Total Transactions", format_transaction_count(metrics.transactions)),
        ("Contract Creations", format_transaction_count(metrics.contract_creations)),
        ("Active Users", format_user_count(metrics.active_users)),
        ("Gas Used", format_gas_used(metrics.gas_used_native, chain_id, registry)),
        ("TPS", format_tps(metrics.tps)),
        ("Latest Block", format_transaction_count(metrics.latest_block_number or 0)),
    ]


def print_chain_stats_table(
    metrics: Optional[RollupMetrics],
    chain_id: Optional[str],
    registry: Optional[ChainRegistry] = None,
) -> None:
    """Print the stat cards of one chain as a two-column table."""
    name = chain_id or "-"
    if registry is not None and chain_id:
        chain = registry.resolve(chain_id)
        if chain is not None:
            name = chain.name + (" (Testnet)" if chain.is_testnet else "")
    print(f"\n{name} Stats")
    print(_format_table(["Metric", "Value"], stat_cards(metrics, chain_id, registry)))
    if metrics is not None and not metrics.available:
        print("⚠️  No data available – endpoint unreachable or request failed.")


def print_leaderboard_table(df: pd.DataFrame) -> None:
    """Print a ranked leaderboard built by ``analysis.leaderboard``."""
    headers = ["#", "Chain", "Transactions", "Contracts", "Active Users", "Gas Used", "TPS", "Latest Block"]
    rows = []
    for rank, row in df.iterrows():
        gas = f"{row['gas_used']:,.2f} {row['token']}" if row["available"] else "-"
        rows.append(
            [
                rank,
                row["name"],
                format_transaction_count(row["transactions"]),
                format_transaction_count(row["contract_creations"]),
                format_user_count(row["active_users"]),
                gas,
                format_tps(row["tps"]),
                format_transaction_count(row["latest_block"]),
            ]
        )
    print("\nLayer2 Leaderboard")
    print(_format_table(headers, rows))
