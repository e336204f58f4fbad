"""
helpers.py
----------
Small display helpers shared by the reporting layer and the dashboard.
"""

from __future__ import annotations
import time
from decimal import Decimal
from typing import Optional, Union

from l2_leaderboard.config.chains import DEFAULT_TOKEN_SYMBOL, ChainRegistry

WEI_PER_NATIVE = Decimal(10) ** 18
LIVE_THRESHOLD_MS = 3 * 60 * 1000

Number = Union[int, float, Decimal]


# ────────────────────────────────────────────────────────────────────────────
# 1. Counts
# ────────────────────────────────────────────────────────────────────────────
def format_transaction_count(value: int) -> str:
    """Comma-grouped integer, e.g. 1,000,000."""
    return f"{int(value):,}"


def format_user_count(value: int) -> str:
    return f"{int(value):,}"


# ────────────────────────────────────────────────────────────────────────────
# 2. Gas / currency
# ────────────────────────────────────────────────────────────────────────────
def wei_to_native(wei: int) -> Decimal:
    """Convert a wei amount into the chain's native token (18 decimals)."""
    return Decimal(int(wei)) / WEI_PER_NATIVE


def format_gas_used(
    value: Number,
    chain_id: Optional[str] = None,
    registry: Optional[ChainRegistry] = None,
    decimals: int = 2,
) -> str:
    """Render a native-token amount with the chain's symbol (1.23 ETH).

    The symbol is looked up in ``registry`` when both ``chain_id`` and a
    registry are given; otherwise ETH is assumed.
    """
    if chain_id and registry is not None:
        symbol = registry.token_symbol_of(chain_id)
    else:
        symbol = DEFAULT_TOKEN_SYMBOL
    return f"{Decimal(str(value)):,.{decimals}f} {symbol}"


# ────────────────────────────────────────────────────────────────────────────
# 3. Rates
# ────────────────────────────────────────────────────────────────────────────
def format_tps(value: float) -> str:
    """Transactions per second with one decimal place."""
    return f"{value:.1f}"


def abbrev_number(value: float, suffix: str = "") -> str:
    magnitude = 0
    while abs(value) >= 1000 and magnitude < 3:
        magnitude += 1
        value /= 1000.0
    return f"{value:.1f}{' KMB'[magnitude].strip()}{suffix}"


# ────────────────────────────────────────────────────────────────────────────
# 4. Liveness
# ────────────────────────────────────────────────────────────────────────────
def is_chain_live(last_block_time_ms: float, now_ms: Optional[float] = None) -> bool:
    """True if the last block was produced within the past three minutes."""
    if now_ms is None:
        now_ms = time.time() * 1000
    return last_block_time_ms > now_ms - LIVE_THRESHOLD_MS
