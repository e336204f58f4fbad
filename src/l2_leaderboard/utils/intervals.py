"""
intervals.py
------------
Translate dashboard interval tokens into durations and block counts.

Grammar: ``<positive integer><unit>`` where unit is one of

    s   seconds          30s
    m   minutes          1m
    h   hours            1h, 4h, 8h
    D/d days             1D
    W/w weeks            1W

Lower-case ``m`` always means minutes; there is no month unit.
"""

from __future__ import annotations

import datetime as dt
import math
import re

from l2_leaderboard.config import settings
from l2_leaderboard.utils.errors import InvalidArgument

_INTERVAL_RE = re.compile(r"^\s*(\d+)\s*([smhdDwW])\s*$")

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "D": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
    "W": 7 * 24 * 60 * 60,
}

DEFAULT_INTERVAL_MS = 24 * 60 * 60 * 1000


def parse_interval(token: str) -> dt.timedelta:
    """Return the duration for *token*; raise ``InvalidArgument`` if unknown."""
    match = _INTERVAL_RE.match(token) if isinstance(token, str) else None
    if not match:
        raise InvalidArgument(f"Unknown interval: {token!r}")
    value = int(match.group(1))
    if value <= 0:
        raise InvalidArgument(f"Interval must be positive: {token!r}")
    try:
        return dt.timedelta(seconds=value * _UNIT_SECONDS[match.group(2)])
    except OverflowError as exc:
        raise InvalidArgument(f"Interval too large: {token!r}") from exc


def interval_to_ms(token: str) -> int:
    """Milliseconds for *token*, falling back to 24 h for unknown tokens.

    This is the lenient variant used by the dashboard; use
    :func:`parse_interval` where a bad token should be an error.
    """
    try:
        return int(parse_interval(token).total_seconds() * 1000)
    except InvalidArgument:
        return DEFAULT_INTERVAL_MS


def interval_to_block_count(
    token: str, seconds_per_block: float = settings.BLOCK_TIME_SECONDS
) -> int:
    """Estimated number of blocks produced during *token* (at least 1)."""
    if seconds_per_block <= 0:
        raise InvalidArgument("seconds_per_block must be positive")
    seconds = parse_interval(token).total_seconds()
    return max(1, math.ceil(seconds / seconds_per_block))
