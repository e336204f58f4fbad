"""
validators.py
--------------
Lightweight sanity checks for aggregator arguments and chain entries.
All functions return the validated value on success or raise with details.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable

from l2_leaderboard.utils.errors import ChainValidationError, InvalidArgument

REQUIRED_CHAIN_FIELDS = ("id", "name", "rpc_url")


# ────────────────────────────────────────────────────────────────────────────
def _missing_fields(obj: Dict[str, Any], keys: Iterable[str]) -> list[str]:
    missing = []
    for key in keys:
        value = obj.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(key)
    return missing


# ────────────────────────────────────────────────────────────────────────────
def validate_endpoint_url(url: Any) -> str:
    if not isinstance(url, str) or not url.lower().startswith(("http://", "https://")):
        raise InvalidArgument(f"endpoint URL must start with http:// or https://, got {url!r}")
    return url


def validate_block_count(block_count: Any) -> int:
    # bool is an int subclass; True is not a block count
    if isinstance(block_count, bool) or not isinstance(block_count, int):
        raise InvalidArgument(f"block count must be an integer, got {block_count!r}")
    if block_count <= 0:
        raise InvalidArgument(f"block count must be positive, got {block_count}")
    return block_count


def validate_chain_fields(d: Dict[str, Any]) -> Dict[str, Any]:
    """Check the required chain fields, listing every one that is absent."""
    missing = _missing_fields(d, REQUIRED_CHAIN_FIELDS)
    if missing:
        raise ChainValidationError(
            f"chain config: missing required fields {', '.join(missing)}", missing
        )
    return d
