"""
settings.py
-----------
Runtime knobs for the metrics aggregator, read from the environment.

Every value can be overridden through an environment variable or a `.env`
file in the working directory, which is loaded here before anything reads
the environment. Malformed values fall back to the default rather than
crashing at import time.
"""

from __future__ import annotations
import os

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True))


def _env_int(var: str, default: int) -> int:
    try:
        return int(os.getenv(var, str(default)))
    except ValueError:
        return default


def _env_float(var: str, default: float) -> float:
    try:
        return float(os.getenv(var, str(default)))
    except ValueError:
        return default


# ────────────────────────────────────────────────────────────────────────────
# Block walking
# ────────────────────────────────────────────────────────────────────────────
BLOCK_TIME_SECONDS = _env_float("BLOCK_TIME_SECONDS", 15.0)
BATCH_SIZE = _env_int("BATCH_SIZE", 10)  # bulk block-range mode
INTERVAL_BATCH_SIZE = _env_int("INTERVAL_BATCH_SIZE", 1)  # interval mode
BATCH_DELAY_SECONDS = _env_float("BATCH_DELAY_SECONDS", 0.5)

# ────────────────────────────────────────────────────────────────────────────
# RPC access
# ────────────────────────────────────────────────────────────────────────────
RETRY_MAX_ATTEMPTS = _env_int("RETRY_MAX_ATTEMPTS", 5)
RETRY_BASE_DELAY = _env_float("RETRY_BASE_DELAY", 1.0)  # seconds
RPC_MAX_WORKERS = _env_int("RPC_MAX_WORKERS", 8)
RPC_TIMEOUT = _env_float("RPC_TIMEOUT", 10.0)

# ────────────────────────────────────────────────────────────────────────────
# Dashboard defaults
# ────────────────────────────────────────────────────────────────────────────
DEFAULT_BLOCK_RANGE = _env_int("DEFAULT_BLOCK_RANGE", 1000)
DEFAULT_INTERVAL = os.getenv("DEFAULT_INTERVAL", "1D")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
