"""
rollup_metrics.py
-----------------
Walk a range of recent blocks on one chain and fold every transaction into
dashboard KPIs.

KPIs produced
=============
• transactions          number of transactions seen
• contract_creations    transactions without a receiving address
• active_users          distinct sender/receiver addresses (case-insensitive)
• gas_used              Σ gasUsed × gasPrice, in wei
• latest_block_number   chain tip at the start of the run

Two entry points exist per mode. `aggregate_by_block_range` and
`aggregate_by_interval` raise on bad arguments or an unreachable endpoint.
`fetch_chain_metrics` / `fetch_chain_metrics_for_interval` are what the
dashboard calls: they never raise and return `RollupMetrics.empty()`
(``available=False``) when anything goes wrong.

Blocks in a batch are fetched concurrently, then every transaction and
receipt of the batch, through one bounded thread pool per call. Batches run
one after another with a pause in between to stay under public RPC rate
limits.
"""

from __future__ import annotations

import datetime as dt
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from l2_leaderboard.config import settings
from l2_leaderboard.config.chains import ChainRegistry, default_registry
from l2_leaderboard.data_processing import rpc_client
from l2_leaderboard.utils.errors import InvalidArgument, UpstreamDataGap
from l2_leaderboard.utils.helpers import wei_to_native
from l2_leaderboard.utils.intervals import (
    interval_to_block_count,
    interval_to_ms,
    parse_interval,
)
from l2_leaderboard.utils.retry import RetryPolicy
from l2_leaderboard.utils.validators import validate_block_count, validate_endpoint_url

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, Optional[RetryPolicy]], Any]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RollupMetrics:
    transactions: int
    contract_creations: int
    active_users: int
    gas_used: int  # wei
    latest_block_number: Optional[int] = None
    blocks_scanned: int = 0
    skipped_blocks: int = 0
    time_span_seconds: int = 0
    available: bool = True

    @classmethod
    def empty(cls) -> "RollupMetrics":
        """All-zero snapshot shown when no data could be fetched."""
        return cls(0, 0, 0, 0, latest_block_number=0, available=False)

    @property
    def tps(self) -> float:
        if self.time_span_seconds <= 0:
            return 0.0
        return self.transactions / self.time_span_seconds

    @property
    def gas_used_native(self) -> Decimal:
        return wei_to_native(self.gas_used)

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["tps"] = self.tps
        return d


@dataclass
class MetricsAccumulator:
    """Running totals for one aggregation call; never shared between calls."""

    transaction_count: int = 0
    contract_creation_count: int = 0
    unique_addresses: Set[str] = field(default_factory=set)
    total_gas_cost: int = 0
    blocks_scanned: int = 0
    skipped_blocks: int = 0
    first_timestamp: Optional[int] = None
    last_timestamp: Optional[int] = None

    def add_block(self, block: Dict[str, Any]) -> None:
        self.blocks_scanned += 1
        ts = block.get("timestamp")
        if ts is None:
            return
        if self.first_timestamp is None or ts < self.first_timestamp:
            self.first_timestamp = ts
        if self.last_timestamp is None or ts > self.last_timestamp:
            self.last_timestamp = ts

    def add_transaction(
        self, tx: Dict[str, Any], receipt: Optional[Dict[str, Any]] = None
    ) -> None:
        self.transaction_count += 1

        sender = tx.get("from")
        if sender:
            self.unique_addresses.add(sender.lower())

        recipient = tx.get("to")
        if recipient:
            self.unique_addresses.add(recipient.lower())
        else:
            # no receiving address: contract deployment
            self.contract_creation_count += 1

        if receipt and receipt.get("gasUsed") is not None:
            gas_price = tx.get("gasPrice") or 0
            self.total_gas_cost += int(receipt["gasUsed"]) * int(gas_price)

    def to_metrics(self, latest_block_number: Optional[int]) -> RollupMetrics:
        span = 0
        if self.first_timestamp is not None and self.last_timestamp is not None:
            span = self.last_timestamp - self.first_timestamp
        return RollupMetrics(
            transactions=self.transaction_count,
            contract_creations=self.contract_creation_count,
            active_users=len(self.unique_addresses),
            gas_used=self.total_gas_cost,
            latest_block_number=latest_block_number,
            blocks_scanned=self.blocks_scanned,
            skipped_blocks=self.skipped_blocks,
            time_span_seconds=span,
        )


# ---------------------------------------------------------------------------
# Batch helpers
# ---------------------------------------------------------------------------
def _open_client(
    endpoint_url: str,
    retry_policy: Optional[RetryPolicy],
    client_factory: Optional[ClientFactory],
) -> Any:
    factory = client_factory or rpc_client.connect
    client = factory(endpoint_url, retry_policy)
    client.chain_id()  # raises RpcConnectionError when unreachable
    return client


def _cancel_pending(futures: Dict[Future, Any]) -> None:
    for fut in futures:
        fut.cancel()


def _fetch_blocks(
    client: Any,
    numbers: Iterable[int],
    pool: ThreadPoolExecutor,
    acc: MetricsAccumulator,
) -> List[Dict[str, Any]]:
    futures = {pool.submit(client.get_block, n): n for n in numbers}
    blocks: List[Dict[str, Any]] = []
    try:
        for fut in as_completed(futures):
            try:
                blocks.append(fut.result())
            except UpstreamDataGap as exc:
                logger.warning("Block %d data is empty, skipping: %s", futures[fut], exc)
                acc.skipped_blocks += 1
    finally:
        _cancel_pending(futures)
    blocks.sort(key=lambda b: b["number"])
    return blocks


def _fetch_tx_bundle(
    client: Any, tx_hash: str
) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    tx = client.get_transaction(tx_hash)
    try:
        receipt = client.get_receipt(tx_hash)
    except UpstreamDataGap:
        logger.warning("Receipt for transaction %s is empty, skipping gas", tx_hash)
        receipt = None
    return tx, receipt


def _fold_transactions(
    client: Any,
    blocks: Iterable[Dict[str, Any]],
    pool: ThreadPoolExecutor,
    acc: MetricsAccumulator,
) -> None:
    futures = {
        pool.submit(_fetch_tx_bundle, client, tx_hash): tx_hash
        for blk in blocks
        for tx_hash in blk.get("transactions", [])
    }
    try:
        for fut in as_completed(futures):
            try:
                tx, receipt = fut.result()
            except UpstreamDataGap as exc:
                logger.warning("Transaction %s data is empty, skipping: %s", futures[fut], exc)
                continue
            acc.add_transaction(tx, receipt)
    finally:
        _cancel_pending(futures)


def _check_batch_size(batch_size: int) -> None:
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise InvalidArgument(f"batch size must be a positive integer, got {batch_size!r}")


# ---------------------------------------------------------------------------
# Public entry points (strict)
# ---------------------------------------------------------------------------
def aggregate_by_block_range(
    endpoint_url: str,
    block_count: int,
    *,
    batch_size: int = settings.BATCH_SIZE,
    batch_delay: float = settings.BATCH_DELAY_SECONDS,
    max_workers: int = settings.RPC_MAX_WORKERS,
    retry_policy: Optional[RetryPolicy] = None,
    client_factory: Optional[ClientFactory] = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> RollupMetrics:
    """Aggregate metrics over the ``block_count`` most recent blocks.

    Parameters
    ----------
    endpoint_url : str
        HTTP(S) JSON-RPC endpoint.
    block_count : int
        Number of blocks ending at the chain tip (inclusive).
    batch_size : int
        Blocks fetched concurrently per batch.
    batch_delay : float
        Pause in seconds between batches.
    max_workers : int
        Upper bound on concurrent RPC requests.
    retry_policy : RetryPolicy, optional
        Back-off applied to each remote call.
    client_factory : callable, optional
        ``(url, retry_policy) -> client``; defaults to
        :func:`data_processing.rpc_client.connect`.

    Raises
    ------
    InvalidArgument
        Bad URL, block count or batch size.
    RpcConnectionError
        The endpoint does not answer the network-identity probe.
    """
    validate_endpoint_url(endpoint_url)
    validate_block_count(block_count)
    _check_batch_size(batch_size)

    client = _open_client(endpoint_url, retry_policy, client_factory)
    latest = client.block_number()
    start = max(0, latest - block_count + 1)
    acc = MetricsAccumulator()

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        for batch_start in range(start, latest + 1, batch_size):
            batch_end = min(batch_start + batch_size - 1, latest)
            logger.info(
                "Processing blocks %d-%d/%d (%.1f%%)",
                batch_start,
                batch_end,
                latest,
                (batch_start - start) / block_count * 100,
            )
            blocks = _fetch_blocks(client, range(batch_start, batch_end + 1), pool, acc)
            for blk in blocks:
                acc.add_block(blk)
            _fold_transactions(client, blocks, pool, acc)

            if batch_end < latest:
                sleep(batch_delay)

    return acc.to_metrics(latest)


def _walk_time_window(
    client: Any,
    window: dt.timedelta,
    *,
    batch_size: int,
    batch_delay: float,
    max_workers: int,
    max_blocks: Optional[int],
    sleep: Callable[[float], Any],
) -> RollupMetrics:
    """Walk back from the tip until a block is older than ``window``.

    The window is measured against the tip block's own timestamp so that a
    skewed local clock cannot empty the result.
    """
    latest = client.block_number()
    tip = client.get_block(latest)
    cutoff = (tip.get("timestamp") or 0) - int(window.total_seconds())
    floor = 0 if max_blocks is None else max(0, latest - max_blocks + 1)
    acc = MetricsAccumulator()

    number = latest
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        while number >= floor:
            lowest = max(floor, number - batch_size + 1)
            blocks = _fetch_blocks(client, range(number, lowest - 1, -1), pool, acc)
            in_window = []
            reached_edge = False
            for blk in blocks:
                ts = blk.get("timestamp")
                if ts is None:
                    logger.warning("Block %d has no timestamp, skipping", blk["number"])
                    acc.skipped_blocks += 1
                elif ts < cutoff:
                    reached_edge = True
                else:
                    in_window.append(blk)
            for blk in in_window:
                acc.add_block(blk)
            _fold_transactions(client, in_window, pool, acc)

            if reached_edge:
                logger.info("Reached block older than window at #%d", lowest)
                break
            number = lowest - 1
            if number >= floor:
                sleep(batch_delay)

    return acc.to_metrics(latest)


def aggregate_by_interval(
    endpoint_url: str,
    interval: str,
    *,
    mode: str = "blocks",
    seconds_per_block: float = settings.BLOCK_TIME_SECONDS,
    batch_size: int = settings.INTERVAL_BATCH_SIZE,
    batch_delay: float = settings.BATCH_DELAY_SECONDS,
    max_workers: int = settings.RPC_MAX_WORKERS,
    max_blocks: Optional[int] = None,
    retry_policy: Optional[RetryPolicy] = None,
    client_factory: Optional[ClientFactory] = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> RollupMetrics:
    """Aggregate metrics over a time interval such as ``"4h"`` or ``"1D"``.

    ``mode="blocks"`` converts the interval into an estimated block count
    (``seconds_per_block``); ``mode="time"`` walks back from the tip and
    stops at the first block outside the window. Unknown interval tokens
    raise ``InvalidArgument``.
    """
    window = parse_interval(interval)
    if mode == "blocks":
        block_count = interval_to_block_count(interval, seconds_per_block)
        return aggregate_by_block_range(
            endpoint_url,
            block_count,
            batch_size=batch_size,
            batch_delay=batch_delay,
            max_workers=max_workers,
            retry_policy=retry_policy,
            client_factory=client_factory,
            sleep=sleep,
        )
    if mode != "time":
        raise InvalidArgument(f"mode must be 'blocks' or 'time', got {mode!r}")

    validate_endpoint_url(endpoint_url)
    _check_batch_size(batch_size)
    if max_blocks is not None:
        validate_block_count(max_blocks)

    client = _open_client(endpoint_url, retry_policy, client_factory)
    return _walk_time_window(
        client,
        window,
        batch_size=batch_size,
        batch_delay=batch_delay,
        max_workers=max_workers,
        max_blocks=max_blocks,
        sleep=sleep,
    )


# ---------------------------------------------------------------------------
# Dashboard convenience (never raises)
# ---------------------------------------------------------------------------
def fetch_chain_metrics(
    chain_id: str,
    block_range: int = settings.DEFAULT_BLOCK_RANGE,
    *,
    registry: Optional[ChainRegistry] = None,
    **kwargs: Any,
) -> RollupMetrics:
    """Metrics for ``chain_id`` over ``block_range`` blocks, or the zero snapshot."""
    registry = registry if registry is not None else default_registry()
    try:
        rpc_url = registry.endpoint_of(chain_id)
        if not rpc_url:
            raise InvalidArgument(f"No RPC URL available for chain: {chain_id}")
        return aggregate_by_block_range(rpc_url, block_range, **kwargs)
    except Exception:
        logger.exception("Error fetching blockchain data for %s", chain_id)
        return RollupMetrics.empty()


def fetch_chain_metrics_for_interval(
    chain_id: str,
    interval: str = settings.DEFAULT_INTERVAL,
    *,
    registry: Optional[ChainRegistry] = None,
    **kwargs: Any,
) -> RollupMetrics:
    """Interval variant of :func:`fetch_chain_metrics`.

    Unknown interval tokens are read as 24 hours instead of failing.
    """
    registry = registry if registry is not None else default_registry()
    try:
        seconds = interval_to_ms(interval) // 1000
        rpc_url = registry.endpoint_of(chain_id)
        if not rpc_url:
            raise InvalidArgument(f"No RPC URL available for chain: {chain_id}")
        return aggregate_by_interval(rpc_url, f"{seconds}s", **kwargs)
    except Exception:
        logger.exception("Error fetching blockchain data for %s (%s)", chain_id, interval)
        return RollupMetrics.empty()
