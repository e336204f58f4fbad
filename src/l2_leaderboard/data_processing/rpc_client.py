"""Thin JSON-RPC access layer over web3 for block, transaction and receipt data."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from web3 import Web3
from web3.exceptions import BlockNotFound, TransactionNotFound

from l2_leaderboard.config import settings
from l2_leaderboard.utils.errors import RpcConnectionError, UpstreamDataGap
from l2_leaderboard.utils.retry import RetryPolicy

DEFAULT_RPC_URL = "http://localhost:8545"

logger = logging.getLogger(__name__)


def _to_hex(value: Any) -> Any:
    """Return hex string for bytes-like ``value``.

    Web3 often returns bytes for hashes. Converting them makes the data JSON
    serialisable and easier to test.
    """
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


def _to_int(value: Any) -> Optional[int]:
    """Parse an integer that may arrive as int, hex string or ``None``."""
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    return int(value)


class EvmRpcClient:
    """The five RPC calls the aggregator needs, each under a retry policy.

    Parameters
    ----------
    w3: Web3
        Connected web3 instance (anything exposing ``w3.eth``).
    retry_policy: RetryPolicy, optional
        Applied to every remote call. Defaults to a fresh policy built from
        the ``RETRY_*`` settings.
    """

    def __init__(self, w3: Any, retry_policy: Optional[RetryPolicy] = None):
        self.w3 = w3
        self.retry = retry_policy or RetryPolicy()

    def chain_id(self) -> int:
        """Network identity (``eth_chainId``); used as a reachability probe."""
        try:
            return int(self.retry.call(lambda: self.w3.eth.chain_id))
        except Exception as exc:
            raise RpcConnectionError(f"Cannot reach RPC endpoint: {exc}") from exc

    def block_number(self) -> int:
        return int(self.retry.call(lambda: self.w3.eth.block_number))

    def get_block(self, number: int) -> Dict[str, Any]:
        """Block header plus transaction hashes.

        Raises
        ------
        UpstreamDataGap
            If the endpoint has no data for ``number``.
        """
        try:
            block = self.retry.call(self.w3.eth.get_block, number)
        except BlockNotFound as exc:
            raise UpstreamDataGap(f"block {number} not found") from exc
        if not block:
            raise UpstreamDataGap(f"block {number} returned empty")
        hashes: List[str] = []
        for tx in block.get("transactions", []) or []:
            # full transaction objects are tolerated; only the hash is kept
            if hasattr(tx, "get"):
                tx = tx.get("hash")
            hashes.append(_to_hex(tx))
        block_num = block.get("number")
        return {
            "number": number if block_num is None else _to_int(block_num),
            "timestamp": _to_int(block.get("timestamp")),
            "transactions": hashes,
        }

    def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        try:
            tx = self.retry.call(self.w3.eth.get_transaction, tx_hash)
        except TransactionNotFound as exc:
            raise UpstreamDataGap(f"transaction {tx_hash} not found") from exc
        if not tx:
            raise UpstreamDataGap(f"transaction {tx_hash} returned empty")
        return {
            "hash": _to_hex(tx.get("hash", tx_hash)),
            "from": tx.get("from"),
            "to": tx.get("to"),
            "gasPrice": _to_int(tx.get("gasPrice")),
        }

    def get_receipt(self, tx_hash: str) -> Dict[str, Any]:
        try:
            receipt = self.retry.call(self.w3.eth.get_transaction_receipt, tx_hash)
        except TransactionNotFound as exc:
            raise UpstreamDataGap(f"receipt for {tx_hash} not found") from exc
        if not receipt:
            raise UpstreamDataGap(f"receipt for {tx_hash} returned empty")
        return {
            "transactionHash": _to_hex(receipt.get("transactionHash", tx_hash)),
            "gasUsed": _to_int(receipt.get("gasUsed")),
        }


def connect(
    rpc_url: str = DEFAULT_RPC_URL,
    retry_policy: Optional[RetryPolicy] = None,
    timeout: float = settings.RPC_TIMEOUT,
) -> EvmRpcClient:
    """Return an :class:`EvmRpcClient` for the HTTP endpoint ``rpc_url``."""
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    return EvmRpcClient(w3, retry_policy)
