import pytest
import requests
from web3.exceptions import BlockNotFound, TransactionNotFound

from l2_leaderboard.data_processing import rpc_client
from l2_leaderboard.utils.errors import RateLimited, RpcConnectionError, UpstreamDataGap
from l2_leaderboard.utils.retry import RetryPolicy


def _dummy_web3(eth_factory):
    class DummyWeb3:
        class HTTPProvider:
            def __init__(self, url, request_kwargs=None):
                self.url = url
                self.request_kwargs = request_kwargs

        def __init__(self, provider):
            self.provider = provider
            self.eth = eth_factory()

    return DummyWeb3


class DummyEth:
    chain_id = 42161
    block_number = 7

    def get_block(self, num):
        return {
            "number": num,
            "timestamp": 1000 + num,
            "transactions": [bytes.fromhex("22" * 32)],
        }

    def get_transaction(self, tx_hash):
        return {"hash": bytes.fromhex("22" * 32), "from": "0xAbC", "to": None, "gasPrice": "0x2"}

    def get_transaction_receipt(self, tx_hash):
        return {"transactionHash": bytes.fromhex("22" * 32), "gasUsed": 21000}


def test_connect_and_fetch(monkeypatch):
    monkeypatch.setattr(rpc_client, "Web3", _dummy_web3(DummyEth))
    client = rpc_client.connect("http://rpc", timeout=3)
    assert client.w3.provider.url == "http://rpc"
    assert client.w3.provider.request_kwargs == {"timeout": 3}
    assert client.chain_id() == 42161
    assert client.block_number() == 7

    block = client.get_block(5)
    assert block["number"] == 5
    assert block["timestamp"] == 1005
    assert block["transactions"] == ["0x" + "22" * 32]

    tx = client.get_transaction(block["transactions"][0])
    assert tx["from"] == "0xAbC"
    assert tx["to"] is None
    assert tx["gasPrice"] == 2

    receipt = client.get_receipt(block["transactions"][0])
    assert receipt["gasUsed"] == 21000


def test_block_with_full_transactions_keeps_hashes():
    class FullEth(DummyEth):
        def get_block(self, num):
            return {"number": "0x5", "timestamp": "0x10", "transactions": [{"hash": b"\x01\x02"}]}

    client = rpc_client.EvmRpcClient(type("W3", (), {"eth": FullEth()})())
    block = client.get_block(5)
    assert block == {"number": 5, "timestamp": 16, "transactions": ["0x0102"]}


def test_missing_data_becomes_data_gap():
    class GapEth(DummyEth):
        def get_block(self, num):
            raise BlockNotFound(f"Block with id: {num} not found.")

        def get_transaction(self, tx_hash):
            raise TransactionNotFound(f"Transaction with hash: {tx_hash} not found.")

        def get_transaction_receipt(self, tx_hash):
            return None

    client = rpc_client.EvmRpcClient(type("W3", (), {"eth": GapEth()})())
    with pytest.raises(UpstreamDataGap):
        client.get_block(1)
    with pytest.raises(UpstreamDataGap):
        client.get_transaction("0x01")
    with pytest.raises(UpstreamDataGap):
        client.get_receipt("0x01")


def test_unreachable_endpoint_raises_connection_error():
    class DownEth:
        @property
        def chain_id(self):
            raise requests.ConnectionError("connection refused")

    client = rpc_client.EvmRpcClient(type("W3", (), {"eth": DownEth()})())
    with pytest.raises(RpcConnectionError, match="connection refused"):
        client.chain_id()


def test_rate_limited_calls_are_retried():
    sleeps: list[float] = []
    calls = {"n": 0}

    class ThrottledEth:
        @property
        def block_number(self):
            calls["n"] += 1
            if calls["n"] < 3:
                resp = requests.Response()
                resp.status_code = 429
                raise requests.HTTPError("429 Client Error: Too Many Requests", response=resp)
            return 99

    policy = RetryPolicy(max_retries=5, base_delay=0.25, sleep=sleeps.append)
    client = rpc_client.EvmRpcClient(type("W3", (), {"eth": ThrottledEth()})(), policy)
    assert client.block_number() == 99
    assert sleeps == [0.25, 0.5]


def test_persistent_throttling_raises_rate_limited():
    sleeps: list[float] = []

    class AlwaysThrottledEth:
        @property
        def block_number(self):
            resp = requests.Response()
            resp.status_code = 429
            raise requests.HTTPError("429 Client Error: Too Many Requests", response=resp)

    policy = RetryPolicy(max_retries=3, base_delay=0.25, sleep=sleeps.append)
    client = rpc_client.EvmRpcClient(type("W3", (), {"eth": AlwaysThrottledEth()})(), policy)
    with pytest.raises(RateLimited) as err:
        client.block_number()
    assert isinstance(err.value.__cause__, requests.HTTPError)
    assert sleeps == [0.25, 0.5]
