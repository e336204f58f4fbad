"""Tests for the chain registry."""
import pytest

from l2_leaderboard.config import chains
from l2_leaderboard.config.chains import ChainConfig, ChainRegistry, default_registry
from l2_leaderboard.utils.errors import ChainValidationError, InvalidArgument


def _arbitrum_only() -> ChainRegistry:
    return ChainRegistry(
        [
            ChainConfig(
                id="arbitrum",
                name="Arbitrum",
                rpc_url="https://x",
                token_symbol="ETH",
                active=True,
                is_testnet=False,
            )
        ]
    )


def test_lookups_with_defaults_for_unknown_chain():
    reg = _arbitrum_only()
    assert reg.token_symbol_of("arbitrum") == "ETH"
    assert reg.token_symbol_of("nope") == "ETH"
    assert reg.endpoint_of("arbitrum") == "https://x"
    assert reg.endpoint_of("nope") == ""
    assert reg.explorer_of("nope") == ""
    assert reg.resolve("nope") is None
    assert reg.resolve("arbitrum").name == "Arbitrum"


def test_register_duplicate_id_keeps_existing_entry():
    reg = _arbitrum_only()
    with pytest.raises(ChainValidationError, match="already registered"):
        reg.register({"id": "arbitrum", "name": "Other", "rpcUrl": "https://y"})
    assert reg.endpoint_of("arbitrum") == "https://x"
    assert reg.resolve("arbitrum").name == "Arbitrum"
    assert len(reg) == 1


def test_register_lists_every_missing_field():
    reg = ChainRegistry()
    with pytest.raises(ChainValidationError) as err:
        reg.register({})
    assert err.value.missing == ("id", "name", "rpc_url")
    assert "rpc_url" in str(err.value)
    assert len(reg) == 0


def test_register_rejects_blank_rpc_url():
    reg = ChainRegistry()
    with pytest.raises(ChainValidationError) as err:
        reg.register({"id": "foo", "name": "Foo", "rpcUrl": "  "})
    assert err.value.missing == ("rpc_url",)


def test_register_form_payload_applies_defaults():
    reg = ChainRegistry()
    chain = reg.register({"id": "foo", "name": "Foo", "rpcUrl": "https://foo", "iconUrl": None})
    assert chain.explorer_url == ""
    assert chain.token_symbol == "ETH"
    assert chain.active is True
    assert chain.is_testnet is False
    assert chain.icon_url is None
    assert reg.chain_ids() == ["foo"]


def test_register_accepts_camel_case_optionals():
    reg = ChainRegistry()
    chain = reg.register(
        {
            "id": "mumbai",
            "name": "Mumbai",
            "rpcUrl": "https://m",
            "tokenSymbol": "MATIC",
            "isTestnet": True,
            "chainId": 80001,
        }
    )
    assert chain.token_symbol == "MATIC"
    assert chain.is_testnet is True
    assert chain.numeric_chain_id == 80001


def test_list_active_keeps_insertion_order():
    reg = ChainRegistry()
    reg.register({"id": "b", "name": "B", "rpc_url": "https://b"})
    reg.register({"id": "a", "name": "A", "rpc_url": "https://a", "active": False})
    reg.register({"id": "c", "name": "C", "rpc_url": "https://c"})
    assert [c.id for c in reg.list_active()] == ["b", "c"]
    assert [c.id for c in reg] == ["b", "a", "c"]


def test_list_by_network_kind():
    reg = default_registry()
    mainnets = reg.list_by_network_kind("mainnet")
    testnets = reg.list_by_network_kind("testnet")
    assert all(not c.is_testnet for c in mainnets)
    assert all(c.is_testnet for c in testnets)
    assert len(mainnets) + len(testnets) == len(reg)
    assert {"arbitrum", "optimism", "base", "zksync", "polygon"} <= {c.id for c in mainnets}
    with pytest.raises(InvalidArgument):
        reg.list_by_network_kind("devnet")


def test_default_registry_contents():
    reg = default_registry()
    assert reg.token_symbol_of("polygon") == "MATIC"
    assert reg.explorer_of("arbitrum") == "https://arbiscan.io"
    assert "base-goerli" in reg
    assert "base-goerli" not in {c.id for c in reg.list_active()}


def test_default_registry_instances_are_independent():
    first = default_registry()
    second = default_registry()
    first.register({"id": "foo", "name": "Foo", "rpcUrl": "https://foo"})
    assert "foo" in first
    assert "foo" not in second


def test_rpc_url_env_override(monkeypatch):
    monkeypatch.setenv("RPC_URL_ARBITRUM_GOERLI", "https://my-node")
    reg = chains.default_registry()
    assert reg.endpoint_of("arbitrum-goerli") == "https://my-node"
    assert reg.resolve("arbitrum-goerli").numeric_chain_id == 421613
