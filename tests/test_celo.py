"""Tests for chainfmt/chains/celo.py: Celo blocks, transactions and requests."""

from __future__ import annotations

import pytest

from chainfmt.chains import celo, celo_alfajores, mainnet
from chainfmt.exceptions import InvalidTransactionRequestError, MalformedFieldError
from chainfmt.models import Entity
from chainfmt.registry import build_registry

POW_FIELDS = ("difficulty", "gasLimit", "mixHash", "nonce", "uncles")
FEE_CURRENCY = "0x765de816845861e75a25fca122bb6898b8b1282a"
SENDER = "0x" + "a1" * 20
RECIPIENT = "0x" + "b2" * 20


# ── Blocks ────────────────────────────────────────────────────────────────────


def test_block_drops_pow_fields_and_keeps_randomness(celo_formatters, raw_celo_block: dict) -> None:
    """Celo blocks have no PoW fields and carry randomness exactly as sent."""
    block = celo_formatters.block.format(raw_celo_block)
    for name in POW_FIELDS:
        assert name not in block
        assert name not in block.fields
    assert block["randomness"] == raw_celo_block["randomness"]
    assert block["number"] == 0x1167E3E


def test_block_pow_fields_from_node_are_dropped(celo_formatters, raw_celo_block: dict) -> None:
    """Even if a node sends PoW fields, the Celo shape has no place for them."""
    raw = dict(raw_celo_block, difficulty="0x0", gasLimit="0x1c9c380", nonce="0x0000000000000000", uncles=[])
    block = celo_formatters.block.format(raw)
    for name in POW_FIELDS:
        assert name not in block


def test_block_pow_field_is_not_an_attribute(celo_formatters, raw_celo_block: dict) -> None:
    block = celo_formatters.block.format(raw_celo_block)
    with pytest.raises(AttributeError, match="not defined on chain 'celo'"):
        block.difficulty


def test_block_without_randomness(celo_formatters, raw_celo_block: dict) -> None:
    """randomness is undefined, not null, when the node omits it."""
    raw = dict(raw_celo_block)
    del raw["randomness"]
    block = celo_formatters.block.format(raw)
    assert "randomness" not in block
    assert "randomness" in block.fields


def test_block_bad_randomness(celo_formatters, raw_celo_block: dict) -> None:
    raw = dict(raw_celo_block, randomness={"committed": "0x12", "revealed": "nope"})
    with pytest.raises(MalformedFieldError) as exc_info:
        celo_formatters.block.format(raw)
    assert exc_info.value.field == "randomness.revealed"


def test_pending_block(celo_formatters, raw_celo_block: dict) -> None:
    """Pending Celo blocks null their seal fields; nonce stays absent."""
    block = celo_formatters.block.format(dict(raw_celo_block, hash=None))
    assert block["hash"] is None
    assert block["number"] is None
    assert block["logsBloom"] is None
    assert "nonce" not in block


def test_block_full_transactions_use_celo_formatter(
    celo_formatters, raw_celo_block: dict, raw_cip64_tx: dict
) -> None:
    block = celo_formatters.block.format(dict(raw_celo_block, transactions=[raw_cip64_tx]))
    (tx,) = block["transactions"]
    assert isinstance(tx, Entity)
    assert tx.chain == "celo"
    assert tx["feeCurrency"] == FEE_CURRENCY


def test_mainnet_block_is_unaffected(mainnet_formatters, raw_block: dict) -> None:
    """Registering Celo does not change other chains' shapes."""
    block = mainnet_formatters.block.format(raw_block)
    for name in POW_FIELDS:
        assert name in block
    assert "randomness" not in block.fields


# ── Transactions ──────────────────────────────────────────────────────────────


def test_cip64_transaction(celo_formatters, raw_cip64_tx: dict) -> None:
    """A fee-currency transaction keeps feeCurrency and has no gateway fields."""
    tx = celo_formatters.transaction.format(raw_cip64_tx)
    assert tx["type"] == "cip64"
    assert tx["typeHex"] == "0x7b"
    assert tx["feeCurrency"] == raw_cip64_tx["feeCurrency"]
    assert "gatewayFee" not in tx
    assert "gatewayFeeRecipient" not in tx
    assert tx["maxFeePerGas"] == 2_000_000_000
    assert tx["yParity"] == 0


def test_cip64_gateway_fee_is_undefined_not_null(celo_formatters, raw_cip64_tx: dict) -> None:
    tx = celo_formatters.transaction.format(raw_cip64_tx)
    assert tx.get("gatewayFee", "undefined") == "undefined"
    with pytest.raises(AttributeError, match="is not set"):
        tx.gatewayFee


def test_cip42_transaction(celo_formatters, raw_cip42_tx: dict) -> None:
    """cip42 carries all three fee abstraction fields, null when unused."""
    tx = celo_formatters.transaction.format(raw_cip42_tx)
    assert tx["type"] == "cip42"
    assert tx["feeCurrency"] is None
    assert tx["gatewayFee"] == 0
    assert tx["gatewayFeeRecipient"] is None


def test_cip42_with_gateway_fee(celo_formatters, raw_cip42_tx: dict) -> None:
    recipient = "0x" + "d4" * 20
    raw = dict(raw_cip42_tx, feeCurrency=FEE_CURRENCY, gatewayFee="0x2710", gatewayFeeRecipient=recipient)
    tx = celo_formatters.transaction.format(raw)
    assert tx["feeCurrency"] == FEE_CURRENCY
    assert tx["gatewayFee"] == 10_000
    assert tx["gatewayFeeRecipient"] == recipient


def test_generic_transaction_on_celo_has_no_celo_fields(celo_formatters, raw_eip1559_tx: dict) -> None:
    """Standard transactions on Celo look exactly like they do on Ethereum."""
    tx = celo_formatters.transaction.format(dict(raw_eip1559_tx, chainId="0xa4ec"))
    assert tx["type"] == "eip1559"
    for name in ("feeCurrency", "gatewayFee", "gatewayFeeRecipient"):
        assert name not in tx


def test_bad_fee_currency(celo_formatters, raw_cip64_tx: dict) -> None:
    with pytest.raises(MalformedFieldError) as exc_info:
        celo_formatters.transaction.format(dict(raw_cip64_tx, feeCurrency="0x1234"))
    assert exc_info.value.field == "feeCurrency"


@pytest.mark.parametrize("fixture_name", ["raw_cip64_tx", "raw_cip42_tx", "raw_eip1559_tx", "raw_legacy_tx"])
def test_pending_transactions_on_celo(celo_formatters, pending, fixture_name: str, request) -> None:
    """Every variant nulls its block association when pending."""
    raw = pending(request.getfixturevalue(fixture_name))
    tx = celo_formatters.transaction.format(raw)
    assert tx["blockHash"] is None
    assert tx["blockNumber"] is None
    assert tx["transactionIndex"] is None


@pytest.mark.parametrize("fixture_name", ["raw_cip64_tx", "raw_cip42_tx"])
def test_celo_formatting_is_idempotent(celo_formatters, fixture_name: str, request) -> None:
    raw = request.getfixturevalue(fixture_name)
    assert celo_formatters.transaction.format(raw) == celo_formatters.transaction.format(raw)


def test_alfajores_shares_celo_shape(raw_cip64_tx: dict) -> None:
    registry = build_registry([celo_alfajores])
    tx = registry.format_transaction("celo_alfajores", dict(raw_cip64_tx, chainId="0xaef3"))
    assert tx["feeCurrency"] == FEE_CURRENCY
    assert tx["chainId"] == 44787


# ── Transaction requests ──────────────────────────────────────────────────────


def test_request_with_fee_currency_is_cip64(celo_formatters) -> None:
    rpc = celo_formatters.transaction_request.format(
        {
            "from": SENDER,
            "to": RECIPIENT,
            "feeCurrency": FEE_CURRENCY,
            "maxFeePerGas": 2_000_000_000,
            "maxPriorityFeePerGas": 1_000_000_000,
            "value": 1,
        }
    )
    assert dict(rpc) == {
        "from": SENDER,
        "to": RECIPIENT,
        "feeCurrency": FEE_CURRENCY,
        "maxFeePerGas": "0x77359400",
        "maxPriorityFeePerGas": "0x3b9aca00",
        "value": "0x1",
        "type": "0x7b",
    }


def test_request_with_gateway_fee_is_cip42(celo_formatters) -> None:
    rpc = celo_formatters.transaction_request.format(
        {"from": SENDER, "gatewayFee": 10_000, "gatewayFeeRecipient": RECIPIENT, "maxFeePerGas": 5}
    )
    assert rpc["type"] == "0x7c"
    assert rpc["gatewayFee"] == "0x2710"
    assert rpc["gatewayFeeRecipient"] == RECIPIENT


def test_request_fee_currency_with_gas_price_rejected(celo_formatters) -> None:
    """cip64 has no gasPrice: the combination is rejected, not trimmed."""
    request = {"from": SENDER, "feeCurrency": FEE_CURRENCY, "gasPrice": 1_000_000_000, "type": "cip64"}
    with pytest.raises(InvalidTransactionRequestError) as exc_info:
        celo_formatters.transaction_request.format(request)
    assert exc_info.value.details["fields"] == ["gasPrice"]


def test_request_fee_currency_with_gas_price_rejected_without_type(celo_formatters) -> None:
    request = {"from": SENDER, "feeCurrency": FEE_CURRENCY, "gasPrice": 1_000_000_000}
    with pytest.raises(InvalidTransactionRequestError):
        celo_formatters.transaction_request.format(request)


def test_request_cip64_requires_fee_currency(celo_formatters) -> None:
    with pytest.raises(InvalidTransactionRequestError, match="require"):
        celo_formatters.transaction_request.format({"type": "cip64", "maxFeePerGas": 1})


def test_request_explicit_cip42_name(celo_formatters) -> None:
    rpc = celo_formatters.transaction_request.format({"type": "cip42", "maxFeePerGas": 1})
    assert rpc["type"] == "0x7c"


def test_plain_request_on_celo(celo_formatters) -> None:
    rpc = celo_formatters.transaction_request.format({"to": RECIPIENT, "gasPrice": 5})
    assert rpc["type"] == "0x0"
    assert "feeCurrency" not in rpc


def test_mainnet_ignores_fee_currency_field(registry) -> None:
    """Fields a chain does not know about are not sent."""
    rpc = registry.format_transaction_request(mainnet, {"to": RECIPIENT, "feeCurrency": FEE_CURRENCY})
    assert "feeCurrency" not in rpc
    assert "feeCurrency" not in rpc.fields


def test_chain_definition() -> None:
    assert celo.id == 42220
    assert celo.native_currency == "CELO"
    assert [v.name for v in celo.transaction_types] == ["cip42", "cip64"]
    data = celo.to_dict()
    assert data["excluded_fields"]["block"] == sorted(POW_FIELDS)
    assert data["transaction_types"] == [{"name": "cip42", "type": "0x7c"}, {"name": "cip64", "type": "0x7b"}]
