"""Tests for chainfmt/formatters/transaction_request.py: outbound requests."""

from __future__ import annotations

import pytest

from chainfmt.exceptions import (
    InvalidTransactionRequestError,
    MalformedFieldError,
    UnknownTransactionTypeError,
)
from chainfmt.models import TRANSACTION_REQUEST

SENDER = "0x" + "a1" * 20
RECIPIENT = "0x" + "b2" * 20
STORAGE_KEY = "0x" + "00" * 31 + "01"


def test_legacy_request_encoding(mainnet_formatters) -> None:
    """Ints become minimal hex quantities and the type code is set."""
    rpc = mainnet_formatters.transaction_request.format(
        {"from": SENDER, "to": RECIPIENT, "gasPrice": 20_000_000_000, "value": 0, "nonce": 9, "data": "0x"}
    )
    assert rpc.kind == TRANSACTION_REQUEST
    assert dict(rpc) == {
        "from": SENDER,
        "to": RECIPIENT,
        "data": "0x",
        "gasPrice": "0x4a817c800",
        "nonce": "0x9",
        "value": "0x0",
        "type": "0x0",
    }


def test_eip1559_request(mainnet_formatters) -> None:
    rpc = mainnet_formatters.transaction_request.format(
        {"to": RECIPIENT, "maxFeePerGas": 100, "maxPriorityFeePerGas": 2, "chainId": 1}
    )
    assert rpc["type"] == "0x2"
    assert rpc["maxFeePerGas"] == "0x64"
    assert rpc["chainId"] == "0x1"


def test_access_list_request(mainnet_formatters) -> None:
    """Access lists are sent as plain JSON lists."""
    access_list = [{"address": RECIPIENT, "storageKeys": [STORAGE_KEY]}]
    rpc = mainnet_formatters.transaction_request.format({"gasPrice": 1, "accessList": access_list})
    assert rpc["type"] == "0x1"
    assert rpc["accessList"] == [{"address": RECIPIENT, "storageKeys": [STORAGE_KEY]}]


def test_hex_string_quantities_are_normalised(mainnet_formatters) -> None:
    rpc = mainnet_formatters.transaction_request.format({"gasPrice": "0x0001", "value": "10"})
    assert rpc["gasPrice"] == "0x1"
    assert rpc["value"] == "0xa"


def test_untyped_request_without_fee_fields(mainnet_formatters) -> None:
    """Nothing decides the type, so none is sent."""
    rpc = mainnet_formatters.transaction_request.format({"to": RECIPIENT, "value": 1})
    assert "type" not in rpc


def test_explicit_type_name(mainnet_formatters) -> None:
    rpc = mainnet_formatters.transaction_request.format({"type": "eip1559", "to": RECIPIENT})
    assert rpc["type"] == "0x2"


def test_gas_price_with_max_fee_rejected(mainnet_formatters) -> None:
    with pytest.raises(InvalidTransactionRequestError, match="gasPrice"):
        mainnet_formatters.transaction_request.format({"gasPrice": 1, "maxFeePerGas": 2})


def test_tip_above_max_fee_rejected(mainnet_formatters) -> None:
    with pytest.raises(InvalidTransactionRequestError, match="cannot be higher"):
        mainnet_formatters.transaction_request.format({"maxFeePerGas": 1, "maxPriorityFeePerGas": 2})


def test_tip_above_max_fee_rejected_for_hex_strings(mainnet_formatters) -> None:
    with pytest.raises(InvalidTransactionRequestError):
        mainnet_formatters.transaction_request.format(
            {"maxFeePerGas": "0x1", "maxPriorityFeePerGas": "0x2"}
        )


def test_field_illegal_for_explicit_type(mainnet_formatters) -> None:
    """A legacy request cannot carry an access list."""
    with pytest.raises(InvalidTransactionRequestError) as exc_info:
        mainnet_formatters.transaction_request.format({"type": "legacy", "gasPrice": 1, "accessList": []})
    assert exc_info.value.details == {"type": "legacy", "fields": ["accessList"]}


def test_unknown_explicit_type(mainnet_formatters) -> None:
    with pytest.raises(UnknownTransactionTypeError):
        mainnet_formatters.transaction_request.format({"type": "cip64"})


def test_bad_address(mainnet_formatters) -> None:
    with pytest.raises(MalformedFieldError) as exc_info:
        mainnet_formatters.transaction_request.format({"to": "0x1234", "value": 1})
    assert exc_info.value.field == "to"


def test_none_fields_are_not_sent(mainnet_formatters) -> None:
    """None means unset for outbound requests."""
    rpc = mainnet_formatters.transaction_request.format({"to": RECIPIENT, "gasPrice": None, "nonce": None})
    assert dict(rpc) == {"to": RECIPIENT}
