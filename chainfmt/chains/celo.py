"""
Celo formatters.

Celo has no proof-of-work, so blocks drop the PoW fields and carry the
randomness beacon commitment/reveal pair instead. Transactions can pay
gas in an ERC-20 fee currency:

  cip42 (0x7c): feeCurrency plus the legacy gateway fee pair
  cip64 (0x7b): feeCurrency only; no gas price, no gateway fee

The override functions read the raw payload, not the base result, so they
see Celo fields the base formatter does not know about.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chainfmt.codec import to_address, to_hex_data, to_hex_quantity, to_quantity
from chainfmt.exceptions import MalformedFieldError
from chainfmt.formatters.base import FormatterDescriptor
from chainfmt.formatters.types import EIP1559, TransactionVariant, is_present, resolved_variant
from chainfmt.models import BLOCK, TRANSACTION, TRANSACTION_REQUEST

FEE_CURRENCY_FIELDS = frozenset({"feeCurrency"})
GATEWAY_FEE_FIELDS = frozenset({"gatewayFee", "gatewayFeeRecipient"})


def _is_cip42(request: Mapping[str, Any]) -> bool:
    return any(is_present(request, name) for name in GATEWAY_FEE_FIELDS)


def _is_cip64(request: Mapping[str, Any]) -> bool:
    return is_present(request, "feeCurrency")


CIP42 = TransactionVariant(
    name="cip42",
    type_code=0x7C,
    fields=EIP1559.fields | FEE_CURRENCY_FIELDS | GATEWAY_FEE_FIELDS,
    request_fields=EIP1559.request_fields | FEE_CURRENCY_FIELDS | GATEWAY_FEE_FIELDS,
    infer=_is_cip42,
    chain_specific=True,
)

CIP64 = TransactionVariant(
    name="cip64",
    type_code=0x7B,
    fields=EIP1559.fields | FEE_CURRENCY_FIELDS,
    request_fields=EIP1559.request_fields | FEE_CURRENCY_FIELDS,
    required=FEE_CURRENCY_FIELDS,
    infer=_is_cip64,
    chain_specific=True,
)

# cip42 first: a request with a gateway fee is cip42 even with a fee currency
TRANSACTION_TYPES = (CIP42, CIP64)

_BY_CODE = {v.type_code: v for v in TRANSACTION_TYPES}
_BY_NAME = {v.name: v for v in TRANSACTION_TYPES}


def _celo_variant(raw: Mapping[str, Any]) -> TransactionVariant | None:
    # a tagged payload may have resolved through the unknown-type fallback
    variant = resolved_variant(raw)
    if variant is not None:
        return _BY_NAME.get(variant.name)
    tag = raw.get("type")
    if tag is None:
        return None
    return _BY_CODE.get(to_quantity(tag, "type"))


def format_block(raw: Mapping[str, Any]) -> dict[str, Any]:
    randomness = raw.get("randomness")
    if randomness is None:
        return {}
    if not isinstance(randomness, Mapping):
        raise MalformedFieldError("randomness", randomness, "expected {committed, revealed}")
    return {
        "randomness": {
            "committed": to_hex_data(randomness.get("committed"), "randomness.committed"),
            "revealed": to_hex_data(randomness.get("revealed"), "randomness.revealed"),
        }
    }


def format_transaction(raw: Mapping[str, Any]) -> dict[str, Any]:
    variant = _celo_variant(raw)
    if variant is None:
        return {}

    tx: dict[str, Any] = {
        "feeCurrency": to_address(raw["feeCurrency"], "feeCurrency") if raw.get("feeCurrency") else None,
    }
    if variant is CIP42:
        tx["gatewayFee"] = (
            to_quantity(raw["gatewayFee"], "gatewayFee") if raw.get("gatewayFee") is not None else None
        )
        tx["gatewayFeeRecipient"] = (
            to_address(raw["gatewayFeeRecipient"], "gatewayFeeRecipient")
            if raw.get("gatewayFeeRecipient")
            else None
        )
    return tx


def format_transaction_request(request: Mapping[str, Any]) -> dict[str, Any]:
    rpc: dict[str, Any] = {}
    if is_present(request, "feeCurrency"):
        rpc["feeCurrency"] = to_address(request["feeCurrency"], "feeCurrency")
    if is_present(request, "gatewayFee"):
        rpc["gatewayFee"] = to_hex_quantity(request["gatewayFee"], "gatewayFee")
    if is_present(request, "gatewayFeeRecipient"):
        rpc["gatewayFeeRecipient"] = to_address(request["gatewayFeeRecipient"], "gatewayFeeRecipient")

    tag = request.get("type")
    if tag in _BY_NAME:
        rpc["type"] = _BY_NAME[tag].type_hex
    elif tag is None:
        if _is_cip42(request):
            rpc["type"] = CIP42.type_hex
        elif _is_cip64(request):
            rpc["type"] = CIP64.type_hex
    return rpc


FORMATTERS = {
    BLOCK: FormatterDescriptor(
        exclude={"difficulty", "gasLimit", "mixHash", "nonce", "uncles"},
        format=format_block,
        fields={"randomness"},
    ),
    TRANSACTION: FormatterDescriptor(
        format=format_transaction,
        fields=FEE_CURRENCY_FIELDS | GATEWAY_FEE_FIELDS,
    ),
    TRANSACTION_REQUEST: FormatterDescriptor(
        format=format_transaction_request,
        fields=FEE_CURRENCY_FIELDS | GATEWAY_FEE_FIELDS | {"type"},
    ),
}
