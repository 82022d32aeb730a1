"""Base (chain-agnostic) transaction formatter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chainfmt.codec import (
    to_access_list,
    to_address,
    to_hash,
    to_hash_list,
    to_hex_data,
    to_quantity,
)
from chainfmt.exceptions import MalformedFieldError
from chainfmt.formatters.types import GENERIC_VARIANT_FIELDS, TransactionTypes

COMMON_FIELDS = frozenset(
    {
        "blockHash",
        "blockNumber",
        "chainId",
        "from",
        "gas",
        "hash",
        "input",
        "nonce",
        "r",
        "s",
        "to",
        "transactionIndex",
        "type",
        "typeHex",
        "v",
        "value",
    }
)

TRANSACTION_FIELDS = COMMON_FIELDS | GENERIC_VARIANT_FIELDS

# Null on a transaction that is not yet in a block.
BLOCK_ASSOCIATION_FIELDS = ("blockHash", "blockNumber", "transactionIndex")

_QUANTITY_FIELDS = (
    "chainId",
    "gas",
    "gasPrice",
    "maxFeePerBlobGas",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "nonce",
    "v",
    "value",
)


def _signature_part(value: Any, field: str) -> str:
    # r/s are quantities on the wire; leading zeros may be stripped
    to_quantity(value, field)
    return value


def y_parity_from_v(v: int) -> int:
    if v in (0, 27):
        return 0
    if v in (1, 28):
        return 1
    if v >= 35:
        return 1 if v % 2 == 0 else 0
    raise MalformedFieldError("v", v, "not a valid signature v value")


def is_pending_transaction(raw: Mapping[str, Any]) -> bool:
    return not raw.get("blockHash") or raw.get("blockNumber") is None


def format_transaction(raw: Mapping[str, Any], *, types: TransactionTypes) -> dict[str, Any]:
    variant = types.tag(raw).variant

    tx: dict[str, Any] = {
        "blockHash": to_hash(raw["blockHash"], "blockHash") if raw.get("blockHash") else None,
        "blockNumber": (
            to_quantity(raw["blockNumber"], "blockNumber")
            if raw.get("blockNumber") is not None
            else None
        ),
        "transactionIndex": (
            to_quantity(raw["transactionIndex"], "transactionIndex")
            if raw.get("transactionIndex") is not None
            else None
        ),
        # contract creation has no recipient
        "to": to_address(raw["to"], "to") if raw.get("to") else None,
        "type": variant.name,
    }
    if raw.get("type") is not None:
        tx["typeHex"] = hex(to_quantity(raw["type"], "type"))

    if raw.get("hash") is not None:
        tx["hash"] = to_hash(raw["hash"], "hash")
    if raw.get("from") is not None:
        tx["from"] = to_address(raw["from"], "from")
    if raw.get("input") is not None:
        tx["input"] = to_hex_data(raw["input"], "input")
    for name in ("r", "s"):
        if raw.get(name) is not None:
            tx[name] = _signature_part(raw[name], name)
    for name in _QUANTITY_FIELDS:
        if raw.get(name) is not None:
            tx[name] = to_quantity(raw[name], name)

    if raw.get("accessList") is not None:
        tx["accessList"] = to_access_list(raw["accessList"], "accessList")
    if raw.get("blobVersionedHashes") is not None:
        tx["blobVersionedHashes"] = to_hash_list(raw["blobVersionedHashes"], "blobVersionedHashes")

    if raw.get("yParity") is not None:
        tx["yParity"] = to_quantity(raw["yParity"], "yParity")
    elif "v" in tx and "yParity" in variant.fields:
        tx["yParity"] = y_parity_from_v(tx["v"])

    for name in GENERIC_VARIANT_FIELDS - variant.fields:
        tx.pop(name, None)

    return tx


def null_block_association(
    raw: Mapping[str, Any], result: dict[str, Any], fields: frozenset[str]
) -> None:
    """Pending transactions have no block; whatever the formatters computed."""
    if is_pending_transaction(raw):
        for name in BLOCK_ASSOCIATION_FIELDS:
            if name in fields:
                result[name] = None
