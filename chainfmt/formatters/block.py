"""Base (chain-agnostic) block formatter."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from chainfmt.codec import to_address, to_hash, to_hash_list, to_hex_data, to_quantity
from chainfmt.exceptions import MalformedFieldError

BLOCK_FIELDS = frozenset(
    {
        "baseFeePerGas",
        "blobGasUsed",
        "difficulty",
        "excessBlobGas",
        "extraData",
        "gasLimit",
        "gasUsed",
        "hash",
        "logsBloom",
        "miner",
        "mixHash",
        "nonce",
        "number",
        "parentBeaconBlockRoot",
        "parentHash",
        "receiptsRoot",
        "sealFields",
        "sha3Uncles",
        "size",
        "stateRoot",
        "timestamp",
        "totalDifficulty",
        "transactions",
        "transactionsRoot",
        "uncles",
        "withdrawals",
        "withdrawalsRoot",
    }
)

# Null on a block that has not been sealed yet.
SEAL_FIELDS = ("hash", "logsBloom", "nonce", "number")

_QUANTITY_FIELDS = ("blobGasUsed", "difficulty", "excessBlobGas", "gasLimit", "gasUsed", "size", "timestamp")

_HASH_FIELDS = (
    "mixHash",
    "parentBeaconBlockRoot",
    "parentHash",
    "receiptsRoot",
    "sha3Uncles",
    "stateRoot",
    "transactionsRoot",
    "withdrawalsRoot",
)


def is_pending_block(raw: Mapping[str, Any]) -> bool:
    return raw.get("hash") is None


def _nullable(raw: Mapping[str, Any], name: str, decode: Callable[[Any, str], Any]) -> Any:
    value = raw.get(name)
    return decode(value, name) if value is not None else None


def _withdrawal(item: Any, field: str) -> dict[str, Any]:
    if not isinstance(item, Mapping):
        raise MalformedFieldError(field, item, "expected an object")
    return {
        "address": to_address(item.get("address"), f"{field}.address"),
        "amount": to_quantity(item.get("amount"), f"{field}.amount"),
        "index": to_quantity(item.get("index"), f"{field}.index"),
        "validatorIndex": to_quantity(item.get("validatorIndex"), f"{field}.validatorIndex"),
    }


def format_block(
    raw: Mapping[str, Any],
    *,
    format_transaction: Callable[[Mapping[str, Any]], Any],
) -> dict[str, Any]:
    """Format a raw block.

    Full transaction objects are handed to `format_transaction`, which the
    registry binds to the chain's effective transaction formatter.
    """
    block: dict[str, Any] = {
        "baseFeePerGas": _nullable(raw, "baseFeePerGas", to_quantity),
        "hash": _nullable(raw, "hash", to_hash),
        "logsBloom": _nullable(raw, "logsBloom", to_hex_data),
        "nonce": _nullable(raw, "nonce", to_hex_data),
        "number": _nullable(raw, "number", to_quantity),
        "totalDifficulty": _nullable(raw, "totalDifficulty", to_quantity),
    }

    for name in _QUANTITY_FIELDS:
        if raw.get(name) is not None:
            block[name] = to_quantity(raw[name], name)
    for name in _HASH_FIELDS:
        if raw.get(name) is not None:
            block[name] = to_hash(raw[name], name)
    if raw.get("miner") is not None:
        block["miner"] = to_address(raw["miner"], "miner")
    if raw.get("extraData") is not None:
        block["extraData"] = to_hex_data(raw["extraData"], "extraData")
    if raw.get("uncles") is not None:
        block["uncles"] = to_hash_list(raw["uncles"], "uncles")
    if raw.get("sealFields") is not None:
        block["sealFields"] = tuple(
            to_hex_data(v, f"sealFields[{i}]") for i, v in enumerate(raw["sealFields"])
        )
    if raw.get("withdrawals") is not None:
        block["withdrawals"] = tuple(
            _withdrawal(w, f"withdrawals[{i}]") for i, w in enumerate(raw["withdrawals"])
        )

    transactions = raw.get("transactions")
    if transactions is not None:
        if not isinstance(transactions, (list, tuple)):
            raise MalformedFieldError("transactions", transactions, "expected a list")
        block["transactions"] = tuple(
            _transaction(tx, f"transactions[{i}]", format_transaction)
            for i, tx in enumerate(transactions)
        )

    return block


def _transaction(item: Any, field: str, format_transaction: Callable[[Mapping[str, Any]], Any]) -> Any:
    if isinstance(item, str):
        return to_hash(item, field)
    if isinstance(item, Mapping):
        return format_transaction(item)
    raise MalformedFieldError(field, item, "expected a transaction hash or object")


def null_seal_fields(raw: Mapping[str, Any], result: dict[str, Any], fields: frozenset[str]) -> None:
    if is_pending_block(raw):
        for name in SEAL_FIELDS:
            if name in fields:
                result[name] = None
