"""Base (chain-agnostic) transaction request formatter.

Runs in the outbound direction: a request built by application code
(ints, hex strings, variant names) becomes the exact JSON-RPC shape the
node expects. Combinations that cannot be sent are rejected, never
trimmed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chainfmt.codec import (
    to_access_list,
    to_address,
    to_hash_list,
    to_hex_data,
    to_hex_quantity,
    to_quantity,
)
from chainfmt.exceptions import InvalidTransactionRequestError
from chainfmt.formatters.types import (
    GENERIC_REQUEST_VARIANT_FIELDS,
    TransactionTypes,
    TransactionVariant,
    is_present,
)

COMMON_REQUEST_FIELDS = frozenset({"chainId", "data", "from", "gas", "nonce", "to", "type", "value"})

TRANSACTION_REQUEST_FIELDS = COMMON_REQUEST_FIELDS | GENERIC_REQUEST_VARIANT_FIELDS

_QUANTITY_FIELDS = (
    "chainId",
    "gas",
    "gasPrice",
    "maxFeePerBlobGas",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "nonce",
    "value",
)


def assert_request(
    request: Mapping[str, Any],
    variant: TransactionVariant | None,
    types: TransactionTypes,
    excluded: frozenset[str] = frozenset(),
) -> None:
    """Reject requests whose fields cannot be sent together.

    `excluded` holds the request fields the chain does not support; a request
    setting one is rejected rather than sent without it.
    """
    unsupported = sorted(name for name in excluded if is_present(request, name))
    if unsupported:
        raise InvalidTransactionRequestError(
            f"{unsupported} are not supported on chain {types.chain!r}",
            details={"fields": unsupported},
        )

    if is_present(request, "gasPrice") and (
        is_present(request, "maxFeePerGas") or is_present(request, "maxPriorityFeePerGas")
    ):
        raise InvalidTransactionRequestError(
            "Cannot specify both gasPrice and maxFeePerGas/maxPriorityFeePerGas",
            details={"fields": ["gasPrice", "maxFeePerGas", "maxPriorityFeePerGas"]},
        )

    if is_present(request, "maxFeePerGas") and is_present(request, "maxPriorityFeePerGas"):
        max_fee = to_quantity(request["maxFeePerGas"], "maxFeePerGas")
        tip = to_quantity(request["maxPriorityFeePerGas"], "maxPriorityFeePerGas")
    else:
        max_fee = tip = 0
    if tip > max_fee:
        raise InvalidTransactionRequestError(
            f"maxPriorityFeePerGas ({tip}) cannot be higher than maxFeePerGas ({max_fee})",
            details={"maxFeePerGas": max_fee, "maxPriorityFeePerGas": tip},
        )

    if variant is None:
        return

    present = {name for name in request if is_present(request, name)}
    illegal = (present & types.request_variant_fields) - variant.request_fields
    if illegal:
        raise InvalidTransactionRequestError(
            f"{sorted(illegal)} cannot be set on a {variant.name} transaction "
            f"on chain {types.chain!r}",
            details={"type": variant.name, "fields": sorted(illegal)},
        )
    missing = variant.required - present
    if missing:
        raise InvalidTransactionRequestError(
            f"{variant.name} transactions on chain {types.chain!r} require {sorted(missing)}",
            details={"type": variant.name, "fields": sorted(missing)},
        )


def format_transaction_request(
    request: Mapping[str, Any],
    *,
    types: TransactionTypes,
    excluded: frozenset[str] = frozenset(),
) -> dict[str, Any]:
    variant = types.infer(request)
    assert_request(request, variant, types, excluded)

    rpc: dict[str, Any] = {}
    for name in ("from", "to"):
        if is_present(request, name):
            rpc[name] = to_address(request[name], name)
    if is_present(request, "data"):
        rpc["data"] = to_hex_data(request["data"], "data")
    for name in _QUANTITY_FIELDS:
        if is_present(request, name):
            rpc[name] = to_hex_quantity(request[name], name)
    if is_present(request, "accessList"):
        rpc["accessList"] = [
            {"address": e["address"], "storageKeys": list(e["storageKeys"])}
            for e in to_access_list(request["accessList"], "accessList")
        ]
    if is_present(request, "blobVersionedHashes"):
        rpc["blobVersionedHashes"] = list(
            to_hash_list(request["blobVersionedHashes"], "blobVersionedHashes")
        )
    if variant is not None:
        rpc["type"] = variant.type_hex

    return rpc
