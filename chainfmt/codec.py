"""Scalar codec for JSON-RPC wire values.

Every decoder takes the raw value plus the field name it came from, so a
failure can be reported as a MalformedFieldError pointing at the field.
"""

from __future__ import annotations

import re
from typing import Any

from chainfmt.exceptions import MalformedFieldError

HEX_BYTES_RE = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")
HEX_QUANTITY_RE = re.compile(r"^0x[0-9a-fA-F]+$")

ADDRESS_HEX_LEN = 40
HASH_HEX_LEN = 64


def to_quantity(value: Any, field: str) -> int:
    """Decode a hex quantity ("0x1a") into a non-negative int.

    Plain ints are accepted as-is; some nodes already return numbers.
    """
    if isinstance(value, bool):
        raise MalformedFieldError(field, value, "value cannot be boolean")
    if isinstance(value, int):
        if value < 0:
            raise MalformedFieldError(field, value, "value must be non-negative")
        return value
    if not isinstance(value, str):
        raise MalformedFieldError(field, value, "expected a 0x-prefixed hex quantity")
    raw = value.strip()
    if HEX_QUANTITY_RE.fullmatch(raw):
        return int(raw, 16)
    if raw.isdigit():
        return int(raw, 10)
    raise MalformedFieldError(field, value, "expected a 0x-prefixed hex quantity")


def to_hex_data(value: Any, field: str) -> str:
    """Validate an arbitrary-length byte string ("0x", "0xdeadbeef")."""
    if not isinstance(value, str) or not HEX_BYTES_RE.fullmatch(value):
        raise MalformedFieldError(field, value, "expected 0x-prefixed hex bytes")
    return value


def _fixed_hex(value: Any, field: str, hex_len: int, what: str) -> str:
    if not isinstance(value, str) or not HEX_BYTES_RE.fullmatch(value) or len(value) != hex_len + 2:
        raise MalformedFieldError(field, value, f"expected a {what} (0x + {hex_len} hex chars)")
    return value


def to_address(value: Any, field: str) -> str:
    return _fixed_hex(value, field, ADDRESS_HEX_LEN, "20-byte address")


def to_hash(value: Any, field: str) -> str:
    return _fixed_hex(value, field, HASH_HEX_LEN, "32-byte hash")


def to_hex_quantity(value: Any, field: str) -> str:
    """Encode a non-negative int as a minimal hex quantity ("0x0", "0x1a").

    Quantity strings are normalised ("0x001a" -> "0x1a").
    """
    return hex(to_quantity(value, field))


def to_access_list(value: Any, field: str) -> tuple[dict[str, Any], ...]:
    """Validate an EIP-2930 access list: [{address, storageKeys: [hash]}]."""
    if not isinstance(value, (list, tuple)):
        raise MalformedFieldError(field, value, "expected a list of access list entries")
    entries = []
    for i, entry in enumerate(value):
        if not isinstance(entry, dict):
            raise MalformedFieldError(f"{field}[{i}]", entry, "expected an object")
        keys = entry.get("storageKeys", [])
        if not isinstance(keys, (list, tuple)):
            raise MalformedFieldError(f"{field}[{i}].storageKeys", keys, "expected a list")
        entries.append(
            {
                "address": to_address(entry.get("address"), f"{field}[{i}].address"),
                "storageKeys": tuple(
                    to_hash(k, f"{field}[{i}].storageKeys[{j}]") for j, k in enumerate(keys)
                ),
            }
        )
    return tuple(entries)


def to_hash_list(value: Any, field: str) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise MalformedFieldError(field, value, "expected a list of hashes")
    return tuple(to_hash(v, f"{field}[{i}]") for i, v in enumerate(value))
