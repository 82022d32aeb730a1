"""
Formatter layer for chainfmt.

Base formatters turn raw JSON-RPC payloads into generic entities; chains
customise them with FormatterDescriptors, and the registry merges the two
into one Formatter per entity kind.

Usage:
    from chainfmt.formatters import FormatterDescriptor
    descriptor = FormatterDescriptor(exclude={"nonce"}, format=fn, fields={"extra"})
"""

from __future__ import annotations

from chainfmt.formatters.base import (
    IDENTITY,
    Formatter,
    FormatterDescriptor,
    resolve_fields,
)
from chainfmt.formatters.block import BLOCK_FIELDS, format_block
from chainfmt.formatters.transaction import (
    COMMON_FIELDS,
    TRANSACTION_FIELDS,
    format_transaction,
)
from chainfmt.formatters.transaction_request import (
    COMMON_REQUEST_FIELDS,
    TRANSACTION_REQUEST_FIELDS,
    format_transaction_request,
)
from chainfmt.formatters.types import (
    EIP1559,
    EIP2930,
    EIP4844,
    GENERIC_VARIANTS,
    LEGACY,
    TransactionTypes,
    TransactionVariant,
)

__all__ = [
    "BLOCK_FIELDS",
    "COMMON_FIELDS",
    "COMMON_REQUEST_FIELDS",
    "EIP1559",
    "EIP2930",
    "EIP4844",
    "GENERIC_VARIANTS",
    "IDENTITY",
    "LEGACY",
    "TRANSACTION_FIELDS",
    "TRANSACTION_REQUEST_FIELDS",
    "Formatter",
    "FormatterDescriptor",
    "TransactionTypes",
    "TransactionVariant",
    "format_block",
    "format_transaction",
    "format_transaction_request",
    "resolve_fields",
]
