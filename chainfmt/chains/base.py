"""Chain definition shared by every chain module."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from chainfmt.formatters.base import FormatterDescriptor
from chainfmt.formatters.types import TransactionVariant


@dataclass(frozen=True)
class Chain:
    """
    A chain the client can talk to.

    `formatters` maps an entity kind ("block", "transaction",
    "transactionRequest") to the chain's FormatterDescriptor. A kind left
    out uses the base formatter unchanged. `transaction_types` adds
    chain-specific variants to the generic transaction types.
    """

    id: int
    name: str
    network: str
    rpc_url: str
    native_currency: str = "ETH"
    formatters: Mapping[str, FormatterDescriptor] = field(default_factory=dict)
    transaction_types: tuple[TransactionVariant, ...] = ()
    testnet: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "network": self.network,
            "rpc_url": self.rpc_url,
            "native_currency": self.native_currency,
            "testnet": self.testnet,
            "excluded_fields": {
                kind: sorted(d.exclude) for kind, d in self.formatters.items() if d.exclude
            },
            "override_fields": {
                kind: sorted(d.fields) for kind, d in self.formatters.items() if d.fields
            },
            "transaction_types": [
                {"name": v.name, "type": v.type_hex} for v in self.transaction_types
            ],
        }
