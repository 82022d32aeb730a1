"""
Domain entity model for chainfmt.

Formatters return Entity objects: immutable mappings keyed by the
JSON-RPC field names. A key missing from the mapping is undefined, a key
mapped to None is null. The two are kept apart because several fields
(e.g. Celo's gatewayFee) mean different things in each case.

Each entity also carries the field schema resolved for its kind on its
chain; keys never fall outside it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

BLOCK = "block"
TRANSACTION = "transaction"
TRANSACTION_REQUEST = "transactionRequest"

ENTITY_KINDS = (BLOCK, TRANSACTION, TRANSACTION_REQUEST)


class Entity(Mapping[str, Any]):
    """A fully formatted block, transaction or transaction request."""

    __slots__ = ("_kind", "_chain", "_fields", "_data")

    def __init__(
        self,
        kind: str,
        chain: str,
        fields: frozenset[str],
        data: Mapping[str, Any],
    ) -> None:
        stray = set(data) - fields
        if stray:
            raise ValueError(f"{kind} has fields outside its schema: {sorted(stray)}")
        object.__setattr__(self, "_kind", kind)
        object.__setattr__(self, "_chain", chain)
        object.__setattr__(self, "_fields", fields)
        object.__setattr__(self, "_data", dict(data))

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def chain(self) -> str:
        return self._chain

    @property
    def fields(self) -> frozenset[str]:
        """Every field this entity kind can carry on its chain."""
        return self._fields

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        data = object.__getattribute__(self, "_data")
        if name in data:
            return data[name]
        if name in object.__getattribute__(self, "_fields"):
            raise AttributeError(f"{self._kind} field {name!r} is not set")
        raise AttributeError(f"{self._kind} field {name!r} is not defined on chain {self._chain!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{self._kind} entities are immutable")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Entity):
            return (self._kind, self._chain, self._data) == (other._kind, other._chain, other._data)
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._kind, self._chain, tuple(sorted(self._data))))

    def __repr__(self) -> str:
        return f"Entity(kind={self._kind!r}, chain={self._chain!r}, data={self._data!r})"

    def to_dict(self) -> dict:
        """Serialize to plain dicts and lists, recursing into nested entities."""
        return {key: _plain(value) for key, value in self._data.items()}


def _plain(value: Any) -> Any:
    if isinstance(value, Entity):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
