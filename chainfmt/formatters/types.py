"""Transaction type discriminator.

A transaction's `type` tag selects one TransactionVariant. The variant
decides which of the variant-specific fields (fee-market fields, access
lists, chain fee-abstraction fields, ...) a formatted transaction carries:
every legal one is present (None when the node sent nothing) and no
other one is.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from chainfmt.codec import to_quantity
from chainfmt.exceptions import (
    ConflictingOverrideError,
    MalformedFieldError,
    RegistrationError,
    UnknownTransactionTypeError,
)

logger = logging.getLogger(__name__)


def is_present(request: Mapping[str, Any], name: str) -> bool:
    return request.get(name) is not None


@dataclass(frozen=True)
class TransactionVariant:
    """One case of the transaction sum type, keyed by its type code."""

    name: str
    type_code: int
    fields: frozenset[str] = frozenset()            # on formatted transactions
    request_fields: frozenset[str] = frozenset()    # accepted on outbound requests
    required: frozenset[str] = frozenset()          # must be set on outbound requests
    infer: Callable[[Mapping[str, Any]], bool] | None = None
    chain_specific: bool = False

    @property
    def type_hex(self) -> str:
        return hex(self.type_code)


LEGACY = TransactionVariant(
    name="legacy",
    type_code=0x0,
    fields=frozenset({"gasPrice"}),
    request_fields=frozenset({"gasPrice"}),
    infer=lambda r: is_present(r, "gasPrice"),
)

EIP2930 = TransactionVariant(
    name="eip2930",
    type_code=0x1,
    fields=frozenset({"gasPrice", "accessList", "yParity"}),
    request_fields=frozenset({"gasPrice", "accessList"}),
    infer=lambda r: is_present(r, "gasPrice") and is_present(r, "accessList"),
)

EIP1559 = TransactionVariant(
    name="eip1559",
    type_code=0x2,
    fields=frozenset({"gasPrice", "maxFeePerGas", "maxPriorityFeePerGas", "accessList", "yParity"}),
    request_fields=frozenset({"maxFeePerGas", "maxPriorityFeePerGas", "accessList"}),
    infer=lambda r: is_present(r, "maxFeePerGas") or is_present(r, "maxPriorityFeePerGas"),
)

EIP4844 = TransactionVariant(
    name="eip4844",
    type_code=0x3,
    fields=EIP1559.fields | {"maxFeePerBlobGas", "blobVersionedHashes"},
    request_fields=EIP1559.request_fields | {"maxFeePerBlobGas", "blobVersionedHashes"},
    infer=lambda r: is_present(r, "maxFeePerBlobGas") or is_present(r, "blobVersionedHashes"),
)


class ResolvedTransaction(Mapping[str, Any]):
    """A raw transaction payload tagged with the variant it resolved to.

    Chain overrides read it like the raw payload and take the variant from
    `.variant`, so an unknown type code formatted under the fallback policy
    gets the same chain fields as the fallback variant.
    """

    def __init__(self, raw: Mapping[str, Any], variant: TransactionVariant) -> None:
        self._raw = raw
        self.variant = variant

    def __getitem__(self, key: str) -> Any:
        return self._raw[key]

    def __iter__(self):
        return iter(self._raw)

    def __len__(self) -> int:
        return len(self._raw)


def resolved_variant(raw: Mapping[str, Any]) -> TransactionVariant | None:
    """The variant a payload was tagged with, or None for an untagged payload."""
    return raw.variant if isinstance(raw, ResolvedTransaction) else None


# Inference order for untyped requests: most specific first.
GENERIC_VARIANTS = (EIP4844, EIP1559, EIP2930, LEGACY)

GENERIC_VARIANT_FIELDS = frozenset().union(*(v.fields for v in GENERIC_VARIANTS))
GENERIC_REQUEST_VARIANT_FIELDS = frozenset().union(*(v.request_fields for v in GENERIC_VARIANTS))


class TransactionTypes:
    """The variant table for one chain: generic variants plus the chain's own."""

    def __init__(
        self,
        chain: str,
        variants: Iterable[TransactionVariant],
        fallback: str | None = None,
    ) -> None:
        self.chain = chain
        self._variants: tuple[TransactionVariant, ...] = tuple(variants)
        self._by_name: dict[str, TransactionVariant] = {}
        self._by_code: dict[int, TransactionVariant] = {}
        for variant in self._variants:
            if variant.name in self._by_name:
                raise RegistrationError(
                    f"Duplicate transaction type name {variant.name!r} on chain {chain!r}"
                )
            if variant.type_code in self._by_code:
                raise RegistrationError(
                    f"Transaction type code {variant.type_hex} on chain {chain!r} is "
                    f"claimed by both {self._by_code[variant.type_code].name!r} "
                    f"and {variant.name!r}"
                )
            self._by_name[variant.name] = variant
            self._by_code[variant.type_code] = variant

        if fallback and fallback not in self._by_name:
            raise RegistrationError(
                f"Fallback transaction type {fallback!r} is not defined on chain {chain!r}"
            )
        self.fallback = fallback or None

        self.variant_fields = frozenset().union(*(v.fields for v in self._variants))
        self.request_variant_fields = frozenset().union(
            *(v.request_fields for v in self._variants)
        )

    def __iter__(self):
        return iter(self._variants)

    def __len__(self) -> int:
        return len(self._variants)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(v.name for v in self._variants)

    def get(self, name: str) -> TransactionVariant | None:
        return self._by_name.get(name)

    def resolve(self, raw: Mapping[str, Any]) -> TransactionVariant:
        """Select the variant for a raw transaction payload.

        A payload without a `type` tag predates typed envelopes and is legacy.
        """
        tag = raw.get("type")
        if tag is None:
            return self._by_name["legacy"]
        variant = self._by_code.get(to_quantity(tag, "type"))
        if variant is not None:
            return variant
        if self.fallback:
            logger.warning(
                "Unknown transaction type %r on chain %s; formatting as %s",
                tag,
                self.chain,
                self.fallback,
            )
            return self._by_name[self.fallback]
        raise UnknownTransactionTypeError(tag, self.chain)

    def tag(self, raw: Mapping[str, Any]) -> ResolvedTransaction:
        """Resolve `raw` once and carry the variant along with it."""
        if isinstance(raw, ResolvedTransaction):
            return raw
        return ResolvedTransaction(raw, self.resolve(raw))

    def conform(self, result: dict[str, Any]) -> None:
        """Make a merged transaction carry exactly its variant's fields.

        Legal fields the formatters left unset become None. A variant field
        that is illegal for the variant can only come from a chain override,
        which is a misconfigured chain rather than bad input.
        """
        variant = self._by_name.get(result.get("type"))
        if variant is None:
            raise ConflictingOverrideError(
                f"Transaction type {result.get('type')!r} is not a known variant "
                f"on chain {self.chain!r}"
            )
        illegal = (set(result) & self.variant_fields) - variant.fields
        if illegal:
            raise ConflictingOverrideError(
                f"Fields {sorted(illegal)} are not legal on {variant.name} transactions "
                f"on chain {self.chain!r}",
                details={"type": variant.name, "fields": sorted(illegal)},
            )
        for name in variant.fields:
            result.setdefault(name, None)

    def infer(self, request: Mapping[str, Any]) -> TransactionVariant | None:
        """Pick the variant for an outbound request.

        An explicit `type` (variant name or type code) wins; otherwise each
        variant's predicate is tried in table order. Returns None when the
        request carries nothing that decides the type; the node picks then.
        """
        tag = request.get("type")
        if tag is not None:
            variant = self._by_name.get(tag) if isinstance(tag, str) else None
            if variant is None:
                try:
                    variant = self._by_code.get(to_quantity(tag, "type"))
                except MalformedFieldError:
                    variant = None
            if variant is None:
                raise UnknownTransactionTypeError(tag, self.chain)
            return variant
        for variant in self._variants:
            if variant.infer is not None and variant.infer(request):
                return variant
        return None
