"""
Formatter registry.

One registry is built per client, at construction time, and passed to
every call site that formats. Registering a chain resolves its effective
formatters once: field schemas, transaction variants and the checks on
its descriptors all happen here rather than per call. After freeze() the
table is read-only.

Usage:
    registry = FormatterRegistry()
    registry.register(celo)
    registry.freeze()
    block = registry.format_block("celo", raw_block)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from functools import partial
from typing import Any

from chainfmt.chains.base import Chain
from chainfmt.exceptions import ConflictingOverrideError, RegistrationError, UnknownChainError
from chainfmt.formatters.base import IDENTITY, Formatter, FormatterDescriptor, resolve_fields
from chainfmt.formatters.block import BLOCK_FIELDS, format_block, null_seal_fields
from chainfmt.formatters.transaction import (
    COMMON_FIELDS,
    TRANSACTION_FIELDS,
    format_transaction,
    null_block_association,
)
from chainfmt.formatters.transaction_request import (
    COMMON_REQUEST_FIELDS,
    TRANSACTION_REQUEST_FIELDS,
    format_transaction_request,
)
from chainfmt.formatters.types import GENERIC_VARIANTS, TransactionTypes, TransactionVariant
from chainfmt.models import BLOCK, ENTITY_KINDS, TRANSACTION, TRANSACTION_REQUEST, Entity

logger = logging.getLogger(__name__)

BASE_FIELDS = {
    BLOCK: BLOCK_FIELDS,
    TRANSACTION: TRANSACTION_FIELDS,
    TRANSACTION_REQUEST: TRANSACTION_REQUEST_FIELDS,
}


@dataclass(frozen=True)
class ChainFormatters:
    """The effective formatters for one chain."""

    chain: Chain
    block: Formatter
    transaction: Formatter
    transaction_request: Formatter
    transaction_types: TransactionTypes

    def for_kind(self, kind: str) -> Formatter:
        return {
            BLOCK: self.block,
            TRANSACTION: self.transaction,
            TRANSACTION_REQUEST: self.transaction_request,
        }[kind]


class FormatterRegistry:
    """Chain name -> effective formatters, filled once and then frozen."""

    def __init__(
        self,
        chains: Iterable[Chain] = (),
        *,
        unknown_type_fallback: str | None = None,
        lint_overrides: bool = True,
    ) -> None:
        self._unknown_type_fallback = unknown_type_fallback or None
        self._lint_overrides = lint_overrides
        self._by_name: dict[str, ChainFormatters] = {}
        self._by_id: dict[int, ChainFormatters] = {}
        self._frozen = False
        for chain in chains:
            self.register(chain)

    # ──────────────────────────────────────────────────────────────
    # Registration
    # ──────────────────────────────────────────────────────────────

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(self, chain: Chain) -> ChainFormatters:
        """
        Resolve and store the effective formatters for `chain`.

        Raises:
            RegistrationError: Registry frozen, chain already registered,
                unknown entity kind, or colliding transaction types.
            ConflictingOverrideError: A descriptor excludes a field the base
                shape does not have, or declares a transaction field that no
                transaction variant can carry.
        """
        if self._frozen:
            raise RegistrationError(
                f"Cannot register chain {chain.name!r}: registry is frozen",
                details={"chain": chain.name},
            )
        if chain.name in self._by_name or chain.id in self._by_id:
            raise RegistrationError(
                f"Chain {chain.name!r} (id {chain.id}) is already registered",
                details={"chain": chain.name},
            )

        unknown_kinds = set(chain.formatters) - set(ENTITY_KINDS)
        if unknown_kinds:
            raise RegistrationError(
                f"Chain {chain.name!r} declares formatters for unknown entity kinds "
                f"{sorted(unknown_kinds)}",
                details={"chain": chain.name, "kinds": sorted(unknown_kinds)},
            )

        descriptors = {kind: chain.formatters.get(kind, IDENTITY) for kind in ENTITY_KINDS}
        for kind, descriptor in descriptors.items():
            self._check_exclusions(chain, kind, descriptor)
            if self._lint_overrides and descriptor.reintroduced:
                logger.warning(
                    "Chain %s %s override re-adds excluded fields %s; "
                    "the override's values replace the base ones",
                    chain.name,
                    kind,
                    sorted(descriptor.reintroduced),
                )

        types = self._build_types(chain, descriptors[TRANSACTION], descriptors[TRANSACTION_REQUEST])
        self._check_transaction_overrides(chain, descriptors[TRANSACTION], descriptors[TRANSACTION_REQUEST], types)

        tx_descriptor = descriptors[TRANSACTION]
        transaction = Formatter(
            kind=TRANSACTION,
            chain=chain.name,
            base=partial(format_transaction, types=types),
            fields=resolve_fields(TRANSACTION_FIELDS, tx_descriptor) | types.variant_fields,
            descriptor=tx_descriptor,
            hooks=(lambda raw, result, fields: types.conform(result), null_block_association),
            prepare=types.tag,
        )
        block = Formatter(
            kind=BLOCK,
            chain=chain.name,
            base=partial(format_block, format_transaction=transaction.format),
            fields=resolve_fields(BLOCK_FIELDS, descriptors[BLOCK]),
            descriptor=descriptors[BLOCK],
            hooks=(null_seal_fields,),
        )
        request_descriptor = descriptors[TRANSACTION_REQUEST]
        transaction_request = Formatter(
            kind=TRANSACTION_REQUEST,
            chain=chain.name,
            base=partial(
                format_transaction_request,
                types=types,
                excluded=request_descriptor.exclude - request_descriptor.fields,
            ),
            fields=resolve_fields(TRANSACTION_REQUEST_FIELDS, request_descriptor)
            | types.request_variant_fields,
            descriptor=request_descriptor,
        )

        formatters = ChainFormatters(
            chain=chain,
            block=block,
            transaction=transaction,
            transaction_request=transaction_request,
            transaction_types=types,
        )
        self._by_name[chain.name] = formatters
        self._by_id[chain.id] = formatters
        logger.debug(
            "Registered chain %s (id %d): transaction types %s",
            chain.name,
            chain.id,
            ", ".join(types.names),
        )
        return formatters

    def _check_exclusions(self, chain: Chain, kind: str, descriptor: FormatterDescriptor) -> None:
        unknown = descriptor.exclude - BASE_FIELDS[kind]
        if unknown:
            raise ConflictingOverrideError(
                f"Chain {chain.name!r} excludes {kind} fields that do not exist: {sorted(unknown)}",
                details={"chain": chain.name, "kind": kind, "fields": sorted(unknown)},
            )

    def _build_types(
        self,
        chain: Chain,
        tx_descriptor: FormatterDescriptor,
        request_descriptor: FormatterDescriptor,
    ) -> TransactionTypes:
        # Chain variants first: their predicates are more specific than the
        # generic fee-field rules when inferring a request's type.
        variants = [
            _without_excluded(v, tx_descriptor, request_descriptor)
            for v in (*chain.transaction_types, *GENERIC_VARIANTS)
        ]
        return TransactionTypes(chain.name, variants, fallback=self._unknown_type_fallback)

    def _check_transaction_overrides(
        self,
        chain: Chain,
        tx_descriptor: FormatterDescriptor,
        request_descriptor: FormatterDescriptor,
        types: TransactionTypes,
    ) -> None:
        orphaned = tx_descriptor.fields - COMMON_FIELDS - types.variant_fields
        if orphaned:
            raise ConflictingOverrideError(
                f"Chain {chain.name!r} transaction override declares fields no transaction "
                f"type can carry: {sorted(orphaned)}",
                details={"chain": chain.name, "kind": TRANSACTION, "fields": sorted(orphaned)},
            )
        orphaned = request_descriptor.fields - COMMON_REQUEST_FIELDS - types.request_variant_fields
        if orphaned:
            raise ConflictingOverrideError(
                f"Chain {chain.name!r} transaction request override declares fields no "
                f"transaction type accepts: {sorted(orphaned)}",
                details={"chain": chain.name, "kind": TRANSACTION_REQUEST, "fields": sorted(orphaned)},
            )

    # ──────────────────────────────────────────────────────────────
    # Lookup
    # ──────────────────────────────────────────────────────────────

    @property
    def chains(self) -> list[Chain]:
        return [f.chain for f in self._by_name.values()]

    def __contains__(self, chain: Chain | str | int) -> bool:
        if isinstance(chain, Chain):
            return chain.name in self._by_name
        if isinstance(chain, int):
            return chain in self._by_id
        return chain in self._by_name

    def formatters(self, chain: Chain | str | int) -> ChainFormatters:
        """
        Return the effective formatters for a registered chain.

        Raises:
            UnknownChainError: The chain was never registered.
        """
        if isinstance(chain, Chain):
            found = self._by_name.get(chain.name)
        elif isinstance(chain, int):
            found = self._by_id.get(chain)
        else:
            found = self._by_name.get(chain)
        if found is None:
            raise UnknownChainError(
                f"Chain {getattr(chain, 'name', chain)!r} is not registered",
                details={"registered": sorted(self._by_name)},
            )
        return found

    def format_block(self, chain: Chain | str | int, raw: Mapping[str, Any]) -> Entity:
        return self.formatters(chain).block.format(raw)

    def format_transaction(self, chain: Chain | str | int, raw: Mapping[str, Any]) -> Entity:
        return self.formatters(chain).transaction.format(raw)

    def format_transaction_request(
        self, chain: Chain | str | int, request: Mapping[str, Any]
    ) -> Entity:
        return self.formatters(chain).transaction_request.format(request)


def _without_excluded(
    variant: TransactionVariant,
    tx_descriptor: FormatterDescriptor,
    request_descriptor: FormatterDescriptor,
) -> TransactionVariant:
    """Drop excluded fields from a variant unless the override re-adds them."""
    tx_removed = tx_descriptor.exclude - tx_descriptor.fields
    request_removed = request_descriptor.exclude - request_descriptor.fields
    if not (variant.fields & tx_removed or variant.request_fields & request_removed):
        return variant
    return replace(
        variant,
        fields=variant.fields - tx_removed,
        request_fields=variant.request_fields - request_removed,
        required=variant.required - request_removed,
    )


def build_registry(
    chains: Iterable[Chain],
    *,
    unknown_type_fallback: str | None = None,
    lint_overrides: bool = True,
) -> FormatterRegistry:
    """Register `chains` and freeze the registry."""
    registry = FormatterRegistry(
        chains,
        unknown_type_fallback=unknown_type_fallback,
        lint_overrides=lint_overrides,
    )
    registry.freeze()
    return registry
