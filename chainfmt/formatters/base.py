"""
Formatter descriptors and the merge engine.

A chain customises an entity kind with a FormatterDescriptor:

    FormatterDescriptor(
        exclude={"difficulty", "nonce"},     # fields the chain does not have
        format=format_celo_block,            # raw payload -> chain fields
        fields={"randomness"},               # keys format() may return
    )

The registry combines a descriptor with the base formatter for the kind
into one Formatter. Formatter.format() then runs, in this fixed order:

  1. base formatter on the raw payload
  2. drop every excluded field from the base result
  3. override formatter on the same raw payload
  4. override keys replace base keys; other base keys pass through
  5. state hooks (variant conformance, pending-state nulls)

A formatter may first `prepare` the raw payload; the transaction formatter
tags it with its resolved type variant so the base and override agree on
the variant.

An override may return a field that is also excluded. The field comes
back with the override's value; excluding only filters the base result.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from chainfmt.exceptions import ConflictingOverrideError
from chainfmt.models import Entity

FormatFn = Callable[[Mapping[str, Any]], dict[str, Any]]

# (raw payload, merged result, resolved schema) -> None; mutates the result
StateHook = Callable[[Mapping[str, Any], dict[str, Any], frozenset[str]], None]


@dataclass(frozen=True)
class FormatterDescriptor:
    """A chain's delta against the base shape of one entity kind."""

    exclude: frozenset[str] = frozenset()
    format: FormatFn | None = None
    fields: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "exclude", frozenset(self.exclude))
        object.__setattr__(self, "fields", frozenset(self.fields))

    @property
    def reintroduced(self) -> frozenset[str]:
        """Fields both excluded and returned by the override."""
        return self.exclude & self.fields


IDENTITY = FormatterDescriptor()


def resolve_fields(base_fields: Iterable[str], descriptor: FormatterDescriptor) -> frozenset[str]:
    """(base fields - excluded fields) | override fields."""
    return (frozenset(base_fields) - descriptor.exclude) | descriptor.fields


@dataclass(frozen=True)
class Formatter:
    """The effective formatter for one entity kind on one chain."""

    kind: str
    chain: str
    base: FormatFn
    fields: frozenset[str]
    descriptor: FormatterDescriptor = IDENTITY
    hooks: tuple[StateHook, ...] = field(default_factory=tuple)
    prepare: Callable[[Mapping[str, Any]], Mapping[str, Any]] | None = None

    @property
    def exclude(self) -> frozenset[str]:
        return self.descriptor.exclude

    def format(self, raw: Mapping[str, Any]) -> Entity:
        if self.prepare is not None:
            raw = self.prepare(raw)
        result = self.base(raw)

        for name in self.descriptor.exclude:
            result.pop(name, None)

        if self.descriptor.format is not None:
            overrides = self.descriptor.format(raw)
            undeclared = set(overrides) - self.descriptor.fields
            if undeclared:
                raise ConflictingOverrideError(
                    f"{self.chain} {self.kind} override returned undeclared fields "
                    f"{sorted(undeclared)}",
                    details={"chain": self.chain, "kind": self.kind, "fields": sorted(undeclared)},
                )
            result.update(overrides)

        for hook in self.hooks:
            hook(raw, result, self.fields)

        return Entity(self.kind, self.chain, self.fields, result)

    __call__ = format
