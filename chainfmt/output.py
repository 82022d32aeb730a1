"""Output format routing for chainfmt.

Converts formatted entities and result dicts to the requested format:
json, jsonl, table.

Design rules:
- JSON: 2-space indent, entities rendered as plain objects, utf-8
- JSONL: one JSON object per line; a block with full transactions emits
  the block header line followed by one line per transaction
- Table: Rich-formatted field/value table; null dim, excluded fields absent

All functions return strings. The caller writes to stdout.
"""

from __future__ import annotations

import io
import json
from collections.abc import Mapping
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from chainfmt.models import BLOCK, Entity

VALID_FORMATS = {"json", "jsonl", "table"}


class EntityEncoder(json.JSONEncoder):
    """JSON encoder that handles Entity values and other read-only mappings."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Entity):
            return obj.to_dict()
        if isinstance(obj, Mapping):
            return dict(obj)
        return super().default(obj)


def format_output(data: Any, fmt: str, color: bool = True) -> str:
    """
    Format data for stdout output.

    Args:
        data: An Entity, a result dict, a list, or any JSON-serialisable value.
        fmt: "json" | "jsonl" | "table"
        color: Allow styles in table output. Ignored by json and jsonl.

    Returns:
        Formatted string ready to write to stdout.

    Raises:
        ValueError: If fmt is not a recognised format.
    """
    fmt = fmt.lower()
    if fmt not in VALID_FORMATS:
        raise ValueError(f"Unknown format {fmt!r}. Valid: {sorted(VALID_FORMATS)}")

    if fmt == "jsonl":
        return format_jsonl(data)
    elif fmt == "table":
        return format_table(data, color=color)
    return format_json(data)


# ── JSON ─────────────────────────────────────────────────────────────────────


def format_json(data: Any) -> str:
    """Pretty-print data as JSON (2-space indent)."""
    return json.dumps(data, indent=2, cls=EntityEncoder, ensure_ascii=False)


# ── JSONL ────────────────────────────────────────────────────────────────────


def format_jsonl(data: Any) -> str:
    """
    Format as JSONL (one object per line).

    A block whose transactions are full objects is split: the block without
    its transactions first, then each transaction on its own line.
    """
    lines: list[str] = []

    if isinstance(data, Entity) and data.kind == BLOCK and _has_full_transactions(data):
        header = {k: v for k, v in data.to_dict().items() if k != "transactions"}
        header["transactionCount"] = len(data["transactions"])
        lines.append(json.dumps(header, cls=EntityEncoder))
        for tx in data["transactions"]:
            lines.append(json.dumps(tx, cls=EntityEncoder))
    elif isinstance(data, list):
        for item in data:
            lines.append(json.dumps(item, cls=EntityEncoder))
    else:
        lines.append(json.dumps(data, cls=EntityEncoder))

    return "\n".join(lines)


def _has_full_transactions(block: Entity) -> bool:
    txs = block.get("transactions") or ()
    return bool(txs) and isinstance(txs[0], Entity)


# ── Table ────────────────────────────────────────────────────────────────────


def format_table(data: Any, color: bool = True) -> str:
    """
    Format as a Rich terminal table.

    Handles:
    - Entities (field/value rows, sorted by field name)
    - Chain listings (dict with 'chains')
    - Generic fallback (JSON)
    """
    buf = io.StringIO()
    console = Console(file=buf, highlight=False, markup=True, width=120, no_color=not color)

    if isinstance(data, Entity):
        _render_entity_table(console, data)
    elif isinstance(data, dict) and "chains" in data:
        _render_chains_table(console, data)
    else:
        console.print_json(json.dumps(data, cls=EntityEncoder))

    return buf.getvalue()


def _cell(value: Any) -> Text:
    if value is None:
        return Text("null", style="dim")
    if isinstance(value, Entity):
        return Text(f"{value.kind} {value.get('hash', '')}".strip())
    if isinstance(value, (list, tuple)):
        if value and all(isinstance(v, Entity) for v in value):
            return Text(f"{len(value)} transactions")
        return Text(json.dumps(list(value), cls=EntityEncoder))
    if isinstance(value, Mapping):
        return Text(json.dumps(dict(value), cls=EntityEncoder))
    return Text(str(value))


def _render_entity_table(console: Console, entity: Entity) -> None:
    table = Table(
        title=f"{entity.chain} {entity.kind}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")

    for name in sorted(entity):
        table.add_row(name, _cell(entity[name]))

    console.print(table)


def _render_chains_table(console: Console, data: dict) -> None:
    table = Table(title="Registered chains", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("Id", justify="right")
    table.add_column("Excluded block fields")
    table.add_column("Transaction types")

    for chain in data.get("chains", []):
        table.add_row(
            chain.get("name", ""),
            str(chain.get("id", "")),
            ", ".join(chain.get("excluded_fields", {}).get("block", [])) or "-",
            ", ".join(t["name"] for t in chain.get("transaction_types", [])) or "-",
        )

    console.print(table)
