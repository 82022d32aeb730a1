"""Click CLI entry point for chainfmt.

All commands are thin orchestration wrappers; business logic lives in
registry, formatters, client, config and output modules.

Exit codes:
  0: success
  1: usage error / unknown error
  2: RPC error, rate limit
  3: network error
  4: data error (malformed field, unknown tx type, invalid request, not found)
  5: config error (config file, chain registration, unknown chain)
"""

from __future__ import annotations

import asyncio
import json
import shutil
import sys
from pathlib import Path
from typing import Any

import click

from chainfmt import __version__
from chainfmt.chains import CHAINS, get_chain
from chainfmt.chains.base import Chain
from chainfmt.client import RpcClient
from chainfmt.config import (
    ChainfmtConfig,
    get_default_config_path,
    load_config,
    save_config,
)
from chainfmt.exceptions import ChainfmtError
from chainfmt.logging_setup import configure_logging
from chainfmt.models import BLOCK, TRANSACTION, TRANSACTION_REQUEST
from chainfmt.output import format_output
from chainfmt.registry import FormatterRegistry, build_registry

OUTPUT_FORMATS = ["json", "jsonl", "table"]

ENTITY_KIND_ARGS = {
    "block": BLOCK,
    "transaction": TRANSACTION,
    "transaction-request": TRANSACTION_REQUEST,
}


# ── Error handler ─────────────────────────────────────────────────────────────


def _output_error(err: ChainfmtError | Exception) -> None:
    """Write error JSON to stderr."""
    if isinstance(err, ChainfmtError):
        payload = err.to_dict()
        exit_code = err.exit_code
    else:
        payload = {"error": "cli_error", "message": str(err), "details": {}}
        exit_code = 1
    sys.stderr.write(json.dumps(payload) + "\n")
    sys.stderr.flush()
    sys.exit(exit_code)


def _registry_from_config(config: ChainfmtConfig, chain: Chain) -> FormatterRegistry:
    return build_registry(
        [chain],
        unknown_type_fallback=config.formatting.unknown_type_fallback or None,
        lint_overrides=config.formatting.lint_overrides,
    )


def _client_from_context(ctx: click.Context) -> RpcClient:
    config: ChainfmtConfig = ctx.obj["config"]
    chain = get_chain(ctx.obj["chain"])
    return RpcClient(
        chain,
        ctx.obj["rpc_url"] or config.rpc.url or None,
        registry=_registry_from_config(config, chain),
        timeout=config.rpc.timeout_seconds,
    )


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Config file path (default: ~/.chainfmt/config.toml)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Output format (overrides config default)",
)
@click.option("--chain", "chain_name", default=None, help="Chain name or id (overrides config)")
@click.option("--rpc-url", default=None, help="JSON-RPC endpoint (default: the chain's public RPC)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    output_format: str | None,
    chain_name: str | None,
    rpc_url: str | None,
    log_level: str | None,
) -> None:
    """chainfmt: chain-aware JSON-RPC block and transaction formatter."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except ChainfmtError:
        # On config errors, use defaults (so config init still works)
        config = ChainfmtConfig()

    configure_logging(log_level or config.logging.level)

    ctx.obj["config"] = config
    ctx.obj["format"] = output_format or config.output.default_format
    ctx.obj["config_path"] = config_path
    ctx.obj["chain"] = chain_name or config.chain.name
    ctx.obj["rpc_url"] = rpc_url


# ── Fetch commands ────────────────────────────────────────────────────────────


@cli.command("block")
@click.argument("number", required=False, type=click.IntRange(min=0))
@click.option("--hash", "block_hash", default=None, help="Block hash")
@click.option(
    "--tag",
    type=click.Choice(["latest", "earliest", "pending", "safe", "finalized"]),
    default="latest",
    show_default=True,
)
@click.option("--full", is_flag=True, help="Include full transaction objects")
@click.option("--format", "fmt", type=click.Choice(OUTPUT_FORMATS), default=None)
@click.pass_context
def block_command(
    ctx: click.Context,
    number: int | None,
    block_hash: str | None,
    tag: str,
    full: bool,
    fmt: str | None,
) -> None:
    """Fetch a block and print it formatted for the chain."""
    fmt = fmt or ctx.obj.get("format", "json")

    async def _run() -> Any:
        async with _client_from_context(ctx) as client:
            return await client.get_block(
                block_number=number,
                block_hash=block_hash,
                block_tag=tag,
                include_transactions=full,
            )

    try:
        block = asyncio.run(_run())
        click.echo(format_output(block, fmt, color=ctx.obj["config"].output.color))
    except ChainfmtError as e:
        _output_error(e)


@cli.command("tx")
@click.argument("tx_hash", required=False)
@click.option("--block", "block_number", type=click.IntRange(min=0), default=None)
@click.option("--index", type=click.IntRange(min=0), default=None)
@click.option("--format", "fmt", type=click.Choice(OUTPUT_FORMATS), default=None)
@click.pass_context
def tx_command(
    ctx: click.Context,
    tx_hash: str | None,
    block_number: int | None,
    index: int | None,
    fmt: str | None,
) -> None:
    """Fetch a transaction by hash, or by --block and --index."""
    fmt = fmt or ctx.obj.get("format", "json")

    if tx_hash is None and index is None:
        _output_error(ValueError("Provide a transaction hash, or --block and --index"))

    async def _run() -> Any:
        async with _client_from_context(ctx) as client:
            return await client.get_transaction(
                hash=tx_hash,
                block_number=block_number,
                index=index,
            )

    try:
        tx = asyncio.run(_run())
        click.echo(format_output(tx, fmt, color=ctx.obj["config"].output.color))
    except ChainfmtError as e:
        _output_error(e)


# ── Offline formatting ────────────────────────────────────────────────────────


@cli.command("format")
@click.argument("kind", type=click.Choice(sorted(ENTITY_KIND_ARGS)))
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option("--format", "fmt", type=click.Choice(OUTPUT_FORMATS), default=None)
@click.pass_context
def format_command(ctx: click.Context, kind: str, file_path: str, fmt: str | None) -> None:
    """Format a raw JSON payload from FILE (or - for stdin) without a node."""
    config: ChainfmtConfig = ctx.obj["config"]
    fmt = fmt or ctx.obj.get("format", "json")

    try:
        with click.open_file(file_path) as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        _output_error(ValueError(f"Cannot read JSON from {file_path}: {e}"))

    # A saved JSON-RPC response is accepted as well as the bare result
    if isinstance(payload, dict) and "result" in payload and "jsonrpc" in payload:
        payload = payload["result"]
    if not isinstance(payload, dict):
        _output_error(ValueError(f"Expected a JSON object in {file_path}"))

    try:
        chain = get_chain(ctx.obj["chain"])
        registry = _registry_from_config(config, chain)
        entity = registry.formatters(chain).for_kind(ENTITY_KIND_ARGS[kind]).format(payload)
        click.echo(format_output(entity, fmt, color=ctx.obj["config"].output.color))
    except ChainfmtError as e:
        _output_error(e)


@cli.command("chains")
@click.option("--format", "fmt", type=click.Choice(OUTPUT_FORMATS), default=None)
@click.pass_context
def chains_command(ctx: click.Context, fmt: str | None) -> None:
    """List chain definitions with their excluded fields and transaction types."""
    fmt = fmt or ctx.obj.get("format", "json")
    result = {"chains": [chain.to_dict() for chain in CHAINS.values()]}
    click.echo(format_output(result, fmt, color=ctx.obj["config"].output.color))


# ── Config commands ───────────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Manage chainfmt configuration."""


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing config")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Initialize default config at ~/.chainfmt/config.toml."""
    provided = ctx.obj.get("config_path")
    config_path = Path(provided) if provided else get_default_config_path()

    if config_path.exists() and not force:
        click.echo(
            json.dumps(
                {
                    "status": "already_exists",
                    "config_path": str(config_path),
                    "hint": "Use --force to reinitialize",
                }
            )
        )
        return

    status = "initialized"
    backup = None

    if config_path.exists() and force:
        backup = str(config_path) + ".bak"
        shutil.copy2(config_path, backup)
        status = "reinitialized"

    save_config(ChainfmtConfig(), str(config_path))

    result: dict[str, Any] = {
        "status": status,
        "config_path": str(config_path),
    }
    if backup:
        result["backup"] = backup
    click.echo(json.dumps(result))


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: ChainfmtConfig = ctx.obj["config"]
    provided = ctx.obj.get("config_path")

    result = {
        "config_path": provided or str(get_default_config_path()),
        "rpc": {
            "url": config.rpc.url,
            "timeout_seconds": config.rpc.timeout_seconds,
        },
        "chain": {"name": config.chain.name},
        "formatting": {
            "unknown_type_fallback": config.formatting.unknown_type_fallback,
            "lint_overrides": config.formatting.lint_overrides,
        },
        "logging": {"level": config.logging.level},
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
    }

    click.echo(format_output(result, "json"))


if __name__ == "__main__":
    cli()
