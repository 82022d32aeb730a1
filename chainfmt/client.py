"""
JSON-RPC client actions.

Fetches blocks and transactions from a node and returns them formatted
for the client's chain; formats and sends outbound transaction requests.

Design decisions:
- Uses async httpx for all HTTP calls (one POST per JSON-RPC request).
- Formatting happens synchronously on the resolved response. A payload
  that fails to format fails the whole action; no partial entities.
- Transport errors map onto the chainfmt exception hierarchy; nothing
  is retried here.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from chainfmt.chains.base import Chain
from chainfmt.codec import to_hex_quantity, to_quantity
from chainfmt.exceptions import (
    BlockNotFoundError,
    ConnectionFailedError,
    NetworkTimeoutError,
    RateLimitError,
    RPCError,
    TransactionNotFoundError,
)
from chainfmt.models import Entity
from chainfmt.registry import ChainFormatters, FormatterRegistry, build_registry

logger = logging.getLogger(__name__)

BLOCK_TAGS = {"latest", "earliest", "pending", "safe", "finalized"}


class RpcClient:
    """
    Async JSON-RPC client bound to one chain.

    The formatter registry is built once when the client is constructed
    (or passed in, already frozen) and only read afterwards.
    """

    def __init__(
        self,
        chain: Chain,
        url: str | None = None,
        *,
        registry: FormatterRegistry | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.chain = chain
        self.url = url or chain.rpc_url
        self.registry = registry or build_registry([chain])
        self._formatters: ChainFormatters = self.registry.formatters(chain)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this RpcClient created it."""
        if self._owns_client:
            await self._client.aclose()

    # ──────────────────────────────────────────────────────────────
    # Transport
    # ──────────────────────────────────────────────────────────────

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one JSON-RPC request and return its `result`."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        logger.debug("RPC %s %s -> %s", method, payload["params"], self.url)
        try:
            resp = await self._client.post(self.url, json=payload)
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError(f"RPC timeout calling {method}: {e}") from e
        except httpx.ConnectError as e:
            raise ConnectionFailedError(f"Cannot connect to {self.url}: {e}") from e

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After", "60")
            raise RateLimitError(
                f"RPC rate limit exceeded calling {method}",
                retry_after=int(retry_after) if retry_after.isdigit() else 60,
            )
        if resp.status_code >= 400:
            raise RPCError(
                f"RPC endpoint returned HTTP {resp.status_code} for {method}",
                details={"status": resp.status_code, "method": method},
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RPCError(f"RPC endpoint returned non-JSON response for {method}") from e

        error = data.get("error") if isinstance(data, dict) else None
        if error and not isinstance(error, dict):
            raise RPCError(f"{method} failed: {error}", details={"error": error, "method": method})
        if error:
            raise RPCError(
                f"{method} failed: {error.get('message', 'unknown error')}",
                details={"code": error.get("code"), "data": error.get("data"), "method": method},
            )
        if not isinstance(data, dict) or "result" not in data:
            raise RPCError(f"Malformed JSON-RPC response for {method}", details={"method": method})
        return data["result"]

    # ──────────────────────────────────────────────────────────────
    # Read actions
    # ──────────────────────────────────────────────────────────────

    async def get_block(
        self,
        block_number: int | None = None,
        block_hash: str | None = None,
        block_tag: str = "latest",
        include_transactions: bool = False,
    ) -> Entity:
        """
        Fetch a block by number, hash or tag.

        Raises:
            BlockNotFoundError: The node has no such block.
            MalformedFieldError / UnknownTransactionTypeError: The block
                (or one of its transactions) could not be formatted.
        """
        if block_hash is not None:
            raw = await self.request("eth_getBlockByHash", [block_hash, include_transactions])
            selector = block_hash
        else:
            selector = _block_selector(block_number, block_tag)
            raw = await self.request("eth_getBlockByNumber", [selector, include_transactions])

        if raw is None:
            raise BlockNotFoundError(
                f"Block {selector} not found on {self.chain.name}",
                details={"block": selector, "chain": self.chain.name},
            )
        return self._formatters.block.format(raw)

    async def get_transaction(
        self,
        hash: str | None = None,
        block_number: int | None = None,
        block_hash: str | None = None,
        block_tag: str | None = None,
        index: int | None = None,
    ) -> Entity:
        """
        Fetch a transaction by hash, or by block (number, hash or tag) and index.

        Raises:
            TransactionNotFoundError: The node has no such transaction.
            ValueError: Neither a hash nor a block + index was given.
        """
        if hash is not None:
            raw = await self.request("eth_getTransactionByHash", [hash])
            selector = hash
        elif index is None:
            raise ValueError("Provide a transaction hash, or a block and an index")
        elif block_hash is not None:
            raw = await self.request(
                "eth_getTransactionByBlockHashAndIndex", [block_hash, to_hex_quantity(index, "index")]
            )
            selector = f"{block_hash}[{index}]"
        else:
            block = _block_selector(block_number, block_tag or "latest")
            raw = await self.request(
                "eth_getTransactionByBlockNumberAndIndex", [block, to_hex_quantity(index, "index")]
            )
            selector = f"{block}[{index}]"

        if raw is None:
            raise TransactionNotFoundError(
                f"Transaction {selector} not found on {self.chain.name}",
                details={"transaction": selector, "chain": self.chain.name},
            )
        return self._formatters.transaction.format(raw)

    async def get_block_number(self) -> int:
        return to_quantity(await self.request("eth_blockNumber"), "blockNumber")

    async def get_chain_id(self) -> int:
        return to_quantity(await self.request("eth_chainId"), "chainId")

    # ──────────────────────────────────────────────────────────────
    # Write actions
    # ──────────────────────────────────────────────────────────────

    async def prepare_transaction_request(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """
        Validate a request for this chain and fill in what the node can tell us.

        Fills chainId from the chain, nonce from eth_getTransactionCount and
        gas from eth_estimateGas when they are missing. The request is
        validated before any network call, so an unsendable combination of
        fields fails without touching the node.
        """
        prepared = dict(request)
        self._formatters.transaction_request.format(prepared)

        if prepared.get("chainId") is None:
            prepared["chainId"] = self.chain.id
        if prepared.get("nonce") is None and prepared.get("from") is not None:
            count = await self.request("eth_getTransactionCount", [prepared["from"], "pending"])
            prepared["nonce"] = to_quantity(count, "nonce")
        if prepared.get("gas") is None:
            rpc = self._formatters.transaction_request.format(prepared).to_dict()
            prepared["gas"] = to_quantity(await self.request("eth_estimateGas", [rpc]), "gas")
        return prepared

    async def send_transaction(self, request: Mapping[str, Any]) -> str:
        """Format `request` for this chain and submit it with eth_sendTransaction."""
        rpc = self._formatters.transaction_request.format(request).to_dict()
        tx_hash = await self.request("eth_sendTransaction", [rpc])
        logger.info("Sent %s transaction %s", self.chain.name, tx_hash)
        return tx_hash

    # ──────────────────────────────────────────────────────────────
    # Offline formatting
    # ──────────────────────────────────────────────────────────────

    def format_block(self, raw: Mapping[str, Any]) -> Entity:
        return self._formatters.block.format(raw)

    def format_transaction(self, raw: Mapping[str, Any]) -> Entity:
        return self._formatters.transaction.format(raw)

    def format_transaction_request(self, request: Mapping[str, Any]) -> Entity:
        return self._formatters.transaction_request.format(request)


def _block_selector(block_number: int | None, block_tag: str) -> str:
    if block_number is not None:
        return to_hex_quantity(block_number, "blockNumber")
    if block_tag not in BLOCK_TAGS:
        raise ValueError(f"Unknown block tag {block_tag!r}. Valid: {sorted(BLOCK_TAGS)}")
    return block_tag
