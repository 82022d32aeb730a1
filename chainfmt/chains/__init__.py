"""
Chain definitions for chainfmt.

Provides `get_chain()`, which looks a chain up by name or chain id.

Usage:
    from chainfmt.chains import get_chain
    chain = get_chain("celo")
"""

from __future__ import annotations

from chainfmt.chains import celo as _celo
from chainfmt.chains.base import Chain
from chainfmt.exceptions import UnknownChainError

mainnet = Chain(
    id=1,
    name="mainnet",
    network="ethereum",
    rpc_url="https://cloudflare-eth.com",
)

celo = Chain(
    id=42220,
    name="celo",
    network="celo",
    rpc_url="https://forno.celo.org",
    native_currency="CELO",
    formatters=_celo.FORMATTERS,
    transaction_types=_celo.TRANSACTION_TYPES,
)

celo_alfajores = Chain(
    id=44787,
    name="celo_alfajores",
    network="celo-alfajores",
    rpc_url="https://alfajores-forno.celo-testnet.org",
    native_currency="CELO",
    formatters=_celo.FORMATTERS,
    transaction_types=_celo.TRANSACTION_TYPES,
    testnet=True,
)

CHAINS: dict[str, Chain] = {c.name: c for c in (mainnet, celo, celo_alfajores)}

SUPPORTED_CHAINS = sorted(CHAINS)


def get_chain(name_or_id: str | int) -> Chain:
    """
    Return the chain registered under a name ("celo") or chain id (42220).

    Raises:
        UnknownChainError: No chain matches.
    """
    if isinstance(name_or_id, str):
        key = name_or_id.strip().lower()
        if key in CHAINS:
            return CHAINS[key]
        if key.isdigit():
            name_or_id = int(key)
    if isinstance(name_or_id, int):
        for chain in CHAINS.values():
            if chain.id == name_or_id:
                return chain
    raise UnknownChainError(
        f"Unknown chain: {name_or_id!r}. Supported: {SUPPORTED_CHAINS}",
        details={"chain": str(name_or_id)},
    )


__all__ = ["CHAINS", "SUPPORTED_CHAINS", "Chain", "celo", "celo_alfajores", "get_chain", "mainnet"]
