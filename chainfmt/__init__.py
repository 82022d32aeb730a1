"""chainfmt: chain-aware formatting of Ethereum JSON-RPC blocks and transactions."""

__version__ = "0.1.0"

from chainfmt.chains import get_chain
from chainfmt.client import RpcClient
from chainfmt.models import Entity
from chainfmt.registry import FormatterRegistry, build_registry

__all__ = [
    "Entity",
    "FormatterRegistry",
    "RpcClient",
    "__version__",
    "build_registry",
    "get_chain",
]
