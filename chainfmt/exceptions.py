"""
Custom exception hierarchy for chainfmt.

Each exception maps to a specific CLI exit code and JSON error_code field.
cli.py catches all ChainfmtError subclasses and formats them as JSON output.

Exit code mapping:
  1: ChainfmtError (generic error)
  2: RPCError (JSON-RPC error object, HTTP error, rate limit)
  3: NetworkError (timeout, connection refused)
  4: DataError (malformed field, unknown transaction type, bad request)
  5: ConfigError (config file, chain registration, unknown chain)
"""

from __future__ import annotations

from typing import Any


class ChainfmtError(Exception):
    """Base exception for all chainfmt errors."""

    exit_code: int = 1
    error_code: str = "unknown_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class RPCError(ChainfmtError):
    """The RPC endpoint returned an error response."""

    exit_code = 2
    error_code = "rpc_error"


class RateLimitError(RPCError):
    """RPC endpoint rate limit exceeded."""

    error_code = "rate_limited"

    def __init__(self, message: str, retry_after: int = 60, **kwargs) -> None:
        super().__init__(message, details={"retry_after_seconds": retry_after})
        self.retry_after = retry_after


class NetworkError(ChainfmtError):
    """Network connectivity issue: timeout or connection failure."""

    exit_code = 3
    error_code = "network_error"


class NetworkTimeoutError(NetworkError):
    """Request timed out."""

    error_code = "network_timeout"


class ConnectionFailedError(NetworkError):
    """Could not connect to the RPC endpoint."""

    error_code = "connection_failed"


class DataError(ChainfmtError):
    """A payload could not be turned into a well-formed entity."""

    exit_code = 4
    error_code = "data_error"


class MalformedFieldError(DataError):
    """A field present in the payload failed scalar decoding."""

    error_code = "malformed_field"

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(
            f"Malformed field {field!r}: {reason}",
            details={"field": field, "value": repr(value), "reason": reason},
        )
        self.field = field
        self.value = value
        self.reason = reason


class UnknownTransactionTypeError(DataError):
    """The transaction `type` tag has no registered variant."""

    error_code = "unknown_transaction_type"

    def __init__(self, type_tag: Any, chain: str) -> None:
        super().__init__(
            f"Unknown transaction type {type_tag!r} on chain {chain!r}",
            details={"type": repr(type_tag), "chain": chain},
        )
        self.type_tag = type_tag
        self.chain = chain


class InvalidTransactionRequestError(DataError):
    """An outbound transaction request combines fields that cannot coexist."""

    error_code = "invalid_transaction_request"


class BlockNotFoundError(DataError):
    """The node returned no block for the given selector."""

    error_code = "block_not_found"


class TransactionNotFoundError(DataError):
    """The node returned no transaction for the given selector."""

    error_code = "transaction_not_found"


class ConfigError(ChainfmtError):
    """Configuration is missing or malformed."""

    exit_code = 5
    error_code = "config_error"


class ConfigMissingError(ConfigError):
    """Config file does not exist; user should run `chainfmt config init`."""

    error_code = "config_missing"


class ConfigInvalidError(ConfigError):
    """Config file exists but contains invalid TOML or invalid values."""

    error_code = "config_invalid"


class RegistrationError(ConfigError):
    """A chain's formatter descriptors could not be registered."""

    error_code = "registration_error"


class ConflictingOverrideError(RegistrationError):
    """A chain override produces a field no known entity shape can carry."""

    error_code = "conflicting_override"


class UnknownChainError(ConfigError):
    """No chain is defined under the given name or id."""

    error_code = "unknown_chain"
