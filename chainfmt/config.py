"""
Config loading for chainfmt.

Sources (in precedence order, highest first):
  1. Environment variables (CHAINFMT_*)
  2. ~/.chainfmt/config.toml
  3. Built-in defaults

Usage:
    from chainfmt.config import load_config
    config = load_config()
    print(config.rpc.url)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import toml

from chainfmt.exceptions import ConfigInvalidError

# Default config directory and file
DEFAULT_CONFIG_DIR = Path.home() / ".chainfmt"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

# Environment variable → config key mapping
# Format: (env_var_name, dotted_config_path, type_converter)
_ENV_OVERRIDES: list[tuple[str, str, type]] = [
    ("CHAINFMT_RPC_URL", "rpc.url", str),
    ("CHAINFMT_RPC_TIMEOUT", "rpc.timeout_seconds", float),
    ("CHAINFMT_CHAIN", "chain.name", str),
    ("CHAINFMT_UNKNOWN_TYPE_FALLBACK", "formatting.unknown_type_fallback", str),
    ("CHAINFMT_LOG_LEVEL", "logging.level", str),
    ("CHAINFMT_OUTPUT_FORMAT", "output.default_format", str),
]

VALID_FORMATS = {"json", "jsonl", "table"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class RPCConfig:
    """JSON-RPC endpoint configuration. An empty url means the chain's default."""

    url: str = ""
    timeout_seconds: float = 30.0


@dataclass
class ChainConfig:
    """Which chain definition to format for."""

    name: str = "celo"


@dataclass
class FormattingConfig:
    """Formatter registry policy."""

    unknown_type_fallback: str = ""     # "" = strict; otherwise a variant name, e.g. "legacy"
    lint_overrides: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class OutputConfig:
    """Output formatting defaults."""

    default_format: str = "json"        # json | jsonl | table
    color: bool = True


@dataclass
class ChainfmtConfig:
    """Full configuration object. Passed via Click context to all commands."""

    rpc: RPCConfig = field(default_factory=RPCConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    formatting: FormattingConfig = field(default_factory=FormattingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_config(path: str | None = None) -> ChainfmtConfig:
    """
    Load configuration from TOML file + environment variable overrides.

    Args:
        path: Override config file path. If None, uses CHAINFMT_CONFIG_PATH
              env var or default (~/.chainfmt/config.toml).

    Returns:
        ChainfmtConfig with all values resolved.

    Raises:
        ConfigInvalidError: Config file exists but is invalid TOML or values.
    """
    config_path = _resolve_config_path(path)

    raw: dict = {}
    if config_path.exists():
        try:
            raw = toml.load(str(config_path))
        except toml.TomlDecodeError as e:
            raise ConfigInvalidError(f"Invalid TOML in {config_path}: {e}") from e

    config = _dict_to_config(raw)
    _apply_env_overrides(config)
    _validate_config(config)

    return config


def save_config(config: ChainfmtConfig, path: str | None = None) -> Path:
    """
    Serialize ChainfmtConfig to TOML and write to disk.

    Returns the path where config was written.
    """
    config_path = _resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "rpc": {
            "url": config.rpc.url,
            "timeout_seconds": config.rpc.timeout_seconds,
        },
        "chain": {
            "name": config.chain.name,
        },
        "formatting": {
            "unknown_type_fallback": config.formatting.unknown_type_fallback,
            "lint_overrides": config.formatting.lint_overrides,
        },
        "logging": {
            "level": config.logging.level,
        },
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
    }

    with open(config_path, "w") as f:
        toml.dump(data, f)

    return config_path


def get_default_config_path() -> Path:
    """Return the default config file path."""
    return DEFAULT_CONFIG_PATH


# ──────────────────────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────────────────────


def _resolve_config_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get("CHAINFMT_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def _dict_to_config(raw: dict) -> ChainfmtConfig:
    """Build ChainfmtConfig from raw TOML dict, applying defaults for missing keys."""
    config = ChainfmtConfig()

    rpc = raw.get("rpc", {})
    config.rpc.url = rpc.get("url", "")
    try:
        config.rpc.timeout_seconds = float(rpc.get("timeout_seconds", 30.0))
    except (ValueError, TypeError) as e:
        raise ConfigInvalidError(f"rpc.timeout_seconds must be a number: {e}") from e

    chain = raw.get("chain", {})
    config.chain.name = str(chain.get("name", "celo"))

    formatting = raw.get("formatting", {})
    config.formatting.unknown_type_fallback = formatting.get("unknown_type_fallback", "")
    config.formatting.lint_overrides = bool(formatting.get("lint_overrides", True))

    log = raw.get("logging", {})
    config.logging.level = str(log.get("level", "WARNING"))

    output = raw.get("output", {})
    config.output.default_format = output.get("default_format", "json")
    config.output.color = bool(output.get("color", True))

    return config


def _apply_env_overrides(config: ChainfmtConfig) -> None:
    """Apply environment variable overrides to a loaded config."""
    if os.environ.get("CHAINFMT_NO_COLOR"):
        config.output.color = False

    for env_var, dotted_key, converter in _ENV_OVERRIDES:
        val = os.environ.get(env_var)
        if val is None:
            continue
        section, key = dotted_key.split(".", 1)
        section_obj = getattr(config, section)
        try:
            setattr(section_obj, key, converter(val))
        except (ValueError, TypeError) as e:
            raise ConfigInvalidError(
                f"Invalid value for {env_var}={val!r}: {e}"
            ) from e


def _validate_config(config: ChainfmtConfig) -> None:
    """Validate config values. Raises ConfigInvalidError on invalid values."""
    if config.rpc.timeout_seconds <= 0:
        raise ConfigInvalidError(
            f"rpc.timeout_seconds must be positive, got {config.rpc.timeout_seconds}"
        )
    if config.output.default_format not in VALID_FORMATS:
        raise ConfigInvalidError(
            f"output.default_format must be one of {sorted(VALID_FORMATS)}, "
            f"got {config.output.default_format!r}"
        )
    config.logging.level = config.logging.level.upper()
    if config.logging.level not in VALID_LOG_LEVELS:
        raise ConfigInvalidError(
            f"logging.level must be one of {sorted(VALID_LOG_LEVELS)}, "
            f"got {config.logging.level!r}"
        )
    if config.rpc.url and not config.rpc.url.startswith(("http://", "https://")):
        raise ConfigInvalidError(f"rpc.url must be an http(s) URL, got {config.rpc.url!r}")
