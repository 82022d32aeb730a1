"""Pytest fixtures shared across all chainfmt tests."""

from __future__ import annotations

import logging

import pytest

from chainfmt.chains import celo, mainnet
from chainfmt.config import (
    ChainConfig,
    ChainfmtConfig,
    FormattingConfig,
    LoggingConfig,
    OutputConfig,
    RPCConfig,
)
from chainfmt.registry import FormatterRegistry, build_registry

# ── Wire values ───────────────────────────────────────────────────────────────

SENDER = "0x" + "a1" * 20
RECIPIENT = "0x" + "b2" * 20
MINER = "0x" + "c3" * 20
FEE_CURRENCY = "0x765de816845861e75a25fca122bb6898b8b1282a"

BLOCK_HASH = "0x" + "11" * 32
PARENT_HASH = "0x" + "12" * 32
TX_HASH = "0x" + "22" * 32
ROOT = "0x" + "33" * 32
EMPTY_UNCLES = "0x1dcc4de8dec75d7aab85b567b6ccd41ad312451b948a7413f0a142fd40d49347"
LOGS_BLOOM = "0x" + "00" * 256

RANDOMNESS = {"committed": "0x" + "44" * 32, "revealed": "0x" + "55" * 32}


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CHAINFMT_* from the developer's shell out of the tests."""
    for var in (
        "CHAINFMT_RPC_URL",
        "CHAINFMT_RPC_TIMEOUT",
        "CHAINFMT_CHAIN",
        "CHAINFMT_UNKNOWN_TYPE_FALLBACK",
        "CHAINFMT_LOG_LEVEL",
        "CHAINFMT_OUTPUT_FORMAT",
        "CHAINFMT_NO_COLOR",
        "CHAINFMT_CONFIG_PATH",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _reset_chainfmt_logger():
    """configure_logging() sets the package logger level; undo it per test."""
    logger = logging.getLogger("chainfmt")
    level, handlers = logger.level, list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.handlers[:] = handlers


# ── Config fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def sample_config() -> ChainfmtConfig:
    """Minimal valid ChainfmtConfig for tests."""
    return ChainfmtConfig(
        rpc=RPCConfig(url="https://rpc.example.com", timeout_seconds=5.0),
        chain=ChainConfig(name="celo"),
        formatting=FormattingConfig(unknown_type_fallback="", lint_overrides=True),
        logging=LoggingConfig(level="WARNING"),
        output=OutputConfig(default_format="json", color=False),
    )


# ── Registry fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def registry() -> FormatterRegistry:
    """Frozen registry with Ethereum mainnet and Celo."""
    return build_registry([mainnet, celo])


@pytest.fixture
def celo_formatters(registry: FormatterRegistry):
    return registry.formatters("celo")


@pytest.fixture
def mainnet_formatters(registry: FormatterRegistry):
    return registry.formatters("mainnet")


# ── Raw payload fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def raw_block() -> dict:
    """A mined Ethereum block with transaction hashes only."""
    return {
        "baseFeePerGas": "0x3b9aca00",
        "difficulty": "0x0",
        "extraData": "0x",
        "gasLimit": "0x1c9c380",
        "gasUsed": "0x5208",
        "hash": BLOCK_HASH,
        "logsBloom": LOGS_BLOOM,
        "miner": MINER,
        "mixHash": ROOT,
        "nonce": "0x0000000000000000",
        "number": "0x12d687",
        "parentHash": PARENT_HASH,
        "receiptsRoot": ROOT,
        "sha3Uncles": EMPTY_UNCLES,
        "size": "0x2a8",
        "stateRoot": ROOT,
        "timestamp": "0x6553f100",
        "totalDifficulty": "0xc70d815d562d3cfa955",
        "transactions": [TX_HASH],
        "transactionsRoot": ROOT,
        "uncles": [],
    }


@pytest.fixture
def raw_celo_block() -> dict:
    """A mined Celo block: no PoW fields, carries randomness."""
    return {
        "baseFeePerGas": "0x5d21dba00",
        "extraData": "0xd983010700846765746889676f312e31372e3133856c696e7578",
        "gasUsed": "0x5208",
        "hash": BLOCK_HASH,
        "logsBloom": LOGS_BLOOM,
        "miner": MINER,
        "number": "0x1167e3e",
        "parentHash": PARENT_HASH,
        "randomness": dict(RANDOMNESS),
        "receiptsRoot": ROOT,
        "size": "0x2a8",
        "stateRoot": ROOT,
        "timestamp": "0x6553f100",
        "totalDifficulty": "0x1167e3f",
        "transactions": [TX_HASH],
        "transactionsRoot": ROOT,
    }


@pytest.fixture
def raw_legacy_tx() -> dict:
    return {
        "blockHash": BLOCK_HASH,
        "blockNumber": "0x12d687",
        "chainId": "0x1",
        "from": SENDER,
        "gas": "0x5208",
        "gasPrice": "0x4a817c800",
        "hash": TX_HASH,
        "input": "0x",
        "nonce": "0x9",
        "r": "0x28ef61340bd939bc2195fe537567866003e1a15d3c71ff63e1590620aa636276",
        "s": "0x67cbe9d8997f761aecb703304b3800ccf555c9f3dc64214b297fb1966a3b6d83",
        "to": RECIPIENT,
        "transactionIndex": "0x0",
        "type": "0x0",
        "v": "0x25",
        "value": "0xde0b6b3a7640000",
    }


@pytest.fixture
def raw_eip1559_tx() -> dict:
    return {
        "accessList": [],
        "blockHash": BLOCK_HASH,
        "blockNumber": "0x12d687",
        "chainId": "0x1",
        "from": SENDER,
        "gas": "0x5208",
        "gasPrice": "0x3b9aca0e",
        "hash": TX_HASH,
        "input": "0x",
        "maxFeePerGas": "0x77359400",
        "maxPriorityFeePerGas": "0xe",
        "nonce": "0xa",
        "r": "0x1",
        "s": "0x2",
        "to": RECIPIENT,
        "transactionIndex": "0x1",
        "type": "0x2",
        "v": "0x1",
        "value": "0x0",
        "yParity": "0x1",
    }


@pytest.fixture
def raw_cip64_tx() -> dict:
    """A mined Celo fee-currency transaction (type 0x7b)."""
    return {
        "accessList": [],
        "blockHash": BLOCK_HASH,
        "blockNumber": "0x1167e3e",
        "chainId": "0xa4ec",
        "feeCurrency": FEE_CURRENCY,
        "from": SENDER,
        "gas": "0x186a0",
        "gasPrice": "0x5d21dba00",
        "hash": TX_HASH,
        "input": "0xa9059cbb",
        "maxFeePerGas": "0x77359400",
        "maxPriorityFeePerGas": "0x3b9aca00",
        "nonce": "0x3",
        "r": "0x1",
        "s": "0x2",
        "to": RECIPIENT,
        "transactionIndex": "0x0",
        "type": "0x7b",
        "v": "0x0",
        "value": "0x0",
    }


@pytest.fixture
def raw_cip42_tx(raw_cip64_tx: dict) -> dict:
    """A mined Celo cip42 transaction paying in CELO with a zero gateway fee."""
    tx = dict(raw_cip64_tx)
    tx.update(
        {
            "type": "0x7c",
            "feeCurrency": None,
            "gatewayFee": "0x0",
            "gatewayFeeRecipient": None,
        }
    )
    return tx


@pytest.fixture
def pending():
    """Return a function that strips block association from a raw transaction."""

    def _pending(raw: dict) -> dict:
        tx = dict(raw)
        for name in ("blockHash", "blockNumber", "transactionIndex"):
            tx[name] = None
        return tx

    return _pending
