"""Logging setup for the chainfmt CLI.

Library modules only call logging.getLogger(__name__); handlers are
installed here, by the CLI, so embedding applications keep control.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "chainfmt-stderr"


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever sys.stderr is at emit time, not at setup time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def configure_logging(level: str | int = "WARNING") -> logging.Logger:
    """Send `chainfmt.*` records at `level` and above to stderr.

    Safe to call more than once; the handler is replaced, not duplicated.
    """
    logger = logging.getLogger("chainfmt")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    handler = _StderrHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
