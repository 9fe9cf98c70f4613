"""Logging setup.

The terminal belongs to the Textual UI, so log records go to a file.
"""

from __future__ import annotations

import logging
from pathlib import Path

from goha_pos.config import LOG_LEVEL, LOG_PATH

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(path: str | None = None, level: str | None = None) -> Path:
    """Route the ``goha_pos`` logger tree to a UTF-8 log file and return its path."""
    log_file = Path(path or LOG_PATH)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))

    root = logging.getLogger("goha_pos")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    root.propagate = False
    root.info("logging started file=%s", log_file)
    return log_file
