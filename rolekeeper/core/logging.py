"""Log formatting for provisioning runs.

Records carry the network and, while a grant is in flight, the role, target
and transaction hash. Output always goes to stderr so that ``--format json``
on stdout stays machine-readable.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

CONTEXT_FIELDS = ("network", "role", "target", "tx_hash", "status")

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if getattr(record, key, None) not in (None, "")}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for CI and production runs."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[1]:
            exc_type, exc, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Coloured single-line output for an operator at a terminal.

    The network leads the message; role, target and a shortened tx hash
    trail it when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = _context(record)
        color = _LEVEL_COLORS.get(record.levelno, "")
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")

        line = f"{color}{ts} [{record.levelname:>8s}]{_RESET} {record.name}: "
        if "network" in ctx:
            line += f"[{ctx['network']}] "
        line += record.getMessage()

        tail = [f"{key}={ctx[key]}" for key in ("role", "target") if key in ctx]
        if "tx_hash" in ctx:
            tx = str(ctx["tx_hash"])
            tail.append(f"tx={tx[:10]}…" if len(tx) > 12 else f"tx={tx}")
        if tail:
            line += "  (" + " ".join(tail) + ")"

        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(env: str = "development", log_level: str = "INFO") -> None:
    """Install a single stderr handler on the root logger.

    staging and production get JSON lines, anything else gets DevFormatter.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if env in ("staging", "production") else DevFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers[:] = [handler]


class NetworkLogFilter(logging.Filter):
    """Stamp the active network onto records that do not name one."""

    def __init__(self, network: str = "") -> None:
        super().__init__()
        self.network = network

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "network"):
            record.network = self.network  # type: ignore[attr-defined]
        return True
