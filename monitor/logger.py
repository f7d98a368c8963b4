"""
Logging setup shared by the CLI and the API server.

Handlers on the root logger:
  - stderr: colored lines tagged with level, component and market context
  - <log_dir>/run_YYYYMMDD_HHMMSS.log: everything at DEBUG
  - optional ndjson file for machine consumption

Market context travels as logging extras, e.g.
``logger.info("...", extra={"market_id": market_id})``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import datetime, timezone

_RESET = "\033[0m"
_DIM = "\033[2m"
_RED = "\033[31m"
_YELLOW = "\033[33m"
_MAGENTA = "\033[35m"
_CYAN = "\033[36m"

_LEVEL_TAGS = {
    logging.DEBUG: (_DIM, "DBG"),
    logging.INFO: (_CYAN, "INF"),
    logging.WARNING: (_YELLOW, "WRN"),
    logging.ERROR: (_RED, "ERR"),
    logging.CRITICAL: (_RED, "CRT"),
}

_COMPONENT_WIDTH = 10

# Extras copied from the record into console and JSON output when present
CONTEXT_FIELDS = ("market_id", "venue")

# Chatty at INFO: request lines from the HTTP clients and the ASGI server
QUIET_LOGGERS = ("httpx", "httpcore", "py_clob_client", "uvicorn.access")

DEFAULT_LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs")

VERBOSE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s:%(lineno)d - %(message)s"


def _component(name: str) -> str:
    """'analytics.comparator' -> 'comparator'."""
    return name.rsplit(".", 1)[-1][:_COMPONENT_WIDTH]


def record_context(record: logging.LogRecord) -> dict[str, str]:
    """Market context extras attached to *record*, skipping empty ones."""
    context = {}
    for field in CONTEXT_FIELDS:
        value = getattr(record, field, None)
        if value:
            context[field] = str(value)
    return context


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS TAG component  message  [market_id=...]``"""

    def __init__(self, use_color: bool = True):
        super().__init__()
        self._use_color = use_color and _supports_color()

    def _paint(self, code: str, text: str) -> str:
        return f"{code}{text}{_RESET}" if self._use_color else text

    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%H:%M:%S", time.localtime(record.created))
        color, tag = _LEVEL_TAGS.get(record.levelno, ("", record.levelname[:3]))
        parts = [
            self._paint(_DIM, ts),
            self._paint(color, tag),
            self._paint(_DIM, _component(record.name).ljust(_COMPONENT_WIDTH)),
            record.getMessage(),
        ]
        context = record_context(record)
        if context:
            parts.append(self._paint(_MAGENTA, " ".join(f"{k}={v}" for k, v in context.items())))

        line = " ".join(parts)
        if record.exc_info and record.exc_info[1]:
            line += "\n     " + self._paint(_RED, str(record.exc_info[1]))
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per line, market context merged in at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, separators=(",", ":"))


def _console_handler(level: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(ConsoleFormatter())
    return handler


def _verbose_handler(log_dir: str) -> tuple[logging.Handler, str]:
    os.makedirs(log_dir, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    path = os.path.join(log_dir, f"run_{stamp}.log")
    handler = logging.FileHandler(path, mode="a")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=VERBOSE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler, path


def _json_handler(path: str) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a")
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(
    level: str = "INFO",
    json_log_file: str | None = None,
    log_dir: str = DEFAULT_LOG_DIR,
) -> str:
    """
    Replace root handlers with console, verbose file and optional JSON
    handlers. The console respects *level*; the verbose file keeps DEBUG.

    Returns the path to the verbose log file.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    root.addHandler(_console_handler(level))
    verbose, log_path = _verbose_handler(log_dir)
    root.addHandler(verbose)
    if json_log_file:
        root.addHandler(_json_handler(json_log_file))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_path


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
