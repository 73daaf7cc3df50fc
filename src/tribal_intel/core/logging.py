"""
Tribal Intel Logging

One stderr handler shared by every tribal_intel logger. Level and output
format (text or JSON) come from TribalSettings.

Records emitted inside a background loop carry the loop's name, so the
interleaved output of the conquest monitor, village sampler and kill
reporter can be told apart:

    2024-03-01T12:00:00+00:00 [INFO] [conquest-monitor] [notifier] Cycle done: 2 sent

Usage:
    from tribal_intel.core.logging import bind_loop, get_logger

    logger = get_logger(__name__)

    async def run():
        bind_loop("village-snapshots")
        logger.info("Sampled %d villages", count)
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from .config import get_settings

# Name of the background loop the current task belongs to
_loop_var: ContextVar[Optional[str]] = ContextVar("tribal_loop", default=None)

# Attributes every LogRecord has; anything else was passed through extra=
_STANDARD_KEYS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "loop",
}


def bind_loop(name: Optional[str]) -> None:
    """
    Tag every record logged from the current task with a loop name.

    asyncio copies the context into each new task, so binding inside a
    task's coroutine does not leak to its parent.
    """
    _loop_var.set(name)


def current_loop() -> Optional[str]:
    return _loop_var.get()


class LoopFilter(logging.Filter):
    """Stamps record.loop from the current task's bound loop name."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "loop"):
            record.loop = _loop_var.get()
        return True


class TribalFormatter(logging.Formatter):
    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat(
            timespec="seconds"
        )
        loop = getattr(record, "loop", None)
        exception = (
            "".join(traceback.format_exception(*record.exc_info)) if record.exc_info else None
        )

        if self.json_output:
            data: dict[str, Any] = {
                "timestamp": timestamp,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            if loop:
                data["loop"] = loop
            data.update(
                (key, value) for key, value in vars(record).items() if key not in _STANDARD_KEYS
            )
            if exception:
                data["exception"] = exception
            return json.dumps(data, default=str)

        module = record.name.rsplit(".", 1)[-1]
        tag = f"[{loop}] [{module}]" if loop else f"[{module}]"
        text = f"{timestamp} [{record.levelname}] {tag} {record.getMessage()}"
        if exception:
            text += f"\n{exception}"
        return text


_loggers: dict[str, logging.Logger] = {}
_handler: Optional[logging.Handler] = None


def _shared_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.addFilter(LoopFilter())
        _handler.setFormatter(TribalFormatter(json_output=get_settings().log_json))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """Logger for a module name (usually __name__), configured once."""
    logger = _loggers.get(name)
    if logger is None:
        logger = logging.getLogger(name)
        logger.setLevel(get_settings().log_level_int)
        logger.addHandler(_shared_handler())
        logger.propagate = False
        _loggers[name] = logger
    return logger


def reset_logging() -> None:
    """
    Detach the shared handler and hand records back to the root logger.

    Used by test fixtures so caplog sees tribal_intel records.
    """
    global _handler
    for logger in _loggers.values():
        if _handler is not None:
            logger.removeHandler(_handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
    _handler = None
