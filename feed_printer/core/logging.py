"""
Logging utilities for Feed Printer.

- ItemContextFilter attaches the id of the feed item being processed (item_id)
- JsonFormatter emits structured logs when FEEDPRINTER_JSON_LOGS=true
- configure_logging() initializes root logging with journald or console
"""

from __future__ import annotations

import contextvars
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

_current_item: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("feed_item_id", default=None)


@contextmanager
def item_context(item_id: str) -> Iterator[None]:
    """
    Tag every log record emitted inside the block with item_id.
    """
    token = _current_item.set(item_id)
    try:
        yield
    finally:
        _current_item.reset(token)


class ItemContextFilter(logging.Filter):
    """
    Attach the current feed item id to log records ("-" outside an item).
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.item_id = _current_item.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON formatter that includes timestamp, level, logger, message and item_id.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        from json import dumps

        base = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "item_id": getattr(record, "item_id", "-"),
        }
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return dumps(base, ensure_ascii=False)


def configure_logging() -> logging.Logger:
    """
    Configure root logging for the process.

    Behavior:
    - Sets root logger to FEEDPRINTER_LOG_LEVEL (default INFO)
    - Clears any existing handlers to avoid duplicates on repeated calls
    - Chooses JSON or plain formatter based on FEEDPRINTER_JSON_LOGS
    - Prefers systemd's JournalHandler, falls back to StreamHandler
    - Adds ItemContextFilter so formatters can reference %(item_id)s

    Returns the configured root logger.
    """
    root = logging.getLogger()
    level = os.environ.get("FEEDPRINTER_LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, level, logging.INFO))

    root.handlers = []

    json_logs = os.environ.get("FEEDPRINTER_JSON_LOGS", "false").lower() in ("1", "true", "yes")
    formatter: logging.Formatter
    if json_logs:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter("[%(asctime)s] %(levelname)s %(item_id)s %(name)s: %(message)s")

    try:
        from systemd.journal import JournalHandler  # type: ignore

        handler: logging.Handler = JournalHandler(SYSLOG_IDENTIFIER="feedprinter")
    except ImportError:
        handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(ItemContextFilter())
    root.addHandler(handler)

    # python-escpos and urllib3 are chatty at DEBUG
    for noisy in ("urllib3", "escpos"):
        logging.getLogger(noisy).setLevel(max(root.level, logging.INFO))

    return root


__all__ = ["ItemContextFilter", "JsonFormatter", "configure_logging", "item_context"]
