"""
Log formatting and correlation fields for recordsync.

Batch operations run inside a ``CorrelationContext`` so every line logged
through ``log_with_context`` names the operation, source and record it
belongs to.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


CORRELATION_FIELDS = ("operation", "source_id", "uuid", "record_type", "path")

# Fields shown in brackets by the human readable formatter
_INLINE_FIELDS = ("operation", "source_id", "uuid")


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; correlation fields are added when set."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

        entry.update(
            (name, getattr(record, name))
            for name in CORRELATION_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    ``name - LEVEL - message``, optionally timestamped, with the record's
    correlation fields appended as ``[operation=import uuid=...]``.
    """

    def __init__(self, include_timestamp: bool = True):
        fmt = "%(name)s - %(levelname)s - %(message)s"
        if include_timestamp:
            fmt = "%(asctime)s - " + fmt
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{name}={getattr(record, name)}"
            for name in _INLINE_FIELDS
            if getattr(record, name, None) is not None
        )
        return f"{line} [{context}]" if context else line


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def configure_logging(
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    structured: bool = False,
) -> None:
    """
    Attach a stderr handler to the ``recordsync`` logger.

    Calling this again only changes the level; the first handler stays.
    ``format_string`` applies to plain output only.
    """
    package_logger = logging.getLogger("recordsync")
    package_logger.setLevel(level)
    if package_logger.handlers:
        return

    if structured:
        formatter: logging.Formatter = StructuredFormatter(include_timestamp=include_timestamp)
    elif format_string:
        formatter = logging.Formatter(format_string)
    else:
        formatter = HumanReadableFormatter(include_timestamp=include_timestamp)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    package_logger.addHandler(handler)


class CorrelationContext:
    """
    Fields stamped onto records logged with ``log_with_context`` while the
    context is active. Contexts nest; inner values win.

        with CorrelationContext(operation="import", source_id="default"):
            log_with_context(logger, logging.INFO, "Importing")
    """

    _current: Optional["CorrelationContext"] = None

    def __init__(
        self,
        operation: Optional[str] = None,
        source_id: Optional[str] = None,
        uuid: Optional[str] = None,
        **extra: Any,
    ):
        fields = {"operation": operation, "source_id": source_id, "uuid": uuid, **extra}
        self.context = {k: v for k, v in fields.items() if v is not None}
        self._previous: Optional["CorrelationContext"] = None

    def __enter__(self) -> "CorrelationContext":
        self._previous = CorrelationContext._current
        CorrelationContext._current = self
        return self

    def __exit__(self, *args) -> None:
        CorrelationContext._current = self._previous

    @classmethod
    def get_current(cls) -> Dict[str, Any]:
        chain = []
        node = cls._current
        while node is not None:
            chain.append(node)
            node = node._previous

        merged: Dict[str, Any] = {}
        for node in reversed(chain):
            merged.update(node.context)
        return merged


def log_with_context(logger: logging.Logger, level: int, message: str, **extra: Any) -> None:
    context = CorrelationContext.get_current()
    context.update(extra)
    logger.log(level, message, extra=context)
