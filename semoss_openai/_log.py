"""Centralized logging for semoss-openai.

Records are rendered as ``[tag key=value ...] message``. The tag is the
logger name without the ``semoss_openai.`` prefix; the key/value pairs come
from a :func:`bind` adapter, so a line can be traced back to the SEMOSS
insight and the stream that produced it.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import MutableMapping
from typing import Any

_ROOT = "semoss_openai"
_CONTEXT_ATTR = "semoss_context"

_lock = threading.Lock()
_setup_done = False


def _tag(record: logging.LogRecord) -> str:
    name = record.name
    if name.startswith(_ROOT + "."):
        name = name[len(_ROOT) + 1 :]
    context = getattr(record, _CONTEXT_ATTR, None) or {}
    fields = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
    return f"{name} {fields}" if fields else name


class _Formatter(logging.Formatter):
    """Prefix the formatted record with its ``[tag ...]`` block."""

    def format(self, record: logging.LogRecord) -> str:
        return f"[{_tag(record)}] {super().format(record)}"


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that attaches a live context mapping to every record.

    The mapping is read when a record is emitted, so updating it (for
    example once an insight id is known) affects later lines only.
    """

    def __init__(self, logger: logging.Logger, context: MutableMapping[str, Any]) -> None:
        super().__init__(logger, {})
        self.context = context

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        extra[_CONTEXT_ATTR] = dict(self.context)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(verbose: bool = False) -> None:
    """Configure the ``semoss_openai`` root logger (idempotent).

    Attaches a single ``StreamHandler(sys.stderr)`` with level WARNING
    (or DEBUG when *verbose* is True) and stops propagation to the root
    logger. The library logs lazily through :func:`get_logger` before the
    CLI parses ``--verbose``, so a later ``verbose=True`` still lowers the
    level.
    """
    global _setup_done
    with _lock:
        logger = logging.getLogger(_ROOT)
        if _setup_done:
            if verbose:
                logger.setLevel(logging.DEBUG)
            return
        logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_Formatter())
        logger.addHandler(handler)
        logger.propagate = False
        _setup_done = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(f"semoss_openai.{name}")``, setting up output first."""
    setup_logging()
    return logging.getLogger(f"{_ROOT}.{name}")


def bind(logger: logging.Logger, **context: Any) -> ContextLogger:
    """Return an adapter that tags every line from *logger* with *context*.

    ``None`` values are left out of the rendered tag.
    """
    return ContextLogger(logger, context)
