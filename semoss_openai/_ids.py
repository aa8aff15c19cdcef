"""Completion id helpers."""

from __future__ import annotations

import time
import uuid


def generate_id(length: int = 12) -> str:
    """Return a random hex string of *length* characters."""
    return uuid.uuid4().hex[:length]


def completion_id() -> str:
    """Return a ``chatcmpl-<epoch ms>`` id for responses without an insight id."""
    return f"chatcmpl-{int(time.time() * 1000)}"


def stream_id() -> str:
    return "chatcmpl-" + generate_id()


def now_ts() -> int:
    return int(time.time())
