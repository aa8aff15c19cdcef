"""OpenAI-compatible chat completions on top of the SEMOSS pixel API."""

from __future__ import annotations

__version__ = "0.1.0"

from semoss_openai.client import SemossOpenAI  # noqa: E402
from semoss_openai.errors import (  # noqa: E402
    ConfigError,
    InitializationError,
    MessageValidationError,
    SemossError,
    StreamingError,
    UpstreamError,
)

__all__ = [
    "ConfigError",
    "InitializationError",
    "MessageValidationError",
    "SemossError",
    "SemossOpenAI",
    "StreamingError",
    "UpstreamError",
    "__version__",
]
