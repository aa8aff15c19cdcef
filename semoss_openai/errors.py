"""Exception hierarchy for the SEMOSS adapter."""

from __future__ import annotations


class SemossError(Exception):
    """Base class for every error raised by semoss-openai."""


class InitializationError(SemossError):
    """The SEMOSS session could not be initialized or the user is not authorized."""


class MessageValidationError(SemossError, ValueError):
    """The chat message list is empty, malformed, or has no user message."""


class UpstreamError(SemossError):
    """A pixel query reported errors or raised."""


class StreamingError(UpstreamError):
    """The polling stream caught an exception; the stream is unusable afterwards."""


class ConfigError(SemossError):
    """Configuration could not be read or validated."""
