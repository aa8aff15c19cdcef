"""Render an OpenAI message list as a single SEMOSS prompt string."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from semoss_openai.errors import MessageValidationError
from semoss_openai.models import ChatMessage

_KNOWN_ROLES = {"user": "User", "assistant": "Assistant", "system": "System"}


def role_name(role: str) -> str:
    """Return the display name used for *role* in the conversation block."""
    known = _KNOWN_ROLES.get(role.lower())
    if known is not None:
        return known
    return role[:1].upper() + role[1:]


def coerce_messages(messages: Any) -> list[ChatMessage]:
    """Validate *messages* into ``ChatMessage`` objects.

    Accepts ``ChatMessage`` instances and plain mappings.

    Raises:
        MessageValidationError: If the list is absent, empty, malformed, or
            contains no ``user`` message.
    """
    if not messages or not isinstance(messages, Sequence) or isinstance(messages, str):
        raise MessageValidationError("Messages array is empty or invalid")

    result: list[ChatMessage] = []
    for msg in messages:
        if isinstance(msg, ChatMessage):
            result.append(msg)
            continue
        if not isinstance(msg, Mapping):
            raise MessageValidationError("Messages array is empty or invalid")
        try:
            result.append(ChatMessage.model_validate(msg))
        except ValidationError as e:
            raise MessageValidationError(f"Invalid message: {e}") from e

    if not any(m.role == "user" for m in result):
        raise MessageValidationError("At least one user message is required")
    return result


def format_messages(messages: Any) -> str:
    """Format a chat history as a SEMOSS prompt.

    Only the first system message is used; it is rendered in a
    ``<system_prompt>`` block. Every other message is listed in order inside
    ``<conversation_history>`` and the prompt ends with an ``Assistant: `` cue.
    """
    msgs = coerce_messages(messages)

    parts: list[str] = []
    system = next((m for m in msgs if m.role == "system"), None)
    if system is not None:
        parts.append(f"<system_prompt>\n {system.content or ''}\n</system_prompt>\n\n")

    parts.append("<conversation_history>\n")
    for msg in msgs:
        if msg.role == "system":
            continue
        parts.append(f"{role_name(msg.role)}: {msg.content or ''}\n\n")
    parts.append("</conversation_history>\n")
    parts.append("Assistant: ")
    return "".join(parts)
