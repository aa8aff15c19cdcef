"""Reshape SEMOSS pixel results into OpenAI chat completion envelopes."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from semoss_openai._ids import completion_id, now_ts
from semoss_openai.errors import ConfigError, MessageValidationError, UpstreamError
from semoss_openai.models import ChatCompletionResponse, ChatMessage, Choice, Usage

MODEL_LABEL = "semoss-llm"
NO_RESPONSE = "No response received"

_ENCODE_CLOSE = re.compile(r"</\s*encode\s*>", re.IGNORECASE)
_ENGINE_ID = re.compile(r"[A-Za-z0-9_.-]+")


def build_pixel(engine_id: str, prompt: str) -> str:
    """Return the pixel that runs *prompt* against the LLM engine *engine_id*.

    The prompt travels inside an ``<encode>`` block, so a closing tag in it
    would end the block early and let the rest run as pixel code. Such
    prompts are rejected, as are engine ids that are not plain identifiers.
    """
    if _ENCODE_CLOSE.search(prompt):
        raise MessageValidationError("Message content may not contain '</encode>'")
    if not _ENGINE_ID.fullmatch(engine_id):
        raise ConfigError(f"Invalid engine id: {engine_id!r}")
    return (
        f'LLM(engine=["{engine_id}"], command=["<encode>{prompt}</encode>"], '
        "paramValues=[{}]);"
    )


def raise_for_errors(result: Mapping[str, Any]) -> None:
    """Raise :class:`UpstreamError` when the pixel result carries errors."""
    errors = result.get("errors") or []
    if errors:
        raise UpstreamError(", ".join(str(e) for e in errors))


def extract_output(result: Mapping[str, Any]) -> tuple[str | None, int]:
    """Return ``(text, completion_tokens)`` from ``pixelReturn[0].output``.

    The output is either ``{"response": ..., "numberOfTokensInResponse": ...}``
    or a bare string. ``text`` is None when neither shape is present.
    """
    returns = result.get("pixelReturn") or []
    if not returns or not isinstance(returns[0], Mapping):
        return None, 0
    output = returns[0].get("output")
    if isinstance(output, Mapping) and output.get("response"):
        return str(output["response"]), int(output.get("numberOfTokensInResponse") or 0)
    if isinstance(output, str) and output:
        return output, 0
    return None, 0


def format_response(result: Mapping[str, Any]) -> ChatCompletionResponse:
    text, tokens = extract_output(result)
    return ChatCompletionResponse(
        id=result.get("insightId") or completion_id(),
        created=now_ts(),
        model=MODEL_LABEL,
        choices=[
            Choice(
                message=ChatMessage(
                    role="assistant",
                    content=text if text is not None else NO_RESPONSE,
                )
            )
        ],
        usage=Usage(prompt_tokens=0, completion_tokens=tokens, total_tokens=tokens),
    )
