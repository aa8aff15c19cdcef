"""Shared test fixtures and fakes for the SEMOSS collaborators."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from semoss_openai.client import SemossOpenAI
from semoss_openai.config import SemossConfig
from semoss_openai.sdk import InsightStore

FAST_STREAM = {"poll_interval": 0.01, "warmup": 0.02, "race_timeout": 0.01}


class FakeInsight:
    """Stands in for :class:`semoss_openai.sdk.Insight`."""

    def __init__(
        self,
        *,
        insight_id: str = "insight-1",
        initialized: bool = True,
        authorized: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.store = InsightStore()
        self._insight_id = insight_id
        self._initialized = initialized
        self._authorized = authorized
        self._error = error
        self.initialize_calls = 0

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self._error is not None:
            raise self._error
        self.store.insight_id = self._insight_id
        self.store.is_initialized = self._initialized
        self.store.is_authorized = self._authorized


class FakePixelClient:
    """Scriptable pixel client.

    ``run_pixel`` returns ``result`` (or raises ``error``) once ``done`` is
    set; ``partial`` reports whatever is in ``text``.
    """

    def __init__(
        self,
        result: dict[str, Any] | None = None,
        *,
        error: Exception | None = None,
        text: str = "",
        wait: bool = False,
    ) -> None:
        self.result = result if result is not None else {"pixelReturn": [], "errors": []}
        self.error = error
        self.text = text
        self.done = asyncio.Event() if wait else None
        self.pixels: list[tuple[str, str | None]] = []
        self.partial_ids: list[str | None] = []
        self.opened: list[str] = []

    @property
    def partial_calls(self) -> int:
        return len(self.partial_ids)

    async def whoami(self) -> dict[str, Any]:
        return {"name": "tester"}

    async def new_insight(self) -> str:
        insight_id = f"opened-{len(self.opened) + 1}"
        self.opened.append(insight_id)
        return insight_id

    async def run_pixel(self, pixel: str, insight_id: str | None) -> dict[str, Any]:
        self.pixels.append((pixel, insight_id))
        if self.done is not None:
            await self.done.wait()
        if self.error is not None:
            raise self.error
        return self.result

    async def partial(self, insight_id: str | None) -> dict[str, Any]:
        self.partial_ids.append(insight_id)
        return {"message": {"total": self.text, "new": ""}}


def pixel_result(output: Any = None, *, errors: list[str] | None = None, insight_id="insight-1"):
    returns = [] if output is None else [{"output": output}]
    return {"pixelReturn": returns, "errors": errors or [], "insightId": insight_id}


def make_adapter(
    pixel_client: FakePixelClient | None = None,
    *,
    insight: FakeInsight | None = None,
    **config_kwargs: Any,
) -> SemossOpenAI:
    config = SemossConfig(**{**FAST_STREAM, **config_kwargs})
    fake_insight = insight or FakeInsight()
    return SemossOpenAI(
        config,
        client=pixel_client or FakePixelClient(),
        insight_factory=lambda: fake_insight,
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def user_messages():
    return [{"role": "user", "content": "Hi"}]
