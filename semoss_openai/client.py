"""OpenAI-style client backed by a SEMOSS insight.

Usage::

    async with SemossOpenAI(load_config()) as client:
        resp = await client.chat.completions.create(
            model="Qwen2.5-7B-Instruct",
            messages=[{"role": "user", "content": "Hello"}],
        )
        print(resp.choices[0].message.content)

``create(..., stream=True)`` returns a :class:`ChatCompletionStream` to be
consumed with ``async for``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from semoss_openai._log import bind, get_logger
from semoss_openai.config import SemossConfig
from semoss_openai.errors import InitializationError, UpstreamError
from semoss_openai.model_map import build_model_map, resolve_engine_id
from semoss_openai.models import ChatCompletionResponse
from semoss_openai.prompt import format_messages
from semoss_openai.response import build_pixel, format_response, raise_for_errors
from semoss_openai.sdk import Insight, SemossClient
from semoss_openai.streaming import ChatCompletionStream

_logger = get_logger("client")


class PixelClient(Protocol):
    """The SEMOSS calls the adapter makes; :class:`SemossClient` implements them all."""

    async def whoami(self) -> Mapping[str, Any]: ...

    async def new_insight(self) -> str: ...

    async def run_pixel(self, pixel: str, insight_id: str | None) -> Mapping[str, Any]: ...

    async def partial(self, insight_id: str | None) -> Mapping[str, Any]: ...


class _Completions:
    def __init__(self, owner: SemossOpenAI) -> None:
        self._owner = owner

    async def create(
        self,
        *,
        messages: Any,
        model: str | None = None,
        stream: bool | None = None,
        **_: Any,
    ) -> ChatCompletionResponse | ChatCompletionStream:
        """Create a chat completion. Extra OpenAI parameters are accepted and ignored."""
        return await self._owner.create_chat_completion(
            messages=messages, model=model, stream=stream
        )


class _Chat:
    def __init__(self, owner: SemossOpenAI) -> None:
        self.completions = _Completions(owner)


class SemossOpenAI:
    """Adapter exposing ``chat.completions.create`` over one SEMOSS insight."""

    def __init__(
        self,
        config: SemossConfig | None = None,
        *,
        client: PixelClient | None = None,
        insight_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.config = config or SemossConfig()
        self._owns_client = client is None
        if client is None:
            client = SemossClient(
                self.config.base_url,
                self.config.access_key,
                self.config.secret_key,
                timeout=self.config.timeout,
            )
        self._client = client
        self._insight_factory = insight_factory or self._default_insight
        self.model_map = build_model_map(self.config.models)

        self.insight: Any = None
        self.insight_id: str | None = None
        self.initialized = False
        self.authorized = False

        self.chat = _Chat(self)

    def _default_insight(self) -> Insight:
        return Insight(self._client)  # type: ignore[arg-type]

    async def __aenter__(self) -> SemossOpenAI:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and isinstance(self._client, SemossClient):
            await self._client.aclose()

    # --- session bootstrap ---

    async def _initialize(self) -> bool:
        if self.initialized:
            return True
        try:
            self.insight = self._insight_factory()
            await self.insight.initialize()
            store = self.insight.store
            self.insight_id = store.insight_id
            self.initialized = bool(store.is_initialized)
            self.authorized = bool(store.is_authorized)
        except Exception as e:
            _logger.error("Failed to initialize SEMOSS SDK: %s", e)
            raise InitializationError(f"Failed to initialize SEMOSS SDK: {e}") from e

        if not self.initialized:
            _logger.error("Failed to initialize SEMOSS SDK")
            raise InitializationError("Failed to initialize SEMOSS SDK")
        if not self.authorized:
            _logger.error("Failed to authorize user on SEMOSS platform")
            raise InitializationError(
                "Failed to initialize SEMOSS SDK: Failed to authorize user on SEMOSS platform"
            )
        _logger.debug("SEMOSS session ready (insight %s)", self.insight_id)
        return self.initialized

    async def _ensure_initialized(self) -> None:
        if not self.initialized or not self.authorized:
            # A previous bootstrap may have left initialized=True, authorized=False.
            self.initialized = False
            await self._initialize()

        if not self.initialized:
            raise InitializationError("SEMOSS SDK failed to initialize")
        if not self.authorized:
            raise InitializationError("SEMOSS SDK failed to authorize user on SEMOSS platform")

    # --- completions ---

    def resolve_engine_id(self, model: str) -> str:
        return resolve_engine_id(model, self.model_map, self.config.default_engine_id)

    async def create_chat_completion(
        self,
        *,
        messages: Any,
        model: str | None = None,
        stream: bool | None = None,
    ) -> ChatCompletionResponse | ChatCompletionStream:
        await self._ensure_initialized()

        model = model or self.config.default_model
        stream = bool(stream)
        engine_id = self.resolve_engine_id(model)
        prompt = format_messages(messages)
        pixel = build_pixel(engine_id, prompt)
        insight_id = self.insight_id
        log = bind(_logger, insight=insight_id)
        log.debug("Dispatching %s -> engine %s (stream=%s)", model, engine_id, stream)

        if stream:
            # partial output is keyed by insight, so each stream runs in its own.
            return ChatCompletionStream(
                lambda stream_insight: self._client.run_pixel(pixel, stream_insight),
                self._client.partial,
                open_insight=self._client.new_insight,
                poll_interval=self.config.poll_interval,
                warmup=self.config.warmup,
                race_timeout=self.config.race_timeout,
            )

        try:
            result = await self._client.run_pixel(pixel, insight_id)
            raise_for_errors(result)
            return format_response(result)
        except Exception as e:
            log.warning("Pixel query failed: %s", e)
            raise UpstreamError(f"API Error: {e}") from e
