"""Pseudo-streaming over SEMOSS partial output.

SEMOSS has no incremental event stream for pixel results. While an LLM pixel
runs, the text generated so far can be read back through the ``partial``
endpoint, so a stream is emulated by polling that endpoint and emitting the
difference against the text already sent.

Lifecycle of a :class:`ChatCompletionStream`::

    not_started -> collecting -> complete
                            \\-> errored

The first ``__anext__`` opens the insight (when asked to), then starts the
pixel and a background poller. Every advance emits the text appended since
the previous chunk; when nothing new arrived it waits briefly for the pixel
to finish. Once the pixel resolves the poller stops and a single
``finish_reason="stop"`` chunk ends the stream. Errors are sticky: every
later advance re-raises them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any, NoReturn

from semoss_openai._ids import now_ts, stream_id
from semoss_openai._log import bind, get_logger
from semoss_openai.errors import StreamingError
from semoss_openai.models import ChatCompletionChunk, DeltaMessage, StreamChoice
from semoss_openai.response import MODEL_LABEL, extract_output, raise_for_errors

_logger = get_logger("streaming")

POLL_INTERVAL = 0.25
WARMUP = 0.3
RACE_TIMEOUT = 0.1

QueryFn = Callable[[str | None], Awaitable[Mapping[str, Any]]]
PartialFn = Callable[[str | None], Awaitable[Mapping[str, Any]]]
OpenInsightFn = Callable[[], Awaitable[str]]


class StreamState(StrEnum):
    NOT_STARTED = "not_started"
    COLLECTING = "collecting"
    COMPLETE = "complete"
    ERRORED = "errored"


def partial_total(data: Any) -> str | None:
    """Return ``message.total`` from a partial-output payload, if it is non-empty text."""
    if not isinstance(data, Mapping):
        return None
    message = data.get("message")
    if not isinstance(message, Mapping):
        return None
    total = message.get("total")
    if isinstance(total, str) and total:
        return total
    return None


class ChatCompletionStream:
    """Single-pass async iterator of :class:`ChatCompletionChunk`.

    *run_query* and *read_partial* receive the insight the pixel runs in.
    When *open_insight* is given, a fresh insight is opened on the first
    advance and used instead of *insight_id*, so concurrent streams never
    read each other's partial output.

    Use with ``async for``; ``async with`` (or :meth:`aclose`) guarantees the
    poller and the pixel task are torn down when iteration stops early.
    """

    def __init__(
        self,
        run_query: QueryFn,
        read_partial: PartialFn,
        *,
        insight_id: str | None = None,
        open_insight: OpenInsightFn | None = None,
        model: str = MODEL_LABEL,
        poll_interval: float = POLL_INTERVAL,
        warmup: float = WARMUP,
        race_timeout: float = RACE_TIMEOUT,
    ) -> None:
        self.id = stream_id()
        self.created = now_ts()
        self.model = model
        self.insight_id = insight_id
        self._run_query = run_query
        self._read_partial = read_partial
        self._open_insight = open_insight
        self._poll_interval = poll_interval
        self._warmup = warmup
        self._race_timeout = race_timeout
        self._log = bind(_logger, stream=self.id, insight=insight_id)

        self._state = StreamState.NOT_STARTED
        self._buffer = ""
        self._emitted = 0
        self._resolved = False
        self._error: StreamingError | None = None
        self._query_task: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    # --- iteration ---

    def __aiter__(self) -> ChatCompletionStream:
        return self

    async def __anext__(self) -> ChatCompletionChunk:
        if self._state is StreamState.ERRORED:
            assert self._error is not None
            raise self._error
        if self._state is StreamState.COMPLETE:
            raise StopAsyncIteration
        if self._state is StreamState.NOT_STARTED:
            await self._start()

        while True:
            if len(self._buffer) > self._emitted:
                delta = self._buffer[self._emitted :]
                self._emitted = len(self._buffer)
                return self._chunk(DeltaMessage(content=delta))

            if self._resolved:
                self._state = StreamState.COMPLETE
                self._log.debug("Stream complete (%d chars)", self._emitted)
                return self._chunk(DeltaMessage(), finish_reason="stop")

            assert self._query_task is not None
            done, _ = await asyncio.wait({self._query_task}, timeout=self._race_timeout)
            if done:
                await self._finish()
                continue
            await asyncio.sleep(self._race_timeout)

    async def __aenter__(self) -> ChatCompletionStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop polling and cancel the pixel if it is still running."""
        await self._stop_polling()
        if self._query_task is not None:
            # cancel() is a no-op on a finished task; gather() also retrieves its exception.
            self._query_task.cancel()
            await asyncio.gather(self._query_task, return_exceptions=True)
        if self._state in (StreamState.NOT_STARTED, StreamState.COLLECTING):
            self._state = StreamState.COMPLETE

    # --- internals ---

    async def _start(self) -> None:
        self._state = StreamState.COLLECTING
        if self._open_insight is not None:
            try:
                self.insight_id = await self._open_insight()
            except Exception as e:
                self._fail(e)
            self._log.context["insight"] = self.insight_id
        self._query_task = asyncio.create_task(self._execute())
        self._poll_task = asyncio.create_task(self._poll())
        self._log.debug("Stream started")
        await asyncio.sleep(self._warmup)

    async def _execute(self) -> Mapping[str, Any]:
        return await self._run_query(self.insight_id)

    async def _poll(self) -> None:
        while self._state is StreamState.COLLECTING:
            await asyncio.sleep(self._poll_interval)
            try:
                data = await self._read_partial(self.insight_id)
            except Exception:
                self._log.warning("Partial read failed", exc_info=True)
                continue
            total = partial_total(data)
            if total is not None and self._state is StreamState.COLLECTING:
                self._buffer = total

    async def _stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    def _fail(self, e: Exception) -> NoReturn:
        self._state = StreamState.ERRORED
        self._error = StreamingError(f"API Streaming Error: {e}")
        self._log.warning("Stream failed: %s", e)
        raise self._error from e

    async def _finish(self) -> None:
        assert self._query_task is not None
        await self._stop_polling()
        try:
            result = self._query_task.result()
            raise_for_errors(result)
        except Exception as e:
            self._fail(e)

        await self._flush_tail(result)
        self._resolved = True

    async def _flush_tail(self, result: Mapping[str, Any]) -> None:
        """Pick up text produced after the last poll."""
        try:
            latest = partial_total(await self._read_partial(self.insight_id))
        except Exception:
            self._log.debug("Final partial read failed", exc_info=True)
            latest = None
        final_text, _ = extract_output(result)
        for candidate in (latest, final_text):
            if (
                candidate
                and len(candidate) > len(self._buffer)
                and candidate.startswith(self._buffer)
            ):
                self._buffer = candidate

    def _chunk(self, delta: DeltaMessage, finish_reason: str | None = None) -> ChatCompletionChunk:
        return ChatCompletionChunk(
            id=self.id,
            created=self.created,
            model=self.model,
            choices=[StreamChoice(delta=delta, finish_reason=finish_reason)],
        )
