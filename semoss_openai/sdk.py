"""Minimal async client for the SEMOSS REST API.

Only the calls the chat adapter needs are implemented: identifying the
user, opening an insight, running a pixel, and reading the partial output
of a pixel that is still running.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from semoss_openai import __version__
from semoss_openai._log import get_logger

_logger = get_logger("sdk")

_USER_AGENT = f"semoss-openai/{__version__}"

WHOAMI_PATH = "auth/whoami"
RUN_PIXEL_PATH = "engine/runPixel"
PARTIAL_PATH = "engine/partial"

_NEW_INSIGHT_PIXEL = "META | true"


class SemossClient:
    """Thin wrapper around an ``httpx.AsyncClient`` bound to one SEMOSS server."""

    def __init__(
        self,
        base_url: str,
        access_key: str | None = None,
        secret_key: str | None = None,
        *,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        auth = None
        if access_key and secret_key:
            auth = httpx.BasicAuth(access_key, secret_key)
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            auth=auth,
            timeout=timeout,
            headers={"User-Agent": _USER_AGENT},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def whoami(self) -> dict[str, Any]:
        """Return the logged-in user description; raises on 401/403."""
        resp = await self._http.get(WHOAMI_PATH)
        resp.raise_for_status()
        return resp.json()

    async def new_insight(self) -> str:
        """Open a fresh insight and return its id."""
        data = await self.run_pixel(_NEW_INSIGHT_PIXEL, "new")
        insight_id = data.get("insightID") or data.get("insightId")
        if not insight_id:
            raise httpx.DecodingError("SEMOSS did not return an insight id")
        return insight_id

    async def run_pixel(self, pixel: str, insight_id: str | None) -> dict[str, Any]:
        """Execute *pixel* in *insight_id*.

        Returns the raw response: ``{"pixelReturn": [...], "errors": [...],
        "insightId": ...}``. ``insightId`` is only present when SEMOSS reported one.
        """
        _logger.debug("runPixel insight=%s (%d chars)", insight_id, len(pixel))
        resp = await self._http.post(
            RUN_PIXEL_PATH,
            data={"expression": pixel, "insightId": insight_id or "new"},
        )
        resp.raise_for_status()
        data = resp.json()
        if not data.get("insightId") and data.get("insightID"):
            data["insightId"] = data["insightID"]
        return data

    async def partial(self, insight_id: str | None) -> dict[str, Any]:
        """Return the cumulative output of the running pixel: ``{"message": {"total": ...}}``."""
        resp = await self._http.get(PARTIAL_PATH, params={"insightId": insight_id or ""})
        resp.raise_for_status()
        return resp.json()


@dataclass
class InsightStore:
    insight_id: str | None = None
    is_initialized: bool = False
    is_authorized: bool = False


class Insight:
    """A SEMOSS session handle: identity, authorization, and an open insight."""

    def __init__(self, client: SemossClient) -> None:
        self.client = client
        self.store = InsightStore()

    async def initialize(self) -> None:
        try:
            await self.client.whoami()
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (401, 403):
                # Server reachable, user not allowed in.
                _logger.warning("SEMOSS rejected credentials (%d)", e.response.status_code)
                self.store.is_initialized = True
                self.store.is_authorized = False
                return
            raise
        self.store.is_authorized = True
        self.store.insight_id = await self.client.new_insight()
        self.store.is_initialized = True
        _logger.debug("Opened insight %s", self.store.insight_id)
