"""HTTP client for JSON observation feeds."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from ratebook.adapters.http_resilience import ResilientClient

from .schema import ObservationFeed, ObservationPayload

if TYPE_CHECKING:
    from collections.abc import Callable

    from ratebook.config.feeds import FeedConfig
    from ratebook.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class FeedError(RuntimeError):
    """Raised when a feed cannot be fetched or does not match the expected schema."""


class JsonFeedClient:
    """Low-level HTTP client returning validated feed rows."""

    def __init__(
        self,
        *,
        config: FeedConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_rows(self, url: str) -> list[ObservationPayload]:
        return asyncio.run(self._fetch_rows_async(url))

    async def _fetch_rows_async(self, url: str) -> list[ObservationPayload]:
        async with self._client_factory(self._resilience) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise FeedError(f"Fetching feed {url} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FeedError(f"Feed {url} did not return JSON") from exc

        if isinstance(payload, dict) and "rows" in payload:
            payload = payload["rows"]

        try:
            rows = ObservationFeed.model_validate(payload).root
        except ValidationError as exc:
            raise FeedError(f"Feed {url} does not match the observation schema: {exc}") from exc

        log.debug("Fetched %s rows from %s", len(rows), url)
        return rows
