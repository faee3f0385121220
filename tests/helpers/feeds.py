"""Fakes for the JSON feed HTTP layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from types import TracebackType

    from ratebook.config import ResilienceConfig

FEED_URL = "https://rates.example.com/feeds/duties.json"


class FakeResilientClient:
    """Async stand-in for ``ResilientClient`` answering every GET from a canned response."""

    def __init__(self, response: httpx.Response | Exception) -> None:
        self.response = response
        self.requested: list[str] = []
        self.closed = False

    def __call__(self, _config: ResilienceConfig) -> FakeResilientClient:
        return self

    async def __aenter__(self) -> FakeResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.closed = True

    async def get(self, url: str) -> httpx.Response:
        self.requested.append(url)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def json_response(payload: object, *, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request("GET", FEED_URL))
