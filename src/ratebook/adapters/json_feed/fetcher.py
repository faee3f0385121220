"""Observation fetching entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from ratebook.config import FeedConfig, get_feed_config

from .client import JsonFeedClient
from .translator import translate_observation

if TYPE_CHECKING:
    from ratebook.domain.model import Observation

    from .schema import ObservationPayload

log = getLogger(__name__)


class FeedRowsClient(Protocol):
    def fetch_rows(self, url: str) -> list[ObservationPayload]: ...


@dataclass(slots=True)
class JsonFeedFetcher:
    config: FeedConfig = field(default_factory=get_feed_config)
    client: FeedRowsClient | None = None

    def __call__(self, url: str) -> list[Observation]:
        active_client = self.client or JsonFeedClient(config=self.config)
        observations = [
            translate_observation(row, feed_url=url) for row in active_client.fetch_rows(url)
        ]
        log.info("Fetched %s observations from %s", len(observations), url)
        return observations


def fetch_observations(url: str, *, client: FeedRowsClient | None = None) -> list[Observation]:
    """Fetch and translate every observation published at ``url``."""

    return JsonFeedFetcher(client=client)(url)


if TYPE_CHECKING:
    from ratebook.domain.ports import ObservationFetcher

    _fetcher_check: ObservationFetcher = JsonFeedFetcher()
