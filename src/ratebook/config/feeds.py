"""JSON observation feed configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

FEED_TIMEOUT_SECONDS: Final[float] = 30.0
FEED_USER_AGENT: Final[str] = "ratebook (+https://pypi.org/project/ratebook/)"


@dataclass(frozen=True, slots=True)
class FeedConfig:
    resilience: ResilienceConfig


def get_feed_config(*, cache_path: str | None = None) -> FeedConfig:
    cache = (
        CacheConfig(backend="sqlite", sqlite_path=cache_path)
        if cache_path is not None
        else CacheConfig(backend="memory")
    )
    return FeedConfig(
        resilience=ResilienceConfig(
            name="json-feed",
            timeout_seconds=FEED_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=4),
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            cache=cache,
            default_headers={"User-Agent": FEED_USER_AGENT, "Accept": "application/json"},
        )
    )
