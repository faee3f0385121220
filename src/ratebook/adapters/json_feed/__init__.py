"""Public interface for the JSON observation feed adapter."""

from __future__ import annotations

from .client import FeedError, JsonFeedClient
from .fetcher import JsonFeedFetcher, fetch_observations
from .schema import ComponentPayload, ObservationFeed, ObservationPayload
from .translator import translate_observation

__all__ = [
    "ComponentPayload",
    "FeedError",
    "JsonFeedClient",
    "JsonFeedFetcher",
    "ObservationFeed",
    "ObservationPayload",
    "fetch_observations",
    "translate_observation",
]
