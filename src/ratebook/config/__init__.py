"""Application configuration helpers."""

from __future__ import annotations

from .env import env_csv, env_decimal, env_int
from .errors import ConfigurationError
from .feeds import FeedConfig, get_feed_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .imports import ImportConfig, get_import_config
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .trust import DEFAULT_AUTHORITATIVE_DOMAINS, TrustConfig, get_trust_config

__all__ = [
    "DEFAULT_AUTHORITATIVE_DOMAINS",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "FeedConfig",
    "ImportConfig",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "TrustConfig",
    "configure_logging",
    "env_csv",
    "env_decimal",
    "env_int",
    "get_database_config",
    "get_feed_config",
    "get_import_config",
    "get_reconciliation_config",
    "get_storage_config",
    "get_trust_config",
]
