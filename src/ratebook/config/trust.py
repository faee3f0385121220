"""Authoritative-source allow-list configuration."""

from __future__ import annotations

from dataclasses import dataclass

from ratebook.domain.trust import DEFAULT_AUTHORITATIVE_DOMAINS

from .env import env_csv


@dataclass(frozen=True, slots=True)
class TrustConfig:
    authoritative_domains: tuple[str, ...] = DEFAULT_AUTHORITATIVE_DOMAINS


def get_trust_config() -> TrustConfig:
    domains = env_csv("RATEBOOK_AUTHORITATIVE_DOMAINS", DEFAULT_AUTHORITATIVE_DOMAINS)
    return TrustConfig(authoritative_domains=tuple(domain.lower() for domain in domains))
