"""Classification of source references as authoritative or not."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final
from urllib.parse import urlsplit

DEFAULT_AUTHORITATIVE_DOMAINS: Final[tuple[str, ...]] = ("gov", "gov.uk", "europa.eu", "gc.ca")
_ALLOWED_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})


def _clean_domain(domain: str) -> str:
    return domain.strip().strip(".").lower()


def _host_of(source_ref: object) -> str | None:
    if not isinstance(source_ref, str) or not source_ref.strip():
        return None
    try:
        parts = urlsplit(source_ref.strip())
        hostname = parts.hostname
    except ValueError:
        return None
    if parts.scheme.lower() not in _ALLOWED_SCHEMES or not hostname:
        return None
    return hostname.rstrip(".").lower() or None


def host_is_or_sub(host: str, domain: str) -> bool:
    """Whether ``host`` equals ``domain`` or sits under it on a label boundary."""

    return host == domain or host.endswith("." + domain)


@dataclass(frozen=True, slots=True)
class TrustClassifier:
    """Decides whether a source reference points at an authoritative publisher.

    Only ``http``/``https`` URLs are considered. Anything that does not parse as such
    classifies as not authoritative.
    """

    authoritative_domains: tuple[str, ...] = field(default=DEFAULT_AUTHORITATIVE_DOMAINS)

    def __post_init__(self) -> None:
        cleaned = tuple(
            domain for domain in map(_clean_domain, self.authoritative_domains) if domain
        )
        object.__setattr__(self, "authoritative_domains", cleaned)

    def is_authoritative(self, source_ref: str | None) -> bool:
        host = _host_of(source_ref)
        if host is None:
            return False
        return any(host_is_or_sub(host, domain) for domain in self.authoritative_domains)

    __call__ = is_authoritative


_DEFAULT_CLASSIFIER = TrustClassifier()


def is_authoritative(source_ref: str | None) -> bool:
    """Classify ``source_ref`` against the default allow-list."""

    return _DEFAULT_CLASSIFIER.is_authoritative(source_ref)
