# media_scout/crawler/models.py
"""
Data models for the media_scout crawler.

:class:`CrawlResource` is the unit of work handed from the fetch stage to the
extractors and the WARC writer. Extractors only append annotations and only
touch extra-data keys they own.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from media_scout.utils import digest_scheme_string

#: annotation added by the message-bus URL receiver
RECEIVED_FROM_AMQP = "receivedFromAMQP"

#: extra-data key holding the seed a resource descends from
A_SOURCE_TAG = "source"

ScopePredicate = Callable[["CrawlResource"], bool]


class Hop(str, Enum):
    """Single-letter hop codes as they appear in hop paths."""

    NAVLINK = "L"
    EMBED = "E"
    REDIRECT = "R"
    INFERRED = "I"
    PREREQ = "P"
    SPECULATIVE = "X"


class LinkContext(str, Enum):
    NAVLINK_MISC = "navlink-misc"
    EMBED_MISC = "embed-misc"
    LOCATION = "location"
    INFERRED_MISC = "inferred-misc"


@dataclass(eq=False)
class CrawlResource:
    """A URL moving through the crawl, with what the fetch stage learned about it."""

    url: str
    fetch_status: int = 0
    content_length: int = -1
    content_size: int = 0
    content_type: Optional[str] = None
    content_digest: Optional[str] = None
    fetch_begin_time: Optional[datetime] = None
    fetch_duration_ms: Optional[int] = None
    last_hop: str = ""
    hop_path: str = ""
    via: Optional["CrawlResource"] = None
    via_context: Optional[str] = None
    thread_number: int = 0
    annotations: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    extra_info: Dict[str, Any] = field(default_factory=dict)
    outlinks: List["CrawlResource"] = field(default_factory=list)
    response_headers: List[Tuple[str, str]] = field(default_factory=list)
    reason: str = ""
    body: Optional[bytes] = None
    scope: Optional[ScopePredicate] = field(default=None, repr=False)

    def __str__(self) -> str:
        return self.url

    @property
    def is_http_transaction(self) -> bool:
        return urlsplit(self.url).scheme in ("http", "https")

    @property
    def source_tag(self) -> Optional[str]:
        return self.data.get(A_SOURCE_TAG)

    def add_annotation(self, annotation: str) -> None:
        if annotation not in self.annotations:
            self.annotations.append(annotation)

    def add_extra_info(self, key: str, value: Any) -> None:
        self.extra_info[key] = value

    def set_content_digest(self, algorithm: str, raw: bytes) -> None:
        self.content_digest = digest_scheme_string(algorithm, raw)

    def derive(self, url: str, context: LinkContext, hop: Hop) -> "CrawlResource":
        """New resource discovered from this one; raises ValueError for unusable URLs."""
        absolute = urljoin(self.url, url.strip())
        parts = urlsplit(absolute)
        if not parts.scheme or not (parts.netloc or parts.path):
            raise ValueError(f"cannot make a crawl URL out of {url!r}")
        derived = CrawlResource(
            url=absolute,
            hop_path=self.hop_path + hop.value,
            last_hop=hop.value,
            via=self,
            via_context=context.value,
            scope=self.scope,
        )
        if self.source_tag is not None:
            derived.data[A_SOURCE_TAG] = self.source_tag
        return derived

    def create_outlink(self, url: str, context: LinkContext, hop: Hop) -> Optional["CrawlResource"]:
        """Derive and record an outlink; ``None`` when the URL is unusable or out of scope."""
        try:
            link = self.derive(url, context, hop)
        except ValueError:
            return None
        if urlsplit(link.url).scheme not in ("http", "https"):
            return None
        if self.scope is not None and not self.scope(link):
            return None
        for existing in self.outlinks:
            if existing.url == link.url and existing.last_hop == link.last_hop:
                return existing
        self.outlinks.append(link)
        return link


__all__ = [
    "A_SOURCE_TAG",
    "CrawlResource",
    "Hop",
    "LinkContext",
    "RECEIVED_FROM_AMQP",
    "ScopePredicate",
]
