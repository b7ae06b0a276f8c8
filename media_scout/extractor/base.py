"""Capabilities a processing stage can offer to the crawl pipeline."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from media_scout.crawler.models import CrawlResource
    from media_scout.warc.metadata import MetadataRecord


@runtime_checkable
class ContentExtractor(Protocol):
    """Runs on every fetched resource, may add outlinks and annotations."""

    def process(self, resource: "CrawlResource") -> object: ...


@runtime_checkable
class RecordBuilder(Protocol):
    """Contributes extra records when the WARC writer visits a resource."""

    def should_build_record(self, resource: "CrawlResource") -> bool: ...

    def build_record(
        self, resource: "CrawlResource", concurrent_to: Optional[str] = None
    ) -> "MetadataRecord": ...

    def post_write(self, record: "MetadataRecord", resource: "CrawlResource") -> None: ...


__all__ = ["ContentExtractor", "RecordBuilder"]
