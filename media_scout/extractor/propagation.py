"""Turns discovery results into outlinks and carries containing-page identity across redirects."""
from __future__ import annotations

from typing import List

from media_scout.crawler.models import CrawlResource, Hop, LinkContext
from media_scout.extractor.capture_log import (
    LINKAGE_KEYS,
    YDL_CONTAINING_PAGE_DIGEST,
    YDL_CONTAINING_PAGE_TIMESTAMP,
    YDL_CONTAINING_PAGE_URI,
)
from media_scout.utils import get_17_digit_date

ANNOTATION_PREFIX = "youtube-dl:"


def media_annotation(index: int, total: int) -> str:
    """``youtube-dl:<i+1>/<N>`` for the zero-based *index* of *total* media links."""
    return f"{ANNOTATION_PREFIX}{index + 1}/{total}"


def page_annotation(total: int) -> str:
    return f"{ANNOTATION_PREFIX}{total}"


def find_annotation(resource: CrawlResource) -> str | None:
    for annotation in resource.annotations:
        if annotation.startswith(ANNOTATION_PREFIX):
            return annotation
    return None


def add_media_outlink(page: CrawlResource, url: str, index: int, total: int) -> CrawlResource | None:
    link = page.create_outlink(url, LinkContext.EMBED_MISC, Hop.EMBED)
    if link is None:
        return None

    link.add_annotation(media_annotation(index, total))

    # unambiguously identifies the capture of the containing page
    link.data[YDL_CONTAINING_PAGE_URI] = page.url
    link.data[YDL_CONTAINING_PAGE_TIMESTAMP] = get_17_digit_date(page.fetch_begin_time)
    link.data[YDL_CONTAINING_PAGE_DIGEST] = page.content_digest
    return link


def add_page_outlink(page: CrawlResource, url: str) -> CrawlResource | None:
    return page.create_outlink(url, LinkContext.NAVLINK_MISC, Hop.NAVLINK)


def inherit_redirect(resource: CrawlResource, annotation: str) -> List[CrawlResource]:
    """Copy *annotation* and the containing-page triple onto the redirect outlink.

    Nothing happens when the redirect has not been turned into an outlink yet.
    """
    inherited = []
    for link in resource.outlinks:
        if link.last_hop != Hop.REDIRECT.value:
            continue
        link.add_annotation(annotation)
        for key in LINKAGE_KEYS:
            link.data[key] = resource.data.get(key)
        inherited.append(link)
    return inherited


__all__ = [
    "ANNOTATION_PREFIX",
    "add_media_outlink",
    "add_page_outlink",
    "find_annotation",
    "inherit_redirect",
    "media_annotation",
    "page_annotation",
]
