"""
Log of containing pages and the media captured because of them.

One line per event, space separated, ``-`` for absent values::

    [timestamp] [media-status] [media-length] [media-mimetype] [media-digest] [media-timestamp] [media-url] [annotation] [page-digest] [page-timestamp] [page-url] [seed]

For containing pages all ``media-*`` fields are ``-`` and the annotation looks
like ``youtube-dl:3`` (three media links found). For media the annotation
looks like ``youtube-dl:1/3``; the page fields identify the capture of the
containing page, so the log can drive an index of media by containing page.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from media_scout.crawler.models import CrawlResource
from media_scout.logger import setup_simple_log
from media_scout.utils import get_17_digit_date, truncate_mimetype

YDL_CONTAINING_PAGE_DIGEST = "ydl-containing-page-digest"
YDL_CONTAINING_PAGE_TIMESTAMP = "ydl-containing-page-timestamp"
YDL_CONTAINING_PAGE_URI = "ydl-containing-page-uri"

LINKAGE_KEYS = (YDL_CONTAINING_PAGE_URI, YDL_CONTAINING_PAGE_TIMESTAMP, YDL_CONTAINING_PAGE_DIGEST)


def _field(value: Any) -> str:
    if value is None or value == "":
        return "-"
    return str(value)


def content_length_field(resource: CrawlResource) -> str:
    """Protocol length if known, else recorded size, else ``-``."""
    if resource.is_http_transaction and resource.content_length >= 0:
        return str(resource.content_length)
    if resource.content_size > 0:
        return str(resource.content_size)
    return "-"


class CaptureLog:
    def __init__(self, name: str, directory: Path | str, sink: Optional[logging.Logger] = None) -> None:
        self.name = name
        self._sink = sink or setup_simple_log(name, directory)

    def log_captured_media(self, resource: CrawlResource, annotation: str) -> None:
        self._sink.info(" ".join((
            str(resource.fetch_status),
            content_length_field(resource),
            truncate_mimetype(resource.content_type),
            _field(resource.content_digest),
            get_17_digit_date(resource.fetch_begin_time),
            resource.url,
            annotation,
            _field(resource.data.get(YDL_CONTAINING_PAGE_DIGEST)),
            _field(resource.data.get(YDL_CONTAINING_PAGE_TIMESTAMP)),
            _field(resource.data.get(YDL_CONTAINING_PAGE_URI)),
            _field(resource.source_tag),
        )))

    def log_containing_page(self, resource: CrawlResource, annotation: str) -> None:
        self._sink.info(" ".join((
            "- - - - - -",
            annotation,
            _field(resource.content_digest),
            get_17_digit_date(resource.fetch_begin_time),
            resource.url,
            _field(resource.source_tag),
        )))


__all__ = [
    "CaptureLog",
    "LINKAGE_KEYS",
    "YDL_CONTAINING_PAGE_DIGEST",
    "YDL_CONTAINING_PAGE_TIMESTAMP",
    "YDL_CONTAINING_PAGE_URI",
    "content_length_field",
]
