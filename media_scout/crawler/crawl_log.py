"""
The crawl's ordinary per-resource log (``crawl.log``).

Line layout::

    [timestamp] [status] [size] [url] [hop-path] [via] [mimetype] #[thread] [fetch-time+duration] [digest] [source] [annotations] [extra-info-json]
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from media_scout.crawler.models import CrawlResource
from media_scout.logger import setup_simple_log
from media_scout.utils import get_17_digit_date, truncate_mimetype


class CrawlLog:
    def __init__(self, directory: Path | str, name: str = "crawl", sink: Optional[logging.Logger] = None) -> None:
        self._sink = sink or setup_simple_log(name, directory)

    @staticmethod
    def format(resource: CrawlResource) -> str:
        size = resource.content_size if resource.content_size > 0 else "-"
        if resource.fetch_begin_time is not None:
            timing = get_17_digit_date(resource.fetch_begin_time)
            if resource.fetch_duration_ms is not None:
                timing += f"+{resource.fetch_duration_ms}"
        else:
            timing = "-"
        return " ".join((
            f"{resource.fetch_status:>5}",
            f"{size:>10}",
            resource.url,
            resource.hop_path or "-",
            resource.via.url if resource.via is not None else "-",
            truncate_mimetype(resource.content_type),
            f"#{resource.thread_number:03d}",
            timing,
            resource.content_digest or "-",
            resource.source_tag or "-",
            ",".join(resource.annotations) or "-",
            json.dumps(resource.extra_info, sort_keys=True, separators=(",", ":")) if resource.extra_info else "-",
        ))

    def log(self, resource: CrawlResource) -> None:
        self._sink.info(self.format(resource))


__all__ = ["CrawlLog"]
