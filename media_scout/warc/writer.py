"""
Minimal WARC writer: a ``response`` record per resource whose body was kept,
followed by whatever the registered record builders contribute.
"""
from __future__ import annotations

import io
import threading
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from warcio.statusandheaders import StatusAndHeaders
from warcio.timeutils import timestamp_to_iso_date
from warcio.warcwriter import WARCWriter

from media_scout.crawler.models import CrawlResource
from media_scout.extractor.base import RecordBuilder
from media_scout.logger import get_logger
from media_scout.utils import get_14_digit_date

log = get_logger("warc")


class WarcRecordWriter:
    """Appends records to one WARC file; safe to share between worker threads."""

    def __init__(self, path: Path | str, builders: Sequence[RecordBuilder] = (), gzip: bool = True) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.builders: List[RecordBuilder] = list(builders)
        self._fh: BinaryIO = open(self.path, "ab")
        self._writer = WARCWriter(self._fh, gzip=gzip)
        self._lock = threading.Lock()

    @property
    def filename(self) -> str:
        return self.path.name

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.close()

    def __enter__(self) -> "WarcRecordWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _write(self, record) -> int:
        with self._lock:
            offset = self._fh.tell()
            self._writer.write_record(record)
            self._fh.flush()
        return offset

    def write_response(self, resource: CrawlResource) -> Optional[str]:
        """Write the response record; returns its record id, or None without a body."""
        if resource.body is None:
            return None
        status_line = f"{resource.fetch_status} {resource.reason}".strip()
        http_headers = StatusAndHeaders(status_line, list(resource.response_headers), protocol="HTTP/1.1")
        record = self._writer.create_warc_record(
            resource.url,
            "response",
            payload=io.BytesIO(resource.body),
            http_headers=http_headers,
            warc_headers_dict={
                "WARC-Date": timestamp_to_iso_date(get_14_digit_date(resource.fetch_begin_time)),
            },
        )
        self._write(record)
        return record.rec_headers.get_header("WARC-Record-ID")

    def write(self, resource: CrawlResource) -> None:
        """Write everything this resource contributes to the WARC.

        Must run on the worker thread that processed *resource*: builders may
        read that worker's scratch data.
        """
        concurrent_to = self.write_response(resource)
        for builder in self.builders:
            if not builder.should_build_record(resource):
                continue
            record = builder.build_record(resource, concurrent_to)
            try:
                record.warc_offset = self._write(record.warc_record)
                record.warc_filename = self.filename
            finally:
                record.close()
            builder.post_write(record, resource)


__all__ = ["WarcRecordWriter"]
