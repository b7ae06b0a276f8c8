"""
WARC metadata records holding raw discovery tool output.

The containing page (annotated ``youtube-dl:<N>``) gets one ``metadata``
record whose body is exactly the bytes the tool printed, taken from the
worker's scratch file. Such records never pass through the fetch stage, so
after writing one a stand-in entry is sent to the crawl log.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Optional

from warcio.limitreader import LimitReader
from warcio.recordloader import ArcWarcRecord
from warcio.timeutils import timestamp_to_iso_date
from warcio.warcwriter import BufferWARCWriter

from media_scout.crawler.crawl_log import CrawlLog
from media_scout.crawler.models import CrawlResource, Hop, LinkContext
from media_scout.extractor.propagation import ANNOTATION_PREFIX, find_annotation
from media_scout.extractor.scratch import ScratchBufferManager
from media_scout.logger import get_logger
from media_scout.utils import digest_scheme_string, get_14_digit_date, sha1_stream

log = get_logger("metadata")

YDL_JSON_FILE_DIGEST = "ydl-json-file-digest"
METADATA_CONTENT_TYPE = "application/vnd.youtube-dl_formats+json;charset=utf-8"

# only used to assemble records; nothing is ever written to its buffer
_RECORD_FACTORY = BufferWARCWriter(gzip=False, warc_version="1.0")


@dataclass
class MetadataRecord:
    """A built record plus where the writer put it."""

    warc_record: ArcWarcRecord
    url: str
    content_type: str
    content_length: int
    payload_digest: str
    payload: BinaryIO
    warc_filename: Optional[str] = None
    warc_offset: Optional[int] = None

    @property
    def record_id(self) -> str:
        return self.warc_record.rec_headers.get_header("WARC-Record-ID")

    def close(self) -> None:
        self.payload.close()


class MetadataRecordBuilder:
    """Builds the discovery-output metadata record for containing pages."""

    def __init__(
        self,
        scratch: ScratchBufferManager,
        crawl_log: Optional[CrawlLog] = None,
        log_metadata_record: bool = True,
    ) -> None:
        self.scratch = scratch
        self.crawl_log = crawl_log
        self.log_metadata_record = log_metadata_record

    def should_build_record(self, resource: CrawlResource) -> bool:
        # containing pages carry "youtube-dl:3"; media carry "youtube-dl:1/3"
        annotation = find_annotation(resource)
        should_build = annotation is not None and "/" not in annotation

        # the writer will not consume this worker's scratch file, close it now
        if not should_build:
            self.scratch.release()

        return should_build

    def build_record(self, resource: CrawlResource, concurrent_to: Optional[str] = None) -> MetadataRecord:
        timestamp = get_14_digit_date(resource.fetch_begin_time)
        url = ANNOTATION_PREFIX + resource.url

        payload = self.scratch.get()
        payload.flush()
        payload.seek(0)
        raw_digest = sha1_stream(payload)
        resource.data[YDL_JSON_FILE_DIGEST] = raw_digest
        length = payload.tell()
        payload.seek(0)

        digest = digest_scheme_string("sha1", raw_digest)
        headers = {
            "WARC-Date": timestamp_to_iso_date(timestamp),
            "WARC-Block-Digest": digest,
            "WARC-Payload-Digest": digest,
        }
        if concurrent_to is not None:
            headers["WARC-Concurrent-To"] = concurrent_to if concurrent_to.startswith("<") else f"<{concurrent_to}>"

        warc_record = _RECORD_FACTORY.create_warc_record(
            url,
            "metadata",
            payload=LimitReader(payload, length),
            length=length,
            warc_content_type=METADATA_CONTENT_TYPE,
            warc_headers_dict=headers,
        )
        log.info("built record timestamp=%s url=%s", timestamp, url)
        return MetadataRecord(
            warc_record=warc_record,
            url=url,
            content_type=METADATA_CONTENT_TYPE,
            content_length=length,
            payload_digest=digest,
            payload=payload,
        )

    def post_write(self, record: MetadataRecord, resource: CrawlResource) -> None:
        """Log the written record to the crawl log through a stand-in resource."""
        if not self.log_metadata_record or self.crawl_log is None:
            return

        try:
            pseudo = resource.derive(record.url, LinkContext.EMBED_MISC, Hop.INFERRED)
        except ValueError as exc:
            log.warning("Exception while parsing URI for youtube-dl metadata record %s: %s", record.url, exc)
            return

        raw_digest = resource.data.get(YDL_JSON_FILE_DIGEST)
        if raw_digest is None:
            log.warning("Exception while generating digest for youtube-dl metadata record %s", record.url)
            return

        pseudo.add_annotation(ANNOTATION_PREFIX)
        pseudo.thread_number = resource.thread_number
        pseudo.content_size = record.content_length
        pseudo.content_type = record.content_type
        pseudo.fetch_begin_time = resource.fetch_begin_time
        pseudo.add_extra_info("warcFilename", record.warc_filename)
        pseudo.add_extra_info("warcFileOffset", record.warc_offset)
        pseudo.fetch_status = 204
        pseudo.set_content_digest("sha1", raw_digest)
        pseudo.add_extra_info("contentSize", record.content_length)
        self.crawl_log.log(pseudo)


__all__ = ["METADATA_CONTENT_TYPE", "MetadataRecord", "MetadataRecordBuilder", "YDL_JSON_FILE_DIGEST"]
