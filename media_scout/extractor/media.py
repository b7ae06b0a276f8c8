"""
Extracts links to media by running a yt-dlp compatible tool in a subprocess.

Runs discovery only on HTML. Also contributes a WARC metadata record holding
the tool's JSON output for every page on which media were found.

Per fetched resource exactly one thing happens:

* annotated ``youtube-dl:*`` and a 3xx: the annotation and containing-page
  triple move on to the redirect outlink (the HTTP extractor must already
  have added it);
* annotated ``youtube-dl:*`` otherwise: it is a captured medium, logged to
  the capture log;
* otherwise, if :meth:`MediaDiscoveryExtractor.should_extract`: run the tool,
  add outlinks, annotate and log the containing page.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from media_scout.config import ExtractorConfig
from media_scout.crawler.crawl_log import CrawlLog
from media_scout.crawler.models import RECEIVED_FROM_AMQP, CrawlResource
from media_scout.extractor.capture_log import CaptureLog
from media_scout.extractor.propagation import (
    add_media_outlink,
    add_page_outlink,
    find_annotation,
    inherit_redirect,
    page_annotation,
)
from media_scout.extractor.runner import DiscoveryResult, DiscoveryRunner
from media_scout.extractor.scratch import ScratchBufferManager
from media_scout.logger import get_logger
from media_scout.warc.metadata import MetadataRecord, MetadataRecordBuilder

log = get_logger("extractor")

#: extra-data key remembering what was already done for a resource
YDL_ACTION = "ydl-action"

HTML_MIMETYPE_PREFIXES = (
    "text/html",
    "application/xhtml",
    "text/vnd.wap.wml",
    "application/vnd.wap.wml",
    "application/vnd.wap.xhtml",
)


class Action(str, Enum):
    INHERIT_REDIRECT = "inherit-redirect"
    LOG_CAPTURE = "log-capture"
    DISCOVER = "discover"
    SKIP = "skip"


class MediaDiscoveryExtractor:
    """Content extractor and record builder for tool-discovered media.

    Collaborators are passed in explicitly: the capture log, the crawl log
    that receives stand-in entries for metadata records, and optionally a
    prepared runner (tests hand in fakes).
    """

    def __init__(
        self,
        config: ExtractorConfig,
        capture_log: CaptureLog,
        crawl_log: Optional[CrawlLog] = None,
        scratch: Optional[ScratchBufferManager] = None,
        runner: Optional[DiscoveryRunner] = None,
    ) -> None:
        self.config = config
        self.capture_log = capture_log
        self.scratch = scratch or ScratchBufferManager(directory=config.scratch_dir)
        self.runner = runner or DiscoveryRunner(
            config.process_arguments, self.scratch, wait_timeout=config.process_wait_timeout
        )
        self.records = MetadataRecordBuilder(
            self.scratch, crawl_log=crawl_log, log_metadata_record=config.log_metadata_record
        )

    # ------------------------------------------------------------------ #
    # content extraction                                                 #
    # ------------------------------------------------------------------ #

    def classify(self, resource: CrawlResource) -> Action:
        done = resource.data.get(YDL_ACTION)
        if done is not None:
            return Action(done)
        if find_annotation(resource) is not None:
            if 300 <= resource.fetch_status < 400:
                return Action.INHERIT_REDIRECT
            return Action.LOG_CAPTURE
        if self.should_extract(resource):
            return Action.DISCOVER
        return Action.SKIP

    def should_extract(self, resource: CrawlResource) -> bool:
        """Run the tool on HTML 200s that are not too huge."""
        if resource.fetch_status != 200:
            return False

        if resource.content_length <= 0 or resource.content_length >= self.config.max_content_length:
            return False

        # fed to us by the message bus, already handled upstream
        if RECEIVED_FROM_AMQP in resource.annotations:
            return False

        mime = (resource.content_type or "").lower()
        return mime.startswith(HTML_MIMETYPE_PREFIXES)

    def process(self, resource: CrawlResource) -> Action:
        if YDL_ACTION in resource.data:
            log.debug("already processed %s", resource.url)
            return Action(resource.data[YDL_ACTION])

        action = self.classify(resource)
        if action is Action.INHERIT_REDIRECT:
            if not inherit_redirect(resource, find_annotation(resource)):
                # redirect not turned into an outlink yet, try again next time
                return action
        elif action is Action.LOG_CAPTURE:
            self.capture_log.log_captured_media(resource, find_annotation(resource))
        elif action is Action.DISCOVER:
            self.discover(resource)

        if action is not Action.SKIP:
            resource.data[YDL_ACTION] = action.value
        return action

    def discover(self, resource: CrawlResource) -> Optional[DiscoveryResult]:
        results = self.runner.run(resource.url)
        if results is None:
            return None

        total = len(results.video_urls)
        for index, video_url in enumerate(results.video_urls):
            add_media_outlink(resource, video_url, index, total)

        for page_url in results.page_urls:
            add_page_outlink(resource, page_url)

        if total > 0:
            annotation = page_annotation(total)
            resource.add_annotation(annotation)
            self.capture_log.log_containing_page(resource, annotation)
        return results

    # ------------------------------------------------------------------ #
    # record building                                                    #
    # ------------------------------------------------------------------ #

    def should_build_record(self, resource: CrawlResource) -> bool:
        return self.records.should_build_record(resource)

    def build_record(self, resource: CrawlResource, concurrent_to: Optional[str] = None) -> MetadataRecord:
        return self.records.build_record(resource, concurrent_to)

    def post_write(self, record: MetadataRecord, resource: CrawlResource) -> None:
        self.records.post_write(record, resource)


__all__ = ["Action", "HTML_MIMETYPE_PREFIXES", "MediaDiscoveryExtractor", "YDL_ACTION"]
