"""media_scout.engine: runs the fetch → extract → write pipeline over a small frontier."""

from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Set

from aiohttp import ClientSession, ClientTimeout

from media_scout.config import CrawlConfig
from media_scout.crawler.crawl_log import CrawlLog
from media_scout.crawler.fetcher import Fetcher
from media_scout.crawler.models import A_SOURCE_TAG, CrawlResource, Hop
from media_scout.extractor.capture_log import CaptureLog
from media_scout.extractor.media import MediaDiscoveryExtractor
from media_scout.logger import logger
from media_scout.warc.writer import WarcRecordWriter

__all__ = ["CrawlEngine", "run_crawl"]

#: outlinks the engine fetches itself; navlinks are only reported
_FOLLOW_HOPS = (Hop.EMBED.value, Hop.REDIRECT.value)


def _thread_number() -> int:
    _, _, suffix = threading.current_thread().name.rpartition("_")
    return int(suffix) if suffix.isdigit() else 0


class CrawlEngine:
    """Seeds plus the media and redirects discovered from them, one worker thread per resource."""

    def __init__(
        self,
        config: CrawlConfig,
        extractor: Optional[MediaDiscoveryExtractor] = None,
        crawl_log: Optional[CrawlLog] = None,
        warc_writer: Optional[WarcRecordWriter] = None,
    ) -> None:
        self.config = config
        ext = config.extractor
        self.crawl_log = crawl_log or CrawlLog(ext.log_dir)
        self.extractor = extractor or MediaDiscoveryExtractor(
            ext,
            CaptureLog(ext.capture_log_name, ext.log_dir),
            crawl_log=self.crawl_log,
        )
        self.warc_writer = warc_writer
        self.session: Optional[ClientSession] = None
        self.fetcher: Optional[Fetcher] = None
        self.seen: Set[str] = set()
        self._pool: Optional[ThreadPoolExecutor] = None

    async def __aenter__(self) -> CrawlEngine:
        self.session = ClientSession(
            timeout=ClientTimeout(total=self.config.timeout),
            headers={"User-Agent": self.config.user_agent},
            auto_decompress=False,
        )
        self.fetcher = Fetcher(self.session, max_fetch_bytes=self.config.max_fetch_bytes)
        self._pool = ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="worker")
        if self.warc_writer is None and self.config.warc_path is not None:
            self.warc_writer = WarcRecordWriter(
                self.config.warc_path, builders=[self.extractor], gzip=self.config.warc_gzip
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
        if self._pool is not None:
            self._pool.shutdown(wait=True)
        if self.warc_writer is not None:
            self.warc_writer.close()

    async def crawl(self, seeds: Optional[Iterable[str]] = None) -> List[CrawlResource]:
        seed_urls = [str(s) for s in (seeds if seeds is not None else self.config.seeds)]
        logger.info("Crawl start: %d seeds", len(seed_urls))
        start = time.monotonic()
        queue: asyncio.Queue[CrawlResource] = asyncio.Queue()
        for url in seed_urls:
            if url in self.seen:
                continue
            self.seen.add(url)
            seed = CrawlResource(url=url)
            seed.data[A_SOURCE_TAG] = url
            await queue.put(seed)

        results: List[CrawlResource] = []
        workers = [asyncio.create_task(self._worker(queue, results)) for _ in range(self.config.workers)]
        await queue.join()
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        duration = time.monotonic() - start
        logger.info("Crawl finished: %d resources in %.2f s", len(results), duration)
        return results

    async def _worker(self, queue: asyncio.Queue[CrawlResource], results: List[CrawlResource]) -> None:
        loop = asyncio.get_running_loop()
        while True:
            try:
                resource = await queue.get()
                try:
                    if len(results) >= self.config.max_resources:
                        continue
                    await self.fetcher.fetch(resource)
                    results.append(resource)
                    await loop.run_in_executor(self._pool, self._process, resource)
                    for link in resource.outlinks:
                        if link.last_hop in _FOLLOW_HOPS and link.url not in self.seen:
                            self.seen.add(link.url)
                            await queue.put(link)
                except Exception as exc:
                    logger.error("Crawling %s failed: %s", resource.url, exc)
                finally:
                    queue.task_done()
            except asyncio.CancelledError:
                break

    def _process(self, resource: CrawlResource) -> None:
        """One worker turn: extraction, WARC writing and logging on the same thread."""
        resource.thread_number = _thread_number()
        try:
            if resource.fetch_status > 0:
                self.extractor.process(resource)
                if self.warc_writer is not None:
                    self.warc_writer.write(resource)
        except Exception as exc:
            logger.error("Processing %s failed: %s", resource.url, exc)
        self.crawl_log.log(resource)


async def run_crawl(config: CrawlConfig, seeds: Optional[Iterable[str]] = None) -> List[CrawlResource]:
    async with CrawlEngine(config) as engine:
        return await engine.crawl(seeds)
