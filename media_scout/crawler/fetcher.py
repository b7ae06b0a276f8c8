# media_scout/crawler/fetcher.py
"""
Fetcher module: one HTTP request per resource, no redirect following, with
digest and length bookkeeping for the extractors and the WARC writer.
"""
from __future__ import annotations

import asyncio
import hashlib
import time
from typing import Sequence

from aiohttp import ClientError, ClientSession

from media_scout.crawler.models import CrawlResource, Hop, LinkContext
from media_scout.extractor.media import HTML_MIMETYPE_PREFIXES
from media_scout.logger import get_logger
from media_scout.utils import utcnow

log = get_logger("fetcher")

#: fetch status for a connection or protocol failure
S_CONNECT_FAILED = -2
#: fetch status for a request that timed out
S_TIMEOUT = -5


class Fetcher:
    """Fetches a resource and fills in what later stages ask about it."""

    def __init__(
        self,
        session: ClientSession,
        max_fetch_bytes: int = 200_000_000,
        keep_body_types: Sequence[str] = HTML_MIMETYPE_PREFIXES,
    ) -> None:
        self.session = session
        self.max_fetch_bytes = max_fetch_bytes
        self.keep_body_types = tuple(keep_body_types)

    async def fetch(self, resource: CrawlResource) -> CrawlResource:
        """
        Fetch ``resource.url`` and record status, headers, length, type and digest.

        3xx responses get their ``Location`` as a redirect outlink. Failures
        are recorded as negative fetch statuses, never raised.
        """
        resource.fetch_begin_time = utcnow()
        started = time.monotonic()
        try:
            async with self.session.get(resource.url, allow_redirects=False) as resp:
                resource.fetch_status = resp.status
                resource.reason = resp.reason or ""
                resource.response_headers = list(resp.headers.items())
                resource.content_type = resp.headers.get("Content-Type")

                keep = (resource.content_type or "").lower().startswith(self.keep_body_types)
                digest = hashlib.sha1()
                body = bytearray()
                length = 0
                async for chunk in resp.content.iter_chunked(65536):
                    remaining = self.max_fetch_bytes - length
                    cut = len(chunk) > remaining
                    chunk = chunk[:remaining]
                    length += len(chunk)
                    digest.update(chunk)
                    if keep:
                        body.extend(chunk)
                    if cut:
                        resource.add_annotation("lenTrunc")
                        break

                resource.content_length = length
                resource.content_size = length
                resource.set_content_digest("sha1", digest.digest())
                if keep:
                    resource.body = bytes(body)

                location = resp.headers.get("Location")
                if 300 <= resp.status < 400 and location:
                    resource.create_outlink(location, LinkContext.LOCATION, Hop.REDIRECT)
        except asyncio.TimeoutError:
            resource.fetch_status = S_TIMEOUT
            log.warning("Timed out fetching %s", resource.url)
        except ClientError as exc:
            resource.fetch_status = S_CONNECT_FAILED
            log.warning("Failed %s: %s", resource.url, exc)
        finally:
            resource.fetch_duration_ms = int((time.monotonic() - started) * 1000)
        return resource


__all__ = ["Fetcher", "S_CONNECT_FAILED", "S_TIMEOUT"]
