"""media_scout.utils: timestamp, digest and mimetype helpers shared by the logs and WARC code."""

from __future__ import annotations

import base64
import hashlib
from datetime import datetime, timezone
from typing import BinaryIO, Optional, Sequence

from warcio.timeutils import datetime_to_timestamp

__all__: Sequence[str] = (
    "digest_scheme_string",
    "get_14_digit_date",
    "get_17_digit_date",
    "sha1_stream",
    "truncate_mimetype",
    "utcnow",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def get_17_digit_date(moment: Optional[datetime]) -> str:
    """``yyyyMMddHHmmssSSS`` in UTC; ``-`` when the moment is unknown."""
    if moment is None:
        return "-"
    moment = _as_utc(moment)
    return moment.strftime("%Y%m%d%H%M%S") + f"{moment.microsecond // 1000:03d}"


def get_14_digit_date(moment: Optional[datetime]) -> str:
    """``yyyyMMddHHmmss`` in UTC, the WARC/CDX timestamp form."""
    return datetime_to_timestamp(_as_utc(moment or utcnow()).replace(tzinfo=None))


def digest_scheme_string(algorithm: str, raw: Optional[bytes]) -> Optional[str]:
    """``sha1:<BASE32>`` as written to crawl logs and WARC headers."""
    if raw is None:
        return None
    return f"{algorithm}:{base64.b32encode(raw).decode('ascii')}"


def sha1_stream(stream: BinaryIO, chunk_size: int = 65536) -> bytes:
    """SHA-1 over everything left in *stream*."""
    digest = hashlib.sha1()
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return digest.digest()
        digest.update(chunk)


def truncate_mimetype(content_type: Optional[str]) -> str:
    """Media type without parameters or whitespace; ``no-type`` when unknown."""
    if not content_type:
        return "no-type"
    truncated = "".join(content_type.split(";", 1)[0].split())
    return truncated or "no-type"
