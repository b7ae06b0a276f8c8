"""
Runs the discovery tool in a subprocess and collects what it found.

stdout is parsed on the calling worker thread while every byte is mirrored
into the worker's scratch file; stderr is drained on a one-shot helper thread
so the tool can never stall on a full diagnostic pipe.
"""
from __future__ import annotations

import subprocess
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Sequence

from media_scout.extractor.scanner import (
    MalformedOutputError,
    TruncatedOutputError,
    scan_discovery_output,
)
from media_scout.extractor.scratch import ScratchBufferManager
from media_scout.extractor.streams import TeedReader
from media_scout.logger import get_logger

log = get_logger("runner")


@dataclass
class DiscoveryResult:
    """Output of one discovery run. ``payload`` is the worker's scratch file."""

    payload: BinaryIO
    video_urls: List[str] = field(default_factory=list)
    page_urls: List[str] = field(default_factory=list)


def read_to_end(stream: BinaryIO) -> str:
    """Everything left in *stream*, decoded; closes the stream once drained."""
    chunks = []
    try:
        while True:
            chunk = stream.read(4096)
            if not chunk:
                return b"".join(chunks).decode("utf-8", errors="replace")
            chunks.append(chunk)
    finally:
        stream.close()


class DiscoveryRunner:
    """Spawns the discovery tool for one URL at a time."""

    def __init__(
        self,
        process_arguments: Sequence[str],
        scratch: ScratchBufferManager,
        wait_timeout: float = 1.0,
    ) -> None:
        self.process_arguments = list(process_arguments)
        self.scratch = scratch
        self.wait_timeout = wait_timeout

    def command(self, url: str) -> List[str]:
        return self.process_arguments + [url]

    def run(self, url: str) -> Optional[DiscoveryResult]:
        """Discovery results for *url*, or ``None`` when the tool could not be used."""
        args = self.command(url)

        try:
            payload = self.scratch.reset()
        except OSError as exc:
            log.warning("problem opening scratch file for %s: %s", url, exc)
            return None

        log.info("running: %s", " ".join(args))
        try:
            proc = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            log.warning("%s failed %s: %s", args[0], args, exc)
            return None

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="discovery-stderr")
        stderr_text: Future[str] = pool.submit(read_to_end, proc.stderr)

        results = DiscoveryResult(payload=payload)
        try:
            try:
                scan_discovery_output(TeedReader(proc.stdout, results.payload), results)
            except TruncatedOutputError:
                # no json output at all means no media on the page, totally normal
                log.debug(
                    "problem parsing json from %s %s", args, self._diagnostics(stderr_text)
                )
        except (OSError, MalformedOutputError) as exc:
            log.warning(
                "problem reading output from %s %s: %s",
                args, self._diagnostics(stderr_text), exc,
            )
            return None
        finally:
            self._finish(proc)
            self._join_drain(stderr_text, args[0])
            pool.shutdown(wait=False, cancel_futures=True)
            results.payload.flush()

        log.debug(
            "%s found %d media and %d page urls",
            url, len(results.video_urls), len(results.page_urls),
        )
        return results

    def _diagnostics(self, stderr_text: Future[str]) -> str:
        try:
            return stderr_text.result(timeout=self.wait_timeout).strip()
        except FutureTimeoutError:
            return "<stderr still open>"
        except (OSError, ValueError) as exc:
            return f"<stderr unavailable: {exc}>"

    def _join_drain(self, stderr_text: Future[str], tool: str) -> None:
        # a child of the tool may keep stderr open; the drain closes the pipe when it ends
        try:
            stderr_text.result(timeout=self.wait_timeout)
        except FutureTimeoutError:
            log.warning("stderr of %s still open after exit, not waiting for it", tool)
        except (OSError, ValueError) as exc:
            log.debug("problem draining stderr of %s: %s", tool, exc)

    def _finish(self, proc: subprocess.Popen) -> None:
        if proc.stdout is not None:
            proc.stdout.close()
        try:
            # the process should already have completed
            proc.wait(timeout=self.wait_timeout)
        except subprocess.TimeoutExpired:
            log.warning("%s still running? killing it", self.process_arguments[0])
            proc.kill()
            proc.wait()


__all__ = ["DiscoveryResult", "DiscoveryRunner", "read_to_end"]
