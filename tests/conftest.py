# File: tests/conftest.py
import logging
import sys
from pathlib import Path
from typing import Callable, List

import pytest

from media_scout.config import ExtractorConfig
from media_scout.crawler.crawl_log import CrawlLog
from media_scout.extractor.capture_log import CaptureLog
from media_scout.extractor.scratch import ScratchBufferManager


@pytest.fixture(autouse=True)
def project_logger_propagates():
    """The CLI reconfigures the project logger; keep caplog working afterwards."""
    lg = logging.getLogger("MediaScout")
    yield
    lg.handlers.clear()
    lg.propagate = True
    lg.setLevel(logging.NOTSET)


@pytest.fixture()
def make_tool(tmp_path) -> Callable[..., List[str]]:
    """
    Write a stand-in discovery tool and return its command line.
    The body is Python source run by the current interpreter; the target URL
    arrives as the last argument, like the real tool.
    """
    counter = {"n": 0}

    def _make(body: str) -> List[str]:
        counter["n"] += 1
        script = tmp_path / f"tool{counter['n']}.py"
        script.write_text("import json, os, sys, time\n" + body, encoding="utf-8")
        return [sys.executable, str(script)]

    return _make


@pytest.fixture()
def json_tool(make_tool) -> Callable[[str], List[str]]:
    """Tool that prints *output* verbatim on stdout."""

    def _make(output: str) -> List[str]:
        return make_tool(f"sys.stdout.write({output!r})\nsys.stdout.flush()\n")

    return _make


@pytest.fixture()
def scratch(tmp_path) -> ScratchBufferManager:
    manager = ScratchBufferManager(directory=tmp_path)
    yield manager
    manager.release()


@pytest.fixture()
def log_dir(tmp_path) -> Path:
    return tmp_path / "logs"


@pytest.fixture()
def extractor_config(log_dir) -> ExtractorConfig:
    return ExtractorConfig(process_wait_timeout=5.0, log_dir=log_dir)


@pytest.fixture()
def capture_log(log_dir) -> CaptureLog:
    return CaptureLog("media_discovery", log_dir)


@pytest.fixture()
def crawl_log(log_dir) -> CrawlLog:
    return CrawlLog(log_dir)


@pytest.fixture()
def read_log() -> Callable[[Path], List[List[str]]]:
    """Lines of a simple log split into fields, without the leading timestamp."""

    def _read(path: Path) -> List[List[str]]:
        if not path.exists():
            return []
        return [line.split()[1:] for line in path.read_text(encoding="utf-8").splitlines()]

    return _read
