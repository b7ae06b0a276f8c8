# File: tests/test_cli.py
"""CLI tests (`media_scout/cli.py`) with click.testing.CliRunner.

Cover `crawl`, `discover`, `config`, `--version` and error handling.
"""
import asyncio
import json

import pytest
import yaml
from click.testing import CliRunner

import media_scout.cli as cli_module
from media_scout import __version__
from media_scout.cli import cli
from media_scout.crawler.models import CrawlResource, Hop, LinkContext


@pytest.fixture()
def config_file(tmp_path):
    def _write(**overrides):
        data = {
            "seeds": ["https://example.com/"],
            "timeout": 1.0,
            "extractor": {"log_dir": str(tmp_path / "logs"), "process_wait_timeout": 5.0},
        }
        data.update(overrides)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def fake_crawl(monkeypatch):
    """Replace run_crawl with one returning a canned page."""
    seen = {}

    async def fake_run_crawl(cfg, seeds=None):
        seen["seeds"] = seeds
        page = CrawlResource(url="https://example.com/", fetch_status=200, content_type="text/html")
        page.add_annotation("youtube-dl:1")
        page.create_outlink("https://example.com/v.mp4", LinkContext.EMBED_MISC, Hop.EMBED)
        return [page]

    monkeypatch.setattr(cli_module, "run_crawl", fake_run_crawl)
    return seen


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert f"media_scout, version {__version__}" in result.output


def test_show_config(config_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_file(workers=3)), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["seeds"] == ["https://example.com/"]
    assert data["workers"] == 3
    assert data["extractor"]["process_arguments"][0] == "yt-dlp"


def test_invalid_config_is_reported(config_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_file(workers=0)), "config"])
    assert result.exit_code == 1
    assert "Failed to load configuration" in result.output


def test_crawl_prints_summary(config_file, fake_crawl):
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--log-level", "ERROR", "--config", str(config_file()), "crawl", "https://example.com/"]
    )
    assert result.exit_code == 0
    assert fake_crawl["seeds"] == ("https://example.com/",)
    [page] = json.loads(result.output)
    assert page["url"] == "https://example.com/"
    assert page["annotations"] == ["youtube-dl:1"]
    assert page["outlinks"] == [{"url": "https://example.com/v.mp4", "hop": "E"}]


def test_crawl_uses_configured_seeds(config_file, fake_crawl):
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "ERROR", "--config", str(config_file()), "crawl"])
    assert result.exit_code == 0
    assert fake_crawl["seeds"] is None


def test_crawl_timeout(config_file, monkeypatch):
    async def slow(cfg, seeds=None):
        await asyncio.sleep(5)
        return []

    monkeypatch.setattr(cli_module, "run_crawl", slow)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_file()), "crawl", "--crawl-timeout", "0.2"])
    assert result.exit_code != 0
    assert "did not finish" in result.output


def test_discover_prints_urls(config_file, json_tool):
    tool = json_tool('{"url": "http://x/v.mp4", "webpage_url": "http://x/watch"}')
    cfg = config_file(extractor={"process_arguments": tool, "process_wait_timeout": 5.0})
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "ERROR", "--config", str(cfg), "discover", "http://x/page"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {
        "url": "http://x/page",
        "video_urls": ["http://x/v.mp4"],
        "page_urls": ["http://x/watch"],
        "payload_bytes": len('{"url": "http://x/v.mp4", "webpage_url": "http://x/watch"}'),
    }


def test_discover_failure(config_file, tmp_path):
    cfg = config_file(extractor={"process_arguments": [str(tmp_path / "missing-tool")]})
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "ERROR", "--config", str(cfg), "discover", "http://x/page"])
    assert result.exit_code == 1
    assert "Discovery failed" in result.output


def test_crawl_help_says_what_is_archived(config_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_file()), "crawl", "--help"])
    assert result.exit_code == 0
    assert "archived" in result.output
    assert "logged" in result.output
