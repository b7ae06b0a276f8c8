#!/usr/bin/env python3
"""
Command line entry point of media_scout.

Commands:
  crawl       Fetch the seeds, discover media on HTML pages and fetch the
              media. HTML pages and discovery output go to the WARC; media
              captures are only logged. Prints a JSON summary
  discover    Run only the discovery tool on one URL and print what it found
  config      Show the effective configuration

Common options:
  --config PATH       YAML/JSON config (default: configs/default.yaml)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stdout only when not given)
  --log-format FORMAT Logging format string

Example:
  media-scout --config configs/default.yaml crawl https://example.com/watch --pretty
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from media_scout import __version__
from media_scout.config import load_config
from media_scout.engine import run_crawl
from media_scout.extractor.runner import DiscoveryRunner
from media_scout.extractor.scratch import ScratchBufferManager
from media_scout.logger import init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _summary(resource) -> dict:
    return {
        'url': resource.url,
        'status': resource.fetch_status,
        'hop_path': resource.hop_path,
        'content_type': resource.content_type,
        'annotations': list(resource.annotations),
        'outlinks': [{'url': link.url, 'hop': link.last_hop} for link in resource.outlinks],
    }


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='media_scout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to the YAML/JSON configuration file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stdout only when not given)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(name)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """media_scout command group."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('seeds', nargs=-1)
@click.option('--pretty', is_flag=True, help='Indent the JSON summary')
@click.option(
    '--crawl-timeout', 'crawl_timeout',
    type=float,
    default=None,
    help='Timeout for the whole crawl (seconds)'
)
@click.pass_context
def crawl(ctx, seeds, pretty, crawl_timeout):
    """Crawl SEEDS (or the configured seeds) and print a JSON summary.

    HTML pages and discovery output are archived; media are fetched and logged.
    """
    cfg = ctx.obj['config']
    try:
        if crawl_timeout:
            resources = asyncio.run(
                asyncio.wait_for(run_crawl(cfg, seeds or None), timeout=crawl_timeout)
            )
        else:
            resources = asyncio.run(run_crawl(cfg, seeds or None))
    except asyncio.TimeoutError:
        print_error(f'Crawl did not finish within {crawl_timeout} seconds')
    except Exception as e:
        print_error(f'Crawl failed: {e}')

    click.echo(json.dumps([_summary(r) for r in resources], ensure_ascii=False, indent=2 if pretty else None))


@cli.command('discover', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--pretty', is_flag=True, help='Indent the JSON output')
@click.pass_context
def discover(ctx, url, pretty):
    """Run the discovery tool on URL and print the media and page URLs it reports."""
    ext = ctx.obj['config'].extractor
    scratch = ScratchBufferManager(directory=ext.scratch_dir)
    runner = DiscoveryRunner(ext.process_arguments, scratch, wait_timeout=ext.process_wait_timeout)
    try:
        results = runner.run(url)
        if results is None:
            print_error(f'Discovery failed for {url}, see the log')
        results.payload.seek(0, 2)
        output = {
            'url': url,
            'video_urls': results.video_urls,
            'page_urls': results.page_urls,
            'payload_bytes': results.payload.tell(),
        }
    finally:
        scratch.release()
    click.echo(json.dumps(output, ensure_ascii=False, indent=2 if pretty else None))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


# expose these names at module level for test monkey-patching
cli.run_crawl = run_crawl

if __name__ == "__main__":
    cli()
