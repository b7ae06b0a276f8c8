"""
Loading and validation of media_scout configuration.
Pydantic models describe the schema; YAML and JSON files are accepted.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
)

MAX_VIDEOS_PER_PAGE = 1000

#: yt-dlp in simulate mode, one JSON document on stdout.
#: Format selection: best video no better than h264 and best audio no better
#: than aac, smallest dimension no larger than 720.
DEFAULT_PROCESS_ARGUMENTS: tuple[str, ...] = (
    "yt-dlp",
    "--ignore-config",
    "--simulate",
    "--dump-single-json",
    "-S vcodec:h264,res:720,acodec:aac",
    "--no-cache-dir",
    "--no-playlist",
    f"--playlist-end={MAX_VIDEOS_PER_PAGE}",
)


class ExtractorConfig(BaseModel):
    """Settings of the media discovery stage."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    process_arguments: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PROCESS_ARGUMENTS),
        description="Discovery tool command line; the target URL is appended last.",
    )
    max_content_length: int = Field(
        200_000_000, gt=0, description="Pages this large or larger are never handed to the tool."
    )
    process_wait_timeout: float = Field(
        1.0, gt=0, description="Seconds to wait for the tool to exit before killing it."
    )
    log_metadata_record: bool = Field(
        True, description="Write a crawl log entry for every metadata record written."
    )
    log_dir: Path = Field(Path("logs"), description="Directory of the capture and crawl logs.")
    capture_log_name: str = Field("media_discovery", min_length=1)
    scratch_dir: Optional[Path] = Field(
        None, description="Directory for per-worker scratch files (system temp dir if unset)."
    )

    @field_validator("process_arguments")
    def _require_tool(cls, v: List[str]) -> List[str]:
        if not v or not v[0].strip():
            raise ValueError("process_arguments must name the discovery tool")
        return v


class CrawlConfig(BaseModel):
    """Configuration of one crawl run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    seeds: List[HttpUrl] = Field(default_factory=list, description="Start URLs.")
    timeout: float = Field(30.0, gt=0, description="Per-request timeout (seconds).")
    user_agent: str = Field("MediaScoutBot/1.0", min_length=1, description="User-Agent header.")
    workers: int = Field(4, ge=1, description="Number of extraction worker threads.")
    max_resources: int = Field(100, ge=1, description="Hard limit on fetched resources.")
    max_fetch_bytes: int = Field(
        200_000_000, gt=0, description="Response bodies are cut off after this many bytes."
    )
    warc_path: Optional[Path] = Field(None, description="WARC output file (no WARC if unset).")
    warc_gzip: bool = True
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> CrawlConfig:
    """
    Read YAML or JSON and return a validated CrawlConfig.
    Raises FileNotFoundError when the file is missing.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    try:
        return CrawlConfig(**data)
    except ValidationError:
        raise


__all__ = [
    "CrawlConfig",
    "DEFAULT_PROCESS_ARGUMENTS",
    "ExtractorConfig",
    "MAX_VIDEOS_PER_PAGE",
    "load_config",
]
