"""Configuration for the portfolio data pipeline: paths, knobs and resolved settings."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from src.errors import ConfigurationError
from src.retrieval import config as api_config
from src.secrets import first_github_token, load_local_secrets

DATA_DIR = "public/data"
SNAPSHOT_FILENAME = "repos.json"
IMAGES_DIR = "public/images/repos"
SCREENSHOT_DIR = "assets/screenshots"
LOG_LEVEL = "INFO"

MODES = ("full", "check", "update", "clear", "readme", "stats")


def parse_exclude_topics(raw: Optional[str]) -> List[str]:
    """Split a comma-separated topic list, lower-casing and dropping blanks."""
    if not raw:
        return []
    return [topic.strip().lower() for topic in raw.split(",") if topic.strip()]


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings for one pipeline invocation."""

    username: str
    token: Optional[str] = None
    exclude_topics: List[str] = field(default_factory=list)
    base_url: str = api_config.BASE_URL
    raw_base: str = api_config.RAW_CONTENT_BASE
    branch: str = api_config.DEFAULT_BRANCH
    per_page: int = api_config.PER_PAGE
    max_pages: int = api_config.MAX_PAGES
    timeout: float = api_config.REQUEST_TIMEOUT
    max_retries: int = api_config.MAX_RETRIES
    backoff_base: float = api_config.BACKOFF_BASE_SEC
    batch_size: int = api_config.BATCH_SIZE
    batch_delay_ms: int = api_config.BATCH_DELAY_MS
    asset_batch_size: int = api_config.ASSET_BATCH_SIZE
    asset_batch_delay_ms: int = api_config.ASSET_BATCH_DELAY_MS
    cache_ttl: int = api_config.CACHE_TTL_SEC
    data_dir: Path = Path(DATA_DIR)
    images_dir: Path = Path(IMAGES_DIR)
    screenshot_dir: Optional[Path] = Path(SCREENSHOT_DIR)
    fallback_snapshots: List[Path] = field(default_factory=list)
    mirror_screenshots: bool = True

    @property
    def snapshot_path(self) -> Path:
        return self.data_dir / SNAPSHOT_FILENAME


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the pipeline entry point."""

    parser = argparse.ArgumentParser(
        description="Aggregate a GitHub user's repositories into a portfolio snapshot.",
    )
    parser.add_argument("mode", nargs="?", default="full", choices=MODES)
    parser.add_argument("--username", default=None)
    parser.add_argument("--exclude-topics", default=None, help="comma-separated topic list")
    parser.add_argument("--repos", nargs="*", default=[], help="repository names for update mode")
    parser.add_argument("--repo", default=None, help="repository name for readme mode")
    parser.add_argument("--data-dir", default=None)
    parser.add_argument("--images-dir", default=None)
    parser.add_argument("--screenshot-dir", default=None)
    parser.add_argument("--fallback-snapshot", action="append", default=[])
    parser.add_argument("--no-mirror", action="store_true")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", LOG_LEVEL))
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def resolve_settings(
    args: Optional[argparse.Namespace] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Merge CLI arguments, environment and the local secrets file into `Settings`.

    Raises `ConfigurationError` when no GitHub username can be found.
    """

    env = os.environ if environ is None else environ
    args = args or parse_args([])

    username = (getattr(args, "username", None) or env.get("GITHUB_USERNAME") or "").strip()
    if not username:
        raise ConfigurationError("GitHub username not configured (set GITHUB_USERNAME)")

    token = env.get("GITHUB_TOKEN") or first_github_token(load_local_secrets())
    exclude_raw = getattr(args, "exclude_topics", None)
    if exclude_raw is None:
        exclude_raw = env.get("EXCLUDE_TOPICS", "")

    data_dir = getattr(args, "data_dir", None) or env.get("DATA_DIR") or DATA_DIR
    images_dir = getattr(args, "images_dir", None) or env.get("IMAGES_DIR") or IMAGES_DIR
    screenshot_dir = getattr(args, "screenshot_dir", None) or env.get("SCREENSHOT_DIR") or SCREENSHOT_DIR

    return Settings(
        username=username,
        token=token or None,
        exclude_topics=parse_exclude_topics(exclude_raw),
        base_url=env.get("GITHUB_API_URL", api_config.BASE_URL),
        raw_base=env.get("GITHUB_RAW_URL", api_config.RAW_CONTENT_BASE),
        per_page=int(env.get("PER_PAGE", api_config.PER_PAGE)),
        max_pages=int(env.get("MAX_PAGES", api_config.MAX_PAGES)),
        timeout=float(env.get("REQUEST_TIMEOUT", api_config.REQUEST_TIMEOUT)),
        max_retries=int(env.get("MAX_RETRIES", api_config.MAX_RETRIES)),
        backoff_base=float(env.get("BACKOFF_BASE_SEC", api_config.BACKOFF_BASE_SEC)),
        batch_size=int(env.get("BATCH_SIZE", api_config.BATCH_SIZE)),
        batch_delay_ms=int(env.get("BATCH_DELAY_MS", api_config.BATCH_DELAY_MS)),
        cache_ttl=int(env.get("CACHE_TTL_SEC", api_config.CACHE_TTL_SEC)),
        data_dir=Path(data_dir),
        images_dir=Path(images_dir),
        screenshot_dir=Path(screenshot_dir),
        fallback_snapshots=[Path(p) for p in getattr(args, "fallback_snapshot", None) or []],
        mirror_screenshots=not bool(getattr(args, "no_mirror", False)),
    )


__all__ = [
    "DATA_DIR",
    "SNAPSHOT_FILENAME",
    "IMAGES_DIR",
    "SCREENSHOT_DIR",
    "LOG_LEVEL",
    "MODES",
    "Settings",
    "parse_exclude_topics",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
]
