"""Central configuration constants for talking to the GitHub REST API."""

from __future__ import annotations

import os

USER_AGENT = "github-portfolio-data/1.0"
BASE_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
RAW_CONTENT_BASE = os.getenv("GITHUB_RAW_URL", "https://raw.githubusercontent.com")
ACCEPT_HEADER = "application/vnd.github.v3+json"
TOPICS_ACCEPT_HEADER = "application/vnd.github.mercy-preview+json"
DEFAULT_BRANCH = "main"

PER_PAGE = int(os.getenv("PER_PAGE", "100"))
MAX_PAGES = int(os.getenv("MAX_PAGES", "50"))  # safety ceiling for pagination
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
BACKOFF_BASE_SEC = float(os.getenv("BACKOFF_BASE_SEC", "1"))

BATCH_SIZE = int(os.getenv("BATCH_SIZE", "5"))
BATCH_DELAY_MS = int(os.getenv("BATCH_DELAY_MS", "100"))
ASSET_BATCH_SIZE = 3
ASSET_BATCH_DELAY_MS = 500

CACHE_TTL_SEC = int(os.getenv("CACHE_TTL_SEC", "0"))  # 0 = never expire

__all__ = [
    "USER_AGENT",
    "BASE_URL",
    "RAW_CONTENT_BASE",
    "ACCEPT_HEADER",
    "TOPICS_ACCEPT_HEADER",
    "DEFAULT_BRANCH",
    "PER_PAGE",
    "MAX_PAGES",
    "REQUEST_TIMEOUT",
    "MAX_RETRIES",
    "BACKOFF_BASE_SEC",
    "BATCH_SIZE",
    "BATCH_DELAY_MS",
    "ASSET_BATCH_SIZE",
    "ASSET_BATCH_DELAY_MS",
    "CACHE_TTL_SEC",
]
