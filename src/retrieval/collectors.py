"""Per-repository enrichment: topics, README, screenshot URL and language breakdown."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from loguru import logger

from src.errors import EnrichmentFieldError, RemoteAPIError

from .batching import run_batched
from .config import BATCH_DELAY_MS, BATCH_SIZE, DEFAULT_BRANCH, RAW_CONTENT_BASE
from .http_client import GitHubClient
from .models import RepositoryRecord
from .screenshots import find_local_screenshot, screenshot_from_readme

T = TypeVar("T")

PROFILE_FIELDS = (
    "login",
    "avatar_url",
    "html_url",
    "name",
    "bio",
    "public_repos",
    "followers",
    "following",
    "created_at",
)


def decode_readme(payload: Dict[str, Any]) -> str:
    """Decode a README payload according to its declared `encoding`."""
    content = payload.get("content") or ""
    if payload.get("encoding") == "base64":
        return base64.b64decode(content).decode("utf-8", errors="replace")
    return content


async def _field_or_default(repo: str, field: str, fetch: Callable[[], Awaitable[T]], default: T) -> T:
    try:
        return await fetch()
    except Exception as exc:
        err = EnrichmentFieldError(repo, field, exc)
        if isinstance(exc, RemoteAPIError) and exc.status_code == 404:
            logger.debug("[enrich] {}", err)
        else:
            logger.warning("[enrich] {}", err)
        return default


class RepositoryEnricher:
    """Fill in topics, README, screenshot and languages for repository records.

    Every field is fetched independently; a failure leaves that field at its
    empty default and never stops the other fields or the other repositories.
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        batch_size: int = BATCH_SIZE,
        batch_delay_ms: int = BATCH_DELAY_MS,
        raw_base: str = RAW_CONTENT_BASE,
        branch: str = DEFAULT_BRANCH,
        screenshot_dir: Optional[str | Path] = None,
    ) -> None:
        self.client = client
        self.batch_size = batch_size
        self.batch_delay_ms = batch_delay_ms
        self.raw_base = raw_base
        self.branch = branch
        self.screenshot_dir = screenshot_dir

    async def enrich(
        self,
        repositories: Sequence[RepositoryRecord],
        username: Optional[str] = None,
    ) -> List[RepositoryRecord]:
        owner = username or self.client.username
        logger.info("[enrich] {} repositories (batches of {})", len(repositories), self.batch_size)
        return await run_batched(
            list(repositories),
            self.batch_size,
            lambda repo: self.enrich_one(repo, owner),
            self.batch_delay_ms,
        )

    async def enrich_one(self, repo: RepositoryRecord, username: Optional[str] = None) -> RepositoryRecord:
        owner = username or self.client.username
        name = repo.name

        topics = await _field_or_default(name, "topics", lambda: self.client.get_repository_topics(name), [])

        readme = await _field_or_default(name, "readme", lambda: self.client.get_repository_readme(name), None)
        readme_content: Optional[str] = None
        if readme is not None:
            try:
                readme_content = decode_readme(readme)
            except ValueError as exc:
                logger.warning("[enrich] {}", EnrichmentFieldError(name, "readme", exc))

        screenshot_url, screenshot_source = screenshot_from_readme(
            readme_content, owner, name, self.raw_base, self.branch
        )
        if screenshot_url is None and self.screenshot_dir:
            screenshot_url = find_local_screenshot(name, self.screenshot_dir)

        languages = await _field_or_default(
            name, "languages", lambda: self.client.get_repository_languages(name), {}
        )

        return repo.copy(
            topics=list(dict.fromkeys(topics)),
            languages=dict(languages),
            has_readme=readme_content is not None,
            readme_content=readme_content,
            screenshot_url=screenshot_url,
            screenshot_source=screenshot_source,
        )


async def fetch_user_profile(client: GitHubClient) -> Optional[Dict[str, Any]]:
    """Return the public profile fields shown by the front-end, or None on failure."""
    try:
        profile = await client.get_user_profile()
    except Exception as exc:
        logger.warning("[profile] could not fetch profile for {}: {}", client.username, exc)
        return None
    if not isinstance(profile, dict):
        return None
    return {key: profile.get(key) for key in PROFILE_FIELDS}


__all__ = ["RepositoryEnricher", "decode_readme", "fetch_user_profile", "PROFILE_FIELDS"]
