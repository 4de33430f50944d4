"""GitHub REST client with uniform error translation and linear retry/backoff."""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import requests
from loguru import logger

from src.errors import ConfigurationError, MalformedResponseError, RemoteAPIError

from .config import (
    ACCEPT_HEADER,
    BACKOFF_BASE_SEC,
    BASE_URL,
    MAX_PAGES,
    MAX_RETRIES,
    PER_PAGE,
    REQUEST_TIMEOUT,
    TOPICS_ACCEPT_HEADER,
    USER_AGENT,
)
from .models import require_repository_payload

T = TypeVar("T")


def error_message(resp: requests.Response) -> str:
    """Extract GitHub's `message` field, falling back to a slice of the raw body."""
    try:
        body = resp.json()
    except Exception:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        body = {"text": str(body)[:300]}
    return str(body.get("message") or body.get("error") or body.get("text") or resp.reason or "")


def log_http_error(resp: requests.Response, url: str) -> None:
    """Log a short, human-readable line when GitHub returns an error."""
    msg = error_message(resp)
    if resp.status_code == 404:
        logger.debug("[http] 404 for {} -> {}", url, msg)
    else:
        logger.warning("[error] HTTP {} for {} -> {}", resp.status_code, url, msg)


def is_retryable(exc: BaseException) -> bool:
    """Return False for failures another attempt cannot fix (4xx other than rate limits)."""
    if isinstance(exc, (MalformedResponseError, ConfigurationError)):
        return False
    if isinstance(exc, RemoteAPIError):
        if exc.status_code >= 500 or exc.status_code == 429:
            return True
        if exc.status_code == 403 and "rate limit" in exc.message.lower():
            return True
        return False
    return True


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = MAX_RETRIES,
    backoff_base: float = BACKOFF_BASE_SEC,
    retry_on: Callable[[BaseException], bool] = is_retryable,
) -> T:
    """Await `operation()`, retrying up to `max_retries` extra times.

    The wait before retry N is `backoff_base * N` seconds. The last error is
    re-raised once retries are exhausted or when `retry_on` rejects it.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= max_retries or not retry_on(exc):
                raise
            attempt += 1
            delay = backoff_base * attempt
            logger.warning("[retry {}/{}] {} -> sleep {:.1f}s", attempt, max_retries, exc, delay)
            await asyncio.sleep(delay)


class GitHubClient:
    """Thin async wrapper around the GitHub REST API for a single user account.

    Requests go through a shared `requests.Session`; each blocking call runs in
    a worker thread so that many calls can be in flight on one event loop.
    """

    def __init__(
        self,
        username: str,
        token: Optional[str] = None,
        *,
        base_url: str = BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE_SEC,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not username:
            raise ConfigurationError("GitHub username not configured")
        self.username = username
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": ACCEPT_HEADER, "User-Agent": USER_AGENT})
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    # -- context manager ---------------------------------------------------

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    # -- transport ---------------------------------------------------------

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        path = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{path}"

    def _get_json(self, path: str, params: Optional[Dict[str, Any]], accept: Optional[str]) -> Any:
        url = self._url(path)
        headers = {"Accept": accept} if accept else None
        resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        if not 200 <= resp.status_code < 300:
            log_http_error(resp, url)
            raise RemoteAPIError(resp.status_code, error_message(resp), url)
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponseError(f"Expected JSON from {url}") from exc

    def _get_bytes(self, url: str) -> bytes:
        resp = self.session.get(url, timeout=self.timeout)
        if resp.status_code != 200:
            log_http_error(resp, url)
            raise RemoteAPIError(resp.status_code, error_message(resp), url)
        return resp.content

    async def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> Any:
        """Issue one GET and return decoded JSON; raises `RemoteAPIError` on non-2xx."""
        return await asyncio.to_thread(self._get_json, path, params, accept)

    async def fetch(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> Any:
        """`request` wrapped in the client's retry policy."""
        return await with_retry(
            lambda: self.request(path, params=params, accept=accept),
            self.max_retries,
            self.backoff_base,
        )

    async def download(self, url: str) -> bytes:
        """Fetch raw bytes from an absolute URL (used for screenshot mirroring)."""
        return await with_retry(
            lambda: asyncio.to_thread(self._get_bytes, url),
            self.max_retries,
            self.backoff_base,
        )

    # -- endpoints ---------------------------------------------------------

    async def list_repositories(
        self,
        page: int = 1,
        per_page: int = PER_PAGE,
        sort: str = "created",
        direction: str = "desc",
    ) -> List[Dict[str, Any]]:
        params = {"per_page": per_page, "page": page, "sort": sort, "direction": direction}
        batch = await self.fetch(f"/users/{self.username}/repos", params=params)
        if not isinstance(batch, list):
            raise MalformedResponseError(
                f"Repository listing for {self.username} page {page} did not return a list"
            )
        for item in batch:
            require_repository_payload(item, f"Repository listing for {self.username} page {page} entry")
        return batch

    async def list_all_repositories(
        self,
        per_page: int = PER_PAGE,
        max_pages: int = MAX_PAGES,
        sort: str = "created",
        direction: str = "desc",
    ) -> List[Dict[str, Any]]:
        """Page through the user's repositories until a short/empty page or `max_pages`."""
        results: List[Dict[str, Any]] = []
        page = 1
        while True:
            if max_pages and page > max_pages:
                logger.warning("[list] reached safety limit of {} pages", max_pages)
                break
            batch = await self.list_repositories(page, per_page, sort, direction)
            if not batch:
                break
            results.extend(batch)
            logger.info("[list] page {} -> {} repos (total {})", page, len(batch), len(results))
            if len(batch) < per_page:
                break
            page += 1
        return results

    async def get_repository_details(self, name: str) -> Dict[str, Any]:
        data = await self.fetch(f"/repos/{self.username}/{name}")
        return require_repository_payload(data, f"Details for {name}")

    async def get_repository_topics(self, name: str) -> List[str]:
        data = await self.fetch(f"/repos/{self.username}/{name}/topics", accept=TOPICS_ACCEPT_HEADER)
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Topics payload for {name} is not an object")
        return list(data.get("names") or [])

    async def get_repository_readme(self, name: str) -> Dict[str, Any]:
        """Return `{"content": ..., "encoding": ...}` as declared by GitHub."""
        data = await self.fetch(f"/repos/{self.username}/{name}/readme")
        if not isinstance(data, dict) or "content" not in data:
            raise MalformedResponseError(f"README payload for {name} has no content")
        return {"content": data.get("content") or "", "encoding": data.get("encoding")}

    async def get_repository_languages(self, name: str) -> Dict[str, int]:
        data = await self.fetch(f"/repos/{self.username}/{name}/languages")
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Languages payload for {name} is not an object")
        return {str(lang): int(count) for lang, count in data.items()}

    async def get_user_profile(self) -> Dict[str, Any]:
        return await self.fetch(f"/users/{self.username}")


__all__ = [
    "GitHubClient",
    "error_message",
    "log_http_error",
    "is_retryable",
    "with_retry",
]
