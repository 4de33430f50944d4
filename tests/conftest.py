"""Shared fakes for the pipeline tests: an in-memory stand-in for GitHubClient."""

import base64
from typing import Any, Dict, List, Optional

import pytest

from src.errors import RemoteAPIError


def repo_payload(name: str, created: str = "2024-01-01T00:00:00Z", **extra: Any) -> Dict[str, Any]:
    payload = {
        "id": abs(hash(name)) % 10_000,
        "name": name,
        "description": f"{name} description",
        "html_url": f"https://github.com/bob/{name}",
        "homepage": None,
        "created_at": created,
        "updated_at": created,
        "pushed_at": created,
        "fork": False,
    }
    payload.update(extra)
    return payload


def readme_payload(text: str) -> Dict[str, str]:
    return {"content": base64.b64encode(text.encode("utf-8")).decode("ascii"), "encoding": "base64"}


class FakeGitHubClient:
    """Serves canned payloads; a missing entry answers like a GitHub 404."""

    def __init__(self, username: str = "bob") -> None:
        self.username = username
        self.listing: List[Dict[str, Any]] = []
        self.details: Dict[str, Dict[str, Any]] = {}
        self.topics: Dict[str, Any] = {}
        self.readmes: Dict[str, Any] = {}
        self.languages: Dict[str, Any] = {}
        self.profile: Optional[Dict[str, Any]] = {"login": username, "name": "Bob"}
        self.downloads: Dict[str, Any] = {}
        self.calls: List[tuple] = []

    @staticmethod
    def _answer(value: Any, what: str) -> Any:
        if isinstance(value, BaseException):
            raise value
        if value is None:
            raise RemoteAPIError(404, "Not Found", what)
        return value

    async def list_all_repositories(self, per_page: int = 100, max_pages: int = 50, *args: Any) -> List[Dict[str, Any]]:
        self.calls.append(("list",))
        return self._answer(self.listing, "listing")

    async def get_repository_details(self, name: str) -> Dict[str, Any]:
        self.calls.append(("details", name))
        return self._answer(self.details.get(name), name)

    async def get_repository_topics(self, name: str) -> List[str]:
        self.calls.append(("topics", name))
        return self._answer(self.topics.get(name, []), name)

    async def get_repository_readme(self, name: str) -> Dict[str, Any]:
        self.calls.append(("readme", name))
        return self._answer(self.readmes.get(name), name)

    async def get_repository_languages(self, name: str) -> Dict[str, int]:
        self.calls.append(("languages", name))
        return self._answer(self.languages.get(name, {}), name)

    async def get_user_profile(self) -> Dict[str, Any]:
        self.calls.append(("profile",))
        return self._answer(self.profile, "profile")

    async def download(self, url: str) -> bytes:
        self.calls.append(("download", url))
        return self._answer(self.downloads.get(url), url)

    def close(self) -> None:
        pass


@pytest.fixture
def fake_client():
    return FakeGitHubClient()
