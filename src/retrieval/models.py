"""Repository record as stored in the portfolio snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from src.errors import MalformedResponseError


def require_repository_payload(payload: Any, context: str = "repository payload") -> Dict[str, Any]:
    """Return `payload` if it is an object with a string `name`; raise `MalformedResponseError` otherwise."""
    if not isinstance(payload, dict) or not isinstance(payload.get("name"), str) or not payload["name"]:
        raise MalformedResponseError(f"{context} is not a repository object with a name: {payload!r:.120}")
    return payload


def _unique(values: Any) -> List[str]:
    seen: List[str] = []
    for value in values or []:
        text = str(value)
        if text not in seen:
            seen.append(text)
    return seen


@dataclass
class RepositoryRecord:
    """One GitHub repository, enriched with topics, README, languages and screenshot."""

    id: Optional[int]
    name: str
    description: Optional[str] = None
    html_url: str = ""
    homepage: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    pushed_at: Optional[str] = None
    topics: List[str] = field(default_factory=list)
    languages: Dict[str, int] = field(default_factory=dict)
    has_readme: bool = False
    readme_content: Optional[str] = None
    screenshot_url: Optional[str] = None
    fork: bool = False
    # absolute URL the screenshot can be mirrored from; not serialised
    screenshot_source: Optional[str] = None

    @property
    def homepage_url(self) -> str:
        return self.homepage or ""

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RepositoryRecord":
        """Build a bare record from a `/users/{u}/repos` or `/repos/{o}/{r}` payload."""
        require_repository_payload(payload)
        return cls(
            id=payload.get("id"),
            name=payload["name"],
            description=payload.get("description"),
            html_url=payload.get("html_url") or "",
            homepage=payload.get("homepage"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
            pushed_at=payload.get("pushed_at"),
            topics=_unique(payload.get("topics")),
            languages={},
            fork=bool(payload.get("fork")),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositoryRecord":
        """Inverse of `to_dict`; tolerates snapshots written before a field existed."""
        return cls(
            id=data.get("id"),
            name=data["name"],
            description=data.get("description"),
            html_url=data.get("html_url") or "",
            homepage=data.get("homepage"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            pushed_at=data.get("pushed_at"),
            topics=_unique(data.get("topics")),
            languages=dict(data.get("languages") or {}),
            has_readme=bool(data.get("hasReadme")),
            readme_content=data.get("readmeContent"),
            screenshot_url=data.get("screenshotUrl"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "html_url": self.html_url,
            "homepage": self.homepage,
            "homepageUrl": self.homepage_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "pushed_at": self.pushed_at,
            "topics": list(self.topics),
            "languages": dict(self.languages),
            "hasReadme": self.has_readme,
            "readmeContent": self.readme_content,
            "screenshotUrl": self.screenshot_url,
        }

    def copy(self, **changes: Any) -> "RepositoryRecord":
        return replace(self, **changes)


__all__ = ["RepositoryRecord", "require_repository_payload"]
