"""Error taxonomy shared by the retrieval and pipeline packages."""

from __future__ import annotations

from typing import Optional


class PortfolioError(Exception):
    """Base class for every error raised by the portfolio data pipeline."""


class ConfigurationError(PortfolioError):
    """A required setting (the GitHub username) is missing."""


class RemoteAPIError(PortfolioError):
    """GitHub answered with a status code outside the 2xx range."""

    def __init__(self, status_code: int, message: str, url: Optional[str] = None) -> None:
        self.status_code = status_code
        self.message = message
        self.url = url
        super().__init__(f"GitHub API error: {status_code} {message}")


class MalformedResponseError(PortfolioError):
    """A payload did not have the expected shape (e.g. a listing that is not a list)."""


class EnrichmentFieldError(PortfolioError):
    """Fetching one optional field for one repository failed."""

    def __init__(self, repo: str, field: str, cause: Optional[BaseException] = None) -> None:
        self.repo = repo
        self.field = field
        self.cause = cause
        super().__init__(f"{field} unavailable for {repo}: {cause}")


class PersistenceError(PortfolioError):
    """The snapshot file could not be written."""

    def __init__(self, path: str, cause: Optional[BaseException] = None) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"could not write {path}: {cause}")


__all__ = [
    "PortfolioError",
    "ConfigurationError",
    "RemoteAPIError",
    "MalformedResponseError",
    "EnrichmentFieldError",
    "PersistenceError",
]
