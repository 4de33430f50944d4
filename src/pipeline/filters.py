"""Record-level transformations applied between enrichment and persistence."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from src.retrieval.models import RepositoryRecord


def filter_excluded(repositories: Sequence[RepositoryRecord],
                    exclude_topics: Iterable[str]) -> Sequence[RepositoryRecord]:
    """Drop repositories carrying any excluded topic (case-insensitive).

    An empty exclusion list returns `repositories` itself without scanning it.
    """
    excluded = {topic.strip().lower() for topic in exclude_topics if topic and topic.strip()}
    if not excluded:
        logger.debug("[filter] no exclude topics configured, skipping topic filtering")
        return repositories

    kept = [
        repo for repo in repositories
        if not excluded.intersection(topic.lower() for topic in repo.topics)
    ]
    logger.info(
        "[filter] exclude topics removed {} repositories, {} remaining",
        len(repositories) - len(kept),
        len(kept),
    )
    return kept


def filter_forks(repositories: Iterable[RepositoryRecord]) -> List[RepositoryRecord]:
    kept = [repo for repo in repositories if not repo.fork]
    return kept


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub's ISO-8601 timestamps (`2024-01-01T00:00:00Z`); None when unparsable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def sort_by_created(repositories: Iterable[RepositoryRecord]) -> List[RepositoryRecord]:
    """Newest first; records without a creation date sink to the end."""
    return sorted(
        repositories,
        key=lambda repo: parse_timestamp(repo.created_at) or _EPOCH,
        reverse=True,
    )


def language_stats(repositories: Iterable[RepositoryRecord]) -> Dict[str, int]:
    """Count how many repositories use each language."""
    stats: Counter = Counter()
    for repo in repositories:
        stats.update(repo.languages.keys())
    return dict(stats)


__all__ = [
    "filter_excluded",
    "filter_forks",
    "parse_timestamp",
    "sort_by_created",
    "language_stats",
]
