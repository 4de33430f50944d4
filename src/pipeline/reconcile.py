"""Cheap change detection against the stored snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from src.retrieval.models import require_repository_payload

from .filters import parse_timestamp
from .snapshot import Snapshot


@dataclass
class UpdateCheck:
    changed: List[Dict[str, Any]] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    is_new_snapshot: bool = False

    @property
    def changed_names(self) -> List[str]:
        return [entry["name"] for entry in self.changed]


def lightweight_listing(
    raw_repos: Iterable[Any],
    exclude_topics: Iterable[str] = (),
) -> List[Dict[str, Any]]:
    """Reduce listing payloads to name + timestamps, dropping forks and excluded topics.

    Excluded repositories never reach the snapshot, so keeping them here would
    report them as new on every check.
    """
    excluded = {topic.strip().lower() for topic in exclude_topics if topic and topic.strip()}
    entries: List[Dict[str, Any]] = []
    for repo in raw_repos:
        require_repository_payload(repo, "Repository listing entry")
        if repo.get("fork"):
            continue
        if excluded and excluded.intersection(str(topic).lower() for topic in repo.get("topics") or []):
            continue
        entries.append({
            "name": repo["name"],
            "updated_at": repo.get("updated_at"),
            "pushed_at": repo.get("pushed_at"),
        })
    return entries


def _advanced(fresh: Optional[str], stored: Optional[str]) -> bool:
    fresh_ts = parse_timestamp(fresh)
    if fresh_ts is None:
        return False
    stored_ts = parse_timestamp(stored)
    return stored_ts is None or fresh_ts > stored_ts


def check_for_updates(fresh: Iterable[Dict[str, Any]], stored: Optional[Snapshot]) -> UpdateCheck:
    """Classify each fresh entry as new, changed or unchanged.

    A repository changed when either `updated_at` (metadata edits such as
    topics) or `pushed_at` (content pushes) is later than the stored value.
    """
    if stored is None or not stored.repositories:
        logger.info("[check] no stored snapshot, a full fetch is needed")
        return UpdateCheck(is_new_snapshot=True)

    stored_by_name = {repo.name: repo for repo in stored.repositories}
    result = UpdateCheck()
    for entry in fresh:
        name = entry["name"]
        known = stored_by_name.get(name)
        if known is None:
            result.changed.append({**entry, "isNew": True})
            continue
        if _advanced(entry.get("updated_at"), known.updated_at) or _advanced(
            entry.get("pushed_at"), known.pushed_at
        ):
            result.changed.append({**entry, "isNew": False})
        else:
            result.unchanged.append(name)

    logger.info("[check] {} changed, {} unchanged", len(result.changed), len(result.unchanged))
    return result


__all__ = ["UpdateCheck", "lightweight_listing", "check_for_updates"]
