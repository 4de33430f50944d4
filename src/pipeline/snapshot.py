"""Snapshot document and the best-effort JSON store that holds it."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from loguru import logger

from src.errors import PersistenceError
from src.retrieval.models import RepositoryRecord

from .filters import language_stats


def utc_now_iso() -> str:
    """Current UTC time as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Snapshot:
    """Generated dataset: metadata plus the enriched repository list."""

    generated_at: str
    username: str
    exclude_topics: List[str] = field(default_factory=list)
    repositories: List[RepositoryRecord] = field(default_factory=list)
    user_profile: Optional[Dict[str, Any]] = None
    language_stats: Optional[Dict[str, int]] = None
    last_update: Optional[Dict[str, Any]] = None

    @property
    def total_repos(self) -> int:
        return len(self.repositories)

    def names(self) -> List[str]:
        return [repo.name for repo in self.repositories]

    def to_dict(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "generatedAt": self.generated_at,
            "username": self.username,
            "totalRepos": self.total_repos,
            "excludeTopics": list(self.exclude_topics),
        }
        if self.user_profile is not None:
            metadata["userProfile"] = self.user_profile
        if self.language_stats is not None:
            metadata["languageStats"] = self.language_stats
        if self.last_update is not None:
            metadata["lastUpdate"] = self.last_update
        return {
            "metadata": metadata,
            "repositories": [repo.to_dict() for repo in self.repositories],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        """Rebuild a snapshot; raises ValueError when the document has the wrong shape."""
        if not isinstance(data, dict):
            raise ValueError("snapshot document is not an object")
        metadata = data.get("metadata") or {}
        repositories = data.get("repositories")
        if not isinstance(metadata, dict) or not isinstance(repositories, list):
            raise ValueError("snapshot document needs `metadata` and a `repositories` list")
        try:
            records = [RepositoryRecord.from_dict(item) for item in repositories]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"invalid repository entry: {exc}") from exc
        return cls(
            generated_at=str(metadata.get("generatedAt") or ""),
            username=str(metadata.get("username") or ""),
            exclude_topics=list(metadata.get("excludeTopics") or []),
            repositories=records,
            user_profile=metadata.get("userProfile"),
            language_stats=metadata.get("languageStats"),
            last_update=metadata.get("lastUpdate"),
        )


class SnapshotStore:
    """Holds the current snapshot in memory and mirrors it to a JSON file.

    Reads fall back through `fallback_paths` (e.g. a snapshot bundled with the
    deployment); writes are skipped with a warning when the filesystem refuses.
    """

    def __init__(
        self,
        path: str | Path,
        fallback_paths: Iterable[str | Path] = (),
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self.path = Path(path)
        self.fallback_paths = [Path(p) for p in fallback_paths]
        self.clock = clock
        self.current: Optional[Snapshot] = None
        self._lock = threading.Lock()

    def _read(self, path: Path) -> Optional[Snapshot]:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.debug("[snapshot] {} unavailable: {}", path, exc)
            return None
        try:
            return Snapshot.from_dict(json.loads(raw))
        except ValueError as exc:
            logger.warning("[snapshot] ignoring unreadable snapshot {}: {}", path, exc)
            return None

    def load(self) -> Optional[Snapshot]:
        """Return the stored snapshot, or None on first run / inaccessible storage."""
        for candidate in [self.path, *self.fallback_paths]:
            snapshot = self._read(candidate)
            if snapshot is not None:
                logger.info(
                    "[snapshot] loaded {} repositories from {} (generated {})",
                    snapshot.total_repos,
                    candidate,
                    snapshot.generated_at or "N/A",
                )
                with self._lock:
                    self.current = snapshot
                return snapshot
        logger.info("[snapshot] no stored snapshot found")
        return None

    def replace(self, snapshot: Snapshot) -> Snapshot:
        """Make `snapshot` current and try to persist it; write failures are not fatal."""
        with self._lock:
            self.current = snapshot
            try:
                self._write(snapshot)
            except OSError as exc:
                logger.warning("[snapshot] {}; keeping in-memory copy only", PersistenceError(str(self.path), exc))
            else:
                logger.info("[snapshot] saved {} repositories to {}", snapshot.total_repos, self.path)
        return snapshot

    def _write(self, snapshot: Snapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(snapshot.to_dict(), handle, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def create(
        self,
        repositories: Sequence[RepositoryRecord],
        username: str,
        exclude_topics: Iterable[str],
        user_profile: Optional[Dict[str, Any]] = None,
    ) -> Snapshot:
        repos = list(repositories)
        return Snapshot(
            generated_at=self.clock(),
            username=username,
            exclude_topics=list(exclude_topics),
            repositories=repos,
            user_profile=user_profile,
            language_stats=language_stats(repos),
        )

    def merge_patch(
        self,
        existing: Snapshot,
        fresh_records: Sequence[RepositoryRecord],
        removed: Iterable[str] = (),
    ) -> Snapshot:
        """Overwrite/append `fresh_records` by name, drop `removed`, stamp `lastUpdate`."""
        with self._lock:
            by_name: Dict[str, RepositoryRecord] = {repo.name: repo for repo in existing.repositories}
            for repo in fresh_records:
                by_name[repo.name] = repo
            removed_names = [name for name in removed if name in by_name]
            for name in removed_names:
                del by_name[name]

            repositories = list(by_name.values())
            now = self.clock()
            last_update: Dict[str, Any] = {
                "timestamp": now,
                "changedRepos": [repo.name for repo in fresh_records],
                "totalRepos": len(repositories),
            }
            if removed_names:
                last_update["removedRepos"] = removed_names
            return replace(
                existing,
                generated_at=now,
                repositories=repositories,
                language_stats=(
                    language_stats(repositories) if existing.language_stats is not None else None
                ),
                last_update=last_update,
            )


__all__ = ["Snapshot", "SnapshotStore", "utc_now_iso"]
