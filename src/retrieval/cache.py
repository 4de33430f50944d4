"""Process-lifetime key/value cache with lazy TTL expiry."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from .config import CACHE_TTL_SEC


def generate_cache_key(operation: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Build `operation:{json}` with keys sorted so field order never matters."""
    param_str = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
    return f"{operation}:{param_str}"


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float


class InMemoryCache:
    """Dictionary cache; `ttl_seconds == 0` keeps entries for the life of the process."""

    def __init__(self, ttl_seconds: int = CACHE_TTL_SEC, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = max(0, int(ttl_seconds))
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("[cache] miss: {}", key)
                return None
            if self.ttl_seconds > 0:
                age = self._clock() - entry.stored_at
                if age > self.ttl_seconds:
                    logger.debug("[cache] expired: {} ({:.1f}s old)", key, age)
                    del self._entries[key]
                    return None
            logger.debug("[cache] hit: {}", key)
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock())
        logger.debug("[cache] stored: {}", key)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("[cache] cleared all entries ({} items)", count)
        return count

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        entries: List[Dict[str, Any]] = []
        with self._lock:
            for key, entry in self._entries.items():
                age = now - entry.stored_at
                entries.append({
                    "key": key,
                    "age": round(age, 1),
                    "expired": self.ttl_seconds > 0 and age > self.ttl_seconds,
                })
        return {
            "size": len(entries),
            "duration": "indefinite" if self.ttl_seconds == 0 else f"{self.ttl_seconds}s",
            "entries": entries,
        }


__all__ = ["CacheEntry", "InMemoryCache", "generate_cache_key"]
