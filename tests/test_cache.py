"""Tests for src.retrieval.cache: TTL expiry, stats and key canonicalisation.

Run with:
    pytest tests/test_cache.py --maxfail=1 -v --cov=src.retrieval.cache --cov-report=term-missing
"""

from src.retrieval.cache import InMemoryCache, generate_cache_key


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_get_before_ttl_returns_value():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=60, clock=clock)
    cache.set("k", {"v": 1})
    clock.now += 59
    assert cache.get("k") == {"v": 1}


def test_get_after_ttl_evicts_entry():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=60, clock=clock)
    cache.set("k", "v")
    clock.now += 61
    assert cache.stats()["entries"][0]["expired"] is True
    assert cache.get("k") is None
    assert cache.stats() == {"size": 0, "duration": "60s", "entries": []}


def test_zero_ttl_never_expires():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=0, clock=clock)
    cache.set("k", "v")
    clock.now += 10 ** 9
    assert cache.get("k") == "v"
    stats = cache.stats()
    assert stats["duration"] == "indefinite"
    assert stats["entries"][0]["expired"] is False


def test_missing_key_returns_none():
    assert InMemoryCache().get("nope") is None


def test_clear_reports_count():
    cache = InMemoryCache()
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.clear() == 2
    assert len(cache) == 0
    assert cache.clear() == 0


def test_stats_reports_age():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=30, clock=clock)
    cache.set("a", 1)
    clock.now += 12.34
    entry = cache.stats()["entries"][0]
    assert entry == {"key": "a", "age": 12.3, "expired": False}


def test_cache_key_ignores_parameter_order():
    first = generate_cache_key("get-repos", {"username": "bob", "perPage": 100})
    second = generate_cache_key("get-repos", {"perPage": 100, "username": "bob"})
    assert first == second
    assert first.startswith("get-repos:")
    assert generate_cache_key("get-readme", {"repo": "a"}) != generate_cache_key("get-readme", {"repo": "b"})
    assert generate_cache_key("clear") == "clear:{}"
