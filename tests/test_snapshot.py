"""Tests for src.pipeline.snapshot: loading, best-effort persistence and patch merges.

Run with:
    pytest tests/test_snapshot.py --maxfail=1 -v --cov=src.pipeline.snapshot --cov-report=term-missing
"""

import json

import pytest

from src.pipeline.snapshot import Snapshot, SnapshotStore, utc_now_iso
from src.retrieval.models import RepositoryRecord


def _repo(name, updated="2024-01-01T00:00:00Z", languages=None):
    return RepositoryRecord(
        id=1,
        name=name,
        html_url=f"https://github.com/bob/{name}",
        created_at="2023-01-01T00:00:00Z",
        updated_at=updated,
        pushed_at=updated,
        languages=languages or {},
    )


class Ticker:
    def __init__(self):
        self.n = 0

    def __call__(self):
        self.n += 1
        return f"2024-01-01T00:00:{self.n:02d}.000Z"


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(tmp_path / "data" / "repos.json", clock=Ticker())


def test_utc_now_iso_format():
    stamp = utc_now_iso()
    assert stamp.endswith("Z")
    assert len(stamp) == len("2024-01-01T00:00:00.000Z")


def test_load_returns_none_without_file(store):
    assert store.load() is None
    assert store.current is None


def test_replace_writes_json_document(store):
    snapshot = store.create([_repo("a", languages={"Python": 3})], "bob", ["private"], {"login": "bob"})
    store.replace(snapshot)
    document = json.loads(store.path.read_text(encoding="utf-8"))
    assert document["metadata"]["username"] == "bob"
    assert document["metadata"]["totalRepos"] == 1
    assert document["metadata"]["excludeTopics"] == ["private"]
    assert document["metadata"]["languageStats"] == {"Python": 1}
    assert document["metadata"]["userProfile"] == {"login": "bob"}
    assert document["repositories"][0]["name"] == "a"
    assert document["repositories"][0]["hasReadme"] is False
    assert "screenshot_source" not in document["repositories"][0]
    assert not store.path.with_name("repos.json.tmp").exists()


def test_load_round_trips_replaced_snapshot(store, tmp_path):
    store.replace(store.create([_repo("a"), _repo("b")], "bob", []))
    reloaded = SnapshotStore(store.path).load()
    assert reloaded.names() == ["a", "b"]
    assert reloaded.username == "bob"


def test_load_uses_fallback_path(tmp_path):
    bundled = tmp_path / "bundled.json"
    bundled.write_text(json.dumps(Snapshot("t", "bob", repositories=[_repo("x")]).to_dict()), encoding="utf-8")
    store = SnapshotStore(tmp_path / "missing" / "repos.json", fallback_paths=[bundled])
    assert store.load().names() == ["x"]
    assert store.current.names() == ["x"]


def test_load_skips_corrupt_file(tmp_path):
    path = tmp_path / "repos.json"
    path.write_text("{not json", encoding="utf-8")
    assert SnapshotStore(path).load() is None
    path.write_text(json.dumps({"metadata": {}}), encoding="utf-8")
    assert SnapshotStore(path).load() is None


def test_write_failure_keeps_in_memory_snapshot(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where a directory should be", encoding="utf-8")
    store = SnapshotStore(blocker / "data" / "repos.json")
    snapshot = store.create([_repo("a")], "bob", [])
    assert store.replace(snapshot) is snapshot
    assert store.current is snapshot


def test_merge_patch_overwrites_appends_and_removes(store):
    existing = store.create([_repo("a"), _repo("b"), _repo("c")], "bob", [])
    fresh = [_repo("b", updated="2024-05-01T00:00:00Z"), _repo("d")]
    merged = store.merge_patch(existing, fresh, removed=["c", "ghost"])
    assert merged.names() == ["a", "b", "d"]
    assert merged.repositories[1].updated_at == "2024-05-01T00:00:00Z"
    assert merged.last_update == {
        "timestamp": merged.generated_at,
        "changedRepos": ["b", "d"],
        "totalRepos": 3,
        "removedRepos": ["c"],
    }
    assert merged.generated_at != existing.generated_at
    # the input snapshot is left untouched
    assert existing.names() == ["a", "b", "c"]


def test_merge_patch_with_empty_patch_only_restamps(store):
    existing = store.create([_repo("a"), _repo("b")], "bob", [])
    merged = store.merge_patch(existing, [])
    assert merged.names() == existing.names()
    assert merged.last_update["changedRepos"] == []
    assert "removedRepos" not in merged.last_update


def test_merge_patch_is_idempotent_on_repositories(store):
    existing = store.create([_repo("a")], "bob", [])
    patch = [_repo("a", updated="2024-02-02T00:00:00Z"), _repo("b")]
    once = store.merge_patch(existing, patch)
    twice = store.merge_patch(once, patch)
    assert [r.to_dict() for r in once.repositories] == [r.to_dict() for r in twice.repositories]


def test_merge_patch_recomputes_language_stats(store):
    existing = store.create([_repo("a", languages={"Go": 1})], "bob", [])
    merged = store.merge_patch(existing, [_repo("b", languages={"Go": 4, "C": 2})])
    assert merged.language_stats == {"Go": 2, "C": 1}


def test_from_dict_rejects_wrong_shape():
    with pytest.raises(ValueError):
        Snapshot.from_dict([])
    with pytest.raises(ValueError):
        Snapshot.from_dict({"metadata": {}, "repositories": [{"no_name": True}]})
