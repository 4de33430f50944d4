"""Entry points for the portfolio data pipeline: full, check, update, clear, readme, stats."""

from __future__ import annotations

import asyncio
import base64
import json
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests
from loguru import logger

from src.errors import ConfigurationError, PortfolioError, RemoteAPIError
from src.retrieval.batching import run_batched
from src.retrieval.cache import InMemoryCache, generate_cache_key
from src.retrieval.collectors import RepositoryEnricher, decode_readme, fetch_user_profile
from src.retrieval.http_client import GitHubClient
from src.retrieval.models import RepositoryRecord, require_repository_payload
from src.retrieval.screenshots import rewrite_readme_images

from .assets import mirror_screenshots
from .config import Settings, parse_args, resolve_settings
from .filters import filter_excluded, filter_forks, sort_by_created
from .reconcile import check_for_updates, lightweight_listing
from .snapshot import Snapshot, SnapshotStore


@dataclass
class PipelineContext:
    """Process-wide collaborators shared by every mode."""

    settings: Settings
    client: GitHubClient
    cache: InMemoryCache
    store: SnapshotStore
    enricher: RepositoryEnricher


def build_context(settings: Settings, cache: Optional[InMemoryCache] = None) -> PipelineContext:
    client = GitHubClient(
        settings.username,
        settings.token,
        base_url=settings.base_url,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        backoff_base=settings.backoff_base,
    )
    enricher = RepositoryEnricher(
        client,
        batch_size=settings.batch_size,
        batch_delay_ms=settings.batch_delay_ms,
        raw_base=settings.raw_base,
        branch=settings.branch,
        screenshot_dir=settings.screenshot_dir,
    )
    return PipelineContext(
        settings=settings,
        client=client,
        cache=cache if cache is not None else InMemoryCache(settings.cache_ttl),
        store=SnapshotStore(settings.snapshot_path, settings.fallback_snapshots),
        enricher=enricher,
    )


def failure(exc: BaseException, error: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "success": False,
        "error": error,
        "details": str(exc),
        "type": type(exc).__name__,
    }
    if isinstance(exc, RemoteAPIError):
        result["statusCode"] = exc.status_code
    return result


def _repos_cache_key(settings: Settings) -> str:
    return generate_cache_key("get-repos", {
        "username": settings.username,
        "includeForks": False,
        "perPage": settings.per_page,
        "excludeTopics": sorted(settings.exclude_topics),
    })


def _stored_snapshot(ctx: PipelineContext) -> Optional[Snapshot]:
    return ctx.store.current or ctx.store.load()


async def run_full(ctx: PipelineContext) -> Dict[str, Any]:
    """Fetch, enrich, filter and persist every repository of the configured user."""
    settings = ctx.settings
    cache_key = _repos_cache_key(settings)
    cached = ctx.cache.get(cache_key)
    if cached is not None:
        return {"success": True, "cache": "HIT", **cached}

    raw = await ctx.client.list_all_repositories(settings.per_page, settings.max_pages)
    listed = [RepositoryRecord.from_api(item) for item in raw]
    records = filter_forks(listed)
    logger.info("[full] filtered out {} forks, {} remaining", len(listed) - len(records), len(records))

    records = await ctx.enricher.enrich(records, settings.username)
    records = sort_by_created(filter_excluded(records, settings.exclude_topics))
    if settings.mirror_screenshots:
        records = await mirror_screenshots(
            ctx.client,
            records,
            settings.images_dir,
            settings.asset_batch_size,
            settings.asset_batch_delay_ms,
        )

    profile = await fetch_user_profile(ctx.client)
    snapshot = ctx.store.create(records, settings.username, settings.exclude_topics, user_profile=profile)
    ctx.store.replace(snapshot)

    payload = snapshot.to_dict()
    ctx.cache.set(cache_key, payload)
    logger.info("[full] {} repositories in final data", snapshot.total_repos)
    return {"success": True, "cache": "MISS", **payload}


async def run_check(ctx: PipelineContext) -> Dict[str, Any]:
    """Compare a lightweight listing with the stored snapshot."""
    stored = _stored_snapshot(ctx)
    if stored is None or not stored.repositories:
        return {
            "success": True,
            "needsFullFetch": True,
            "reason": "No stored snapshot available",
            "changedRepos": [],
            "unchangedRepos": [],
        }

    raw = await ctx.client.list_all_repositories(ctx.settings.per_page, ctx.settings.max_pages)
    exclude = ctx.settings.exclude_topics or stored.exclude_topics
    result = check_for_updates(lightweight_listing(raw, exclude), stored)
    return {
        "success": True,
        "needsFullFetch": result.is_new_snapshot,
        "changedRepos": result.changed,
        "unchangedRepos": result.unchanged,
        "snapshotGeneratedAt": stored.generated_at,
    }


async def _fetch_details(ctx: PipelineContext, name: str) -> Optional[Dict[str, Any]]:
    try:
        payload = await ctx.client.get_repository_details(name)
    except RemoteAPIError as exc:
        if exc.status_code == 404:
            logger.info("[update] {} no longer exists", name)
            return None
        raise
    return require_repository_payload(payload, f"Details for {name}")


async def run_update(ctx: PipelineContext, names: Sequence[str]) -> Dict[str, Any]:
    """Re-enrich the named repositories and merge them into the stored snapshot."""
    names = list(dict.fromkeys(name.strip() for name in names if name and name.strip()))
    if not names:
        return {"success": True, "updatedRepos": 0, "repositories": [], "removedRepos": []}

    stored = _stored_snapshot(ctx)
    if stored is None:
        return {"success": True, "needsFullFetch": True, "reason": "No stored snapshot to update"}

    settings = ctx.settings
    details = await run_batched(
        names, settings.batch_size, lambda name: _fetch_details(ctx, name), settings.batch_delay_ms
    )
    removed: List[str] = []
    records: List[RepositoryRecord] = []
    for name, payload in zip(names, details):
        if payload is None or payload.get("fork"):
            removed.append(name)
        else:
            records.append(RepositoryRecord.from_api(payload))

    enriched = await ctx.enricher.enrich(records, settings.username)
    exclude = settings.exclude_topics or stored.exclude_topics
    kept = list(filter_excluded(enriched, exclude))
    kept_names = {repo.name for repo in kept}
    removed.extend(repo.name for repo in enriched if repo.name not in kept_names)
    if settings.mirror_screenshots:
        kept = await mirror_screenshots(
            ctx.client,
            kept,
            settings.images_dir,
            settings.asset_batch_size,
            settings.asset_batch_delay_ms,
        )

    merged = ctx.store.merge_patch(stored, kept, removed)
    ctx.store.replace(merged)
    ctx.cache.set(_repos_cache_key(settings), merged.to_dict())
    return {
        "success": True,
        "updatedRepos": len(kept),
        "repositories": [repo.to_dict() for repo in kept],
        "removedRepos": removed,
    }


def run_clear(ctx: PipelineContext) -> Dict[str, Any]:
    cleared = ctx.cache.clear()
    return {"success": True, "message": "Cache cleared successfully", "clearedEntries": cleared}


def run_stats(ctx: PipelineContext) -> Dict[str, Any]:
    return {"success": True, **ctx.cache.stats()}


def _encode(text: str) -> Dict[str, str]:
    return {"content": base64.b64encode(text.encode("utf-8")).decode("ascii"), "encoding": "base64"}


async def run_readme(ctx: PipelineContext, repo: Optional[str]) -> Dict[str, Any]:
    """Return one README, base64 encoded, with relative image links made absolute."""
    if not repo:
        return {"success": False, "error": "Repository name is required", "statusCode": 400}
    settings = ctx.settings
    cache_key = generate_cache_key("get-readme", {"username": settings.username, "repo": repo})
    cached = ctx.cache.get(cache_key)
    if cached is not None:
        return {"success": True, "cache": "HIT", **cached}

    stored = _stored_snapshot(ctx)
    known = next((r for r in stored.repositories if r.name == repo), None) if stored else None
    if known is not None and known.readme_content:
        text = known.readme_content
    else:
        text = decode_readme(await ctx.client.get_repository_readme(repo))

    result = _encode(rewrite_readme_images(text, settings.username, repo, settings.raw_base, settings.branch))
    ctx.cache.set(cache_key, result)
    return {"success": True, "cache": "MISS", **result}


async def run_mode(
    ctx: PipelineContext,
    mode: str,
    names: Sequence[str] = (),
    repo: Optional[str] = None,
) -> Dict[str, Any]:
    """Dispatch one query mode, turning pipeline errors into a failure result."""
    try:
        if mode == "full":
            return await run_full(ctx)
        if mode == "check":
            return await run_check(ctx)
        if mode == "update":
            return await run_update(ctx, names)
        if mode == "readme":
            return await run_readme(ctx, repo)
        if mode == "clear":
            return run_clear(ctx)
        if mode == "stats":
            return run_stats(ctx)
    except (PortfolioError, requests.RequestException) as exc:
        logger.error("[{}] failed: {}", mode, exc)
        return failure(exc, f"Failed to run {mode}")
    raise ValueError(f"unknown mode: {mode}")


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; prints the mode's result as JSON and returns an exit code."""
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        settings = resolve_settings(args)
    except ConfigurationError as exc:
        logger.error("{}", exc)
        print(json.dumps(failure(exc, "GitHub username not configured"), indent=2))
        return 1

    ctx = build_context(settings)
    with ctx.client:
        result = asyncio.run(run_mode(ctx, args.mode, names=args.repos, repo=args.repo))
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0 if result.get("success") else 1


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
