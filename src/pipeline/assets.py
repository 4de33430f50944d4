"""Mirror README screenshots into the site's image directory."""

from __future__ import annotations

import asyncio
import posixpath
from pathlib import Path
from typing import List, Sequence

from loguru import logger

from src.retrieval.batching import run_batched
from src.retrieval.config import ASSET_BATCH_DELAY_MS, ASSET_BATCH_SIZE
from src.retrieval.http_client import GitHubClient
from src.retrieval.models import RepositoryRecord
from src.retrieval.screenshots import LOCAL_IMAGE_PREFIX


def needs_mirroring(repo: RepositoryRecord) -> bool:
    return bool(
        repo.screenshot_source
        and repo.screenshot_url
        and repo.screenshot_url.startswith(LOCAL_IMAGE_PREFIX + "/")
    )


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def download_image(client: GitHubClient, repo: RepositoryRecord, images_dir: Path) -> RepositoryRecord:
    """Download one screenshot; on failure point the record back at the remote URL."""
    filename = posixpath.basename(repo.screenshot_url or "")
    target = images_dir / filename
    if target.exists():
        logger.debug("[assets] image already exists for {}, skipping download", repo.name)
        return repo
    try:
        data = await client.download(repo.screenshot_source or "")
        await asyncio.to_thread(_write_file, target, data)
    except Exception as exc:
        logger.warning("[assets] failed to download screenshot for {}: {}", repo.name, exc)
        return repo.copy(screenshot_url=repo.screenshot_source)
    logger.info("[assets] downloaded {} ({:.2f} KB)", filename, len(data) / 1024)
    return repo


async def mirror_screenshots(
    client: GitHubClient,
    repositories: Sequence[RepositoryRecord],
    images_dir: str | Path,
    batch_size: int = ASSET_BATCH_SIZE,
    batch_delay_ms: int = ASSET_BATCH_DELAY_MS,
) -> List[RepositoryRecord]:
    """Download every raw-content screenshot to `images_dir`, preserving record order."""
    images_dir = Path(images_dir)
    positions = [i for i, repo in enumerate(repositories) if needs_mirroring(repo)]
    logger.info("[assets] mirroring screenshots for {} repositories", len(positions))

    mirrored = await run_batched(
        [repositories[i] for i in positions],
        batch_size,
        lambda repo: download_image(client, repo, images_dir),
        batch_delay_ms,
    )
    results = list(repositories)
    for index, repo in zip(positions, mirrored):
        results[index] = repo
    return results


__all__ = ["needs_mirroring", "download_image", "mirror_screenshots"]
