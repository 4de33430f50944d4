"""Screenshot discovery: first README image, raw-URL rewriting, local file matching."""

from __future__ import annotations

import os
import posixpath
import re
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import unquote, urlparse

from .config import DEFAULT_BRANCH, RAW_CONTENT_BASE

MARKDOWN_IMAGE_RE = re.compile(r"!\[(.*?)\]\((.*?)\)")
SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
SCREENSHOT_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")
LOCAL_IMAGE_PREFIX = "/images/repos"
DEFAULT_IMAGE_EXTENSION = ".png"


def _link_target(raw: str) -> str:
    # `![alt](path "title")` and `![alt](<path>)` both occur in the wild
    target = raw.strip()
    if target.startswith("<") and ">" in target:
        return target[1:target.index(">")]
    return target.split()[0] if target else ""


def extract_first_image(markdown: Optional[str]) -> Optional[str]:
    """Return the target of the first `![alt](url)` in `markdown`, if any."""
    if not markdown:
        return None
    match = MARKDOWN_IMAGE_RE.search(markdown)
    if not match:
        return None
    return _link_target(match.group(2)) or None


def raw_content_url(username: str, repo: str, path: str,
                    raw_base: str = RAW_CONTENT_BASE, branch: str = DEFAULT_BRANCH) -> str:
    clean = path
    while clean.startswith("./"):
        clean = clean[2:]
    clean = clean.lstrip("/")
    return f"{raw_base.rstrip('/')}/{username}/{repo}/{branch}/{clean}"


def resolve_image_url(url: str, username: str, repo: str,
                      raw_base: str = RAW_CONTENT_BASE, branch: str = DEFAULT_BRANCH) -> Optional[str]:
    """Make a README image target absolute; `data:` URLs resolve to None.

    Anything without a scheme (`assets/x.png`, `./images/x.png`, `/docs/x.png`,
    `shot.png`) is treated as a path inside the repository.
    """
    if not url:
        return None
    if url.startswith("data:"):
        return None
    if url.startswith("//"):
        return f"https:{url}"
    if SCHEME_RE.match(url):
        return url
    return raw_content_url(username, repo, url, raw_base, branch)


def image_extension(url: str) -> str:
    segment = posixpath.basename(unquote(urlparse(url).path))
    return posixpath.splitext(segment)[1] or DEFAULT_IMAGE_EXTENSION


def to_local_screenshot_path(url: Optional[str], repo: str, raw_base: str = RAW_CONTENT_BASE) -> Optional[str]:
    """Map a raw-content URL to `/images/repos/{repo}{ext}`; leave other URLs alone."""
    if not url:
        return None
    if url.startswith(raw_base.rstrip("/") + "/"):
        return f"{LOCAL_IMAGE_PREFIX}/{repo}{image_extension(url)}"
    return url


def screenshot_from_readme(markdown: Optional[str], username: str, repo: str,
                           raw_base: str = RAW_CONTENT_BASE,
                           branch: str = DEFAULT_BRANCH) -> Tuple[Optional[str], Optional[str]]:
    """Return `(screenshot_url, source_url)` for the first README image.

    `screenshot_url` is what the front-end shows (a local path for raw-content
    images); `source_url` is the absolute URL the image can be mirrored from.
    """
    target = extract_first_image(markdown)
    if not target:
        return None, None
    source = resolve_image_url(target, username, repo, raw_base, branch)
    if not source:
        return None, None
    return to_local_screenshot_path(source, repo, raw_base), source


def rewrite_readme_images(markdown: str, username: str, repo: str,
                          raw_base: str = RAW_CONTENT_BASE, branch: str = DEFAULT_BRANCH) -> str:
    """Rewrite every relative image link in `markdown` to its raw-content URL."""

    def _swap(match: "re.Match[str]") -> str:
        alt, target = match.group(1), _link_target(match.group(2))
        if not target or target.startswith("data:") or SCHEME_RE.match(target) or target.startswith("//"):
            return match.group(0)
        return f"![{alt}]({raw_content_url(username, repo, target, raw_base, branch)})"

    return MARKDOWN_IMAGE_RE.sub(_swap, markdown)


# -- local screenshot directory --------------------------------------------


def list_screenshot_files(directory: Optional[str | Path]) -> List[str]:
    if not directory:
        return []
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return []
    return [name for name in names if posixpath.splitext(name)[1].lower() in SCREENSHOT_EXTENSIONS]


def _strict_match(repo: str, files: List[str]) -> Optional[str]:
    patterns = [repo, f"{repo}-screenshot", f"{repo}-preview", f"{repo}-demo", f"{repo}-img"]
    for ext in SCREENSHOT_EXTENSIONS:
        for pattern in patterns:
            if f"{pattern}{ext}" in files:
                return f"{pattern}{ext}"
    return None


def _flexible_match(repo: str, files: List[str]) -> Optional[str]:
    patterns = [
        f"Screenshot {repo}",
        f"Screenshot {repo} preview",
        f"{repo} screenshot",
        f"{repo} preview",
        f"{repo} demo",
    ]
    for ext in SCREENSHOT_EXTENSIONS:
        for pattern in patterns:
            if f"{pattern}{ext}" in files:
                return f"{pattern}{ext}"
    return None


def _partial_match(repo: str, files: List[str]) -> Optional[str]:
    variations = {
        repo.lower(),
        repo.replace("-", " ").lower(),
        repo.replace("_", " ").lower(),
        repo.split("-")[0].lower(),
        repo.split("_")[0].lower(),
    }
    variations.discard("")
    for name in files:
        stem = posixpath.splitext(name.lower())[0]
        if not stem:
            continue
        if any(variation in stem or stem in variation for variation in variations):
            return name
    return None


def find_local_screenshot(repo: str, directory: Optional[str | Path],
                          url_prefix: str = "assets/screenshots") -> Optional[str]:
    """Look for a screenshot of `repo` in `directory`: strict, flexible, then partial names."""
    files = list_screenshot_files(directory)
    if not files:
        return None
    for matcher in (_strict_match, _flexible_match, _partial_match):
        found = matcher(repo, files)
        if found:
            return f"{url_prefix.rstrip('/')}/{found}"
    return None


__all__ = [
    "extract_first_image",
    "raw_content_url",
    "resolve_image_url",
    "image_extension",
    "to_local_screenshot_path",
    "screenshot_from_readme",
    "rewrite_readme_images",
    "list_screenshot_files",
    "find_local_screenshot",
    "SCREENSHOT_EXTENSIONS",
    "LOCAL_IMAGE_PREFIX",
]
