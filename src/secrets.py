"""Utilities for loading the local (gitignored) GitHub credential file."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"


def _default_secrets_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    return root / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when unavailable or unparsable."""

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.is_file():
        return {}
    try:
        data = json.loads(secrets_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def first_github_token(secrets: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Return the first non-empty entry of `github_tokens` (or a lone `github_token`)."""

    secrets = load_local_secrets() if secrets is None else secrets
    tokens = secrets.get("github_tokens") or []
    if isinstance(tokens, str):
        tokens = [tokens]
    for token in tokens:
        if token:
            return str(token)
    single = secrets.get("github_token")
    return str(single) if single else None


__all__ = ["load_local_secrets", "first_github_token", "DEFAULT_SECRETS_FILENAME"]
