"""
Remote version index cache.

Keeps the last successfully fetched ``index.json`` records under
``<base>/cache/remote-versions.json`` together with the fetch timestamp.
A cache read is only honored while younger than the staleness window.
"""

from __future__ import annotations

import datetime
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

logger = logging.getLogger(__name__)

# Default cache file name, inside the cache dir
DEFAULT_CACHE_FILE = "remote-versions.json"

# Cache staleness threshold (1 hour)
DEFAULT_MAX_AGE_SECONDS = 3600


@dataclass(frozen=True)
class RemoteVersion:
    """
    One record of the distribution index.

    ``lts`` is False for current releases and the LTS codename otherwise.
    """

    version: str
    lts: str | bool = False

    @property
    def is_lts(self) -> bool:
        return bool(self.lts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"version": self.version, "lts": self.lts}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteVersion":
        """Create from an index record; any truthy non-False ``lts`` marks LTS."""
        lts = data.get("lts", False)
        if not isinstance(lts, (str, bool)):
            lts = bool(lts)
        return cls(version=str(data.get("version", "")), lts=lts)


@dataclass
class UpstreamCache:
    """Container for the cached index with metadata."""

    versions: list[RemoteVersion] = field(default_factory=list)
    schema_version: int = 1
    fetched_at: str = ""
    source: str = ""
    mirrors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "__meta__": {
                "schema_version": self.schema_version,
                "fetched_at": self.fetched_at,
                "source": self.source,
                "mirrors": list(self.mirrors),
            },
            "versions": [v.to_dict() for v in self.versions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UpstreamCache":
        """Create from dictionary."""
        meta = data.get("__meta__", {})
        return cls(
            versions=[RemoteVersion.from_dict(v) for v in data.get("versions", []) if isinstance(v, dict)],
            schema_version=meta.get("schema_version", 1),
            fetched_at=meta.get("fetched_at", ""),
            source=meta.get("source", ""),
            mirrors=[str(m) for m in meta.get("mirrors", []) if isinstance(m, str)],
        )


def get_cache_path(cache_dir: str) -> Path:
    """Cache file path inside a cache directory."""
    return Path(cache_dir) / DEFAULT_CACHE_FILE


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def load_upstream_cache(path: Path) -> UpstreamCache | None:
    """
    Load the cache file.

    Returns:
        UpstreamCache, or None when the file is missing or unreadable
    """
    if not path.exists():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.debug(f"Ignoring unreadable index cache {path}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    return UpstreamCache.from_dict(data)


def write_upstream_cache(cache: UpstreamCache, path: Path) -> None:
    """
    Write the cache atomically, stamping ``fetched_at`` with the current time.

    Raises:
        IOError: If the file cannot be written
    """
    cache.fetched_at = (
        _utc_now()
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )

    # Atomic write: write to temp file then rename
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(f".{os.getpid()}.tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(cache.to_dict(), f, indent=2, ensure_ascii=False)
        temp_path.replace(path)
    except OSError as e:
        raise IOError(f"Failed to write remote version cache: {e}")


def is_cache_stale(cache: UpstreamCache, max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS) -> bool:
    """
    Check if cache is older than ``max_age_seconds``.

    Returns:
        True if cache is stale or has no usable timestamp
    """
    if not cache.fetched_at:
        return True

    try:
        fetched_at = datetime.datetime.fromisoformat(cache.fetched_at.replace("Z", "+00:00"))
    except ValueError:
        return True
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=datetime.timezone.utc)
    age = _utc_now() - fetched_at
    return age.total_seconds() > max_age_seconds


def get_fresh_versions(
    path: Path,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    mirrors: Sequence[str] | None = None,
) -> list[RemoteVersion] | None:
    """
    Cached index if present and fresh.

    With ``mirrors`` the cache must also have been fetched for exactly that
    mirror list.

    Returns:
        Cached records, or None on a miss (missing, unreadable, stale or
        fetched for other mirrors)
    """
    cache = load_upstream_cache(path)
    if cache is None or not cache.versions:
        return None
    if mirrors is not None and cache.mirrors != list(mirrors):
        logger.debug(f"Index cache {path} was fetched for other mirrors")
        return None
    if is_cache_stale(cache, max_age_seconds):
        logger.debug(f"Index cache {path} is stale (fetched {cache.fetched_at})")
        return None
    return cache.versions


def save_versions(
    path: Path,
    versions: list[RemoteVersion],
    source: str = "",
    mirrors: Sequence[str] = (),
) -> None:
    """Store freshly fetched records; write failures are logged, not raised."""
    cache = UpstreamCache(versions=list(versions), source=source, mirrors=list(mirrors))
    try:
        write_upstream_cache(cache, path)
    except IOError as e:
        logger.debug(str(e))
