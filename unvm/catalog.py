"""
Version catalog: installed versions, remote versions and matching.

All version lists are kept as ``vX.Y.Z`` strings sorted ascending by
semantic version (``v9.0.0 < v10.0.0``).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

import semantic_version

from .common import NUMERIC_PARTIAL_RE, is_full_version, strip_v
from .errors import RemoteFetchFailed
from .platforms import Platform
from .upstream_cache import RemoteVersion
from .version_spec import SpecKind, VersionSpec

logger = logging.getLogger(__name__)


def parse_version(version: str) -> semantic_version.Version:
    """Parse ``vX.Y.Z`` / ``X.Y.Z`` into a comparable Version."""
    return semantic_version.Version(strip_v(version))


def sort_versions(versions: Any) -> Any:
    """
    Stable ascending semantic sort.

    Anything that is not a list or tuple (or is empty) is returned unchanged.
    """
    if not isinstance(versions, (list, tuple)) or len(versions) == 0:
        return versions
    return sorted(versions, key=parse_version)


def to_range(spec: VersionSpec | str) -> str:
    """
    Convert a partial version into an npm range.

    ``v20`` -> ``20.x.x``, ``v20.10`` -> ``20.10.x``, ``v20.10.0`` -> ``20.10.0``.
    Strings that are not numeric partials (real ranges) are returned as-is.
    """
    if isinstance(spec, VersionSpec):
        if spec.kind is SpecKind.RANGE:
            return spec.range or ""
        if spec.kind is SpecKind.KEYWORD:
            raise ValueError(f"keyword '{spec.keyword}' has no range form")
        text = spec.version
    else:
        text = spec

    bare = strip_v(text)
    if not NUMERIC_PARTIAL_RE.match(bare):
        return text
    parts = bare.split(".")
    if len(parts) == 1:
        return f"{parts[0]}.x.x"
    if len(parts) == 2:
        return f"{parts[0]}.{parts[1]}.x"
    return bare


def _matching(spec_text: str, versions: Iterable[str]) -> list[str]:
    npm_spec = semantic_version.NpmSpec(to_range(spec_text))
    matches = []
    for v in versions:
        try:
            if npm_spec.match(parse_version(v)):
                matches.append(v)
        except ValueError:
            continue
    return matches


def match_latest(spec_text: str, versions: Sequence[str]) -> str | None:
    """
    Highest element of ``versions`` satisfying a partial version or range.

    Returns:
        Matching version string, or None when nothing matches
    """
    matches = _matching(spec_text, versions)
    if not matches:
        return None
    return max(matches, key=parse_version)


@dataclass(frozen=True)
class OldestMatch:
    """
    Result of ``match_oldest``.

    When nothing matched, ``version`` is the caller's input echoed back and
    ``fallback`` is True: the value is unverified and must not be assumed
    to exist.
    """
    version: str
    fallback: bool = False


def match_oldest(spec_text: str, versions: Sequence[str]) -> OldestMatch:
    """Lowest element satisfying the range, or the input itself as a fallback."""
    matches = _matching(spec_text, versions)
    if not matches:
        return OldestMatch(spec_text, fallback=True)
    return OldestMatch(min(matches, key=parse_version))


def list_installed(store_dir: str, platform: Platform) -> list[str]:
    """
    Installed versions under the store, ascending.

    A ``vX.Y.Z`` directory only counts when it holds a node binary.
    """
    if not os.path.isdir(store_dir):
        return []

    versions = []
    for name in os.listdir(store_dir):
        if not is_full_version(name):
            continue
        if platform.dir_has_bin(os.path.join(store_dir, name)):
            versions.append(name)
        else:
            logger.debug(f"Skipping {name}: no node binary")
    return sort_versions(versions)


class VersionCatalog:
    """
    Installed versions plus a lazily loaded remote index.

    The remote loader is only called the first time remote data is needed
    and may raise ``RemoteFetchFailed``.
    """

    def __init__(
        self,
        installed: Iterable[str] = (),
        remote_loader: Callable[[], list[RemoteVersion]] | None = None,
    ):
        self._installed = sort_versions(list(installed))
        self._remote_loader = remote_loader
        self._remote: list[RemoteVersion] | None = None

    @classmethod
    def from_store(
        cls,
        store_dir: str,
        platform: Platform,
        remote_loader: Callable[[], list[RemoteVersion]] | None = None,
    ) -> VersionCatalog:
        return cls(list_installed(store_dir, platform), remote_loader)

    @property
    def installed(self) -> list[str]:
        return list(self._installed)

    def is_installed(self, version: str) -> bool:
        return version in self._installed

    def remote_entries(self) -> list[RemoteVersion]:
        """Full remote index, ascending by version."""
        if self._remote is None:
            if self._remote_loader is None:
                raise RemoteFetchFailed([], "no remote version index configured")
            entries = [e for e in self._remote_loader() if is_full_version(e.version)]
            self._remote = sorted(entries, key=lambda e: parse_version(e.version))
        return list(self._remote)

    def remote(self, lts_only: bool = False) -> list[str]:
        """Remote version strings, optionally narrowed to LTS releases."""
        return [e.version for e in self.remote_entries() if e.is_lts or not lts_only]
