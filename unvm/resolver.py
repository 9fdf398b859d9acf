"""
Version resolution.

Resolves a ``VersionSpec`` against a ``VersionCatalog`` into one concrete
``vX.Y.Z`` version, and picks the version file that supplies the version
spec when none was given on the command line. Nothing here prints or
exits; failures are raised as typed ``UnvmError`` subclasses.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum

from .catalog import OldestMatch, VersionCatalog, match_latest, match_oldest, parse_version
from .errors import InvalidRangeInFile, InvalidVersionSpec, NoLocalMatch, NoRemoteMatch
from .version_spec import SpecKind, VersionSpec, parse_version_spec

logger = logging.getLogger(__name__)


class ResolveMode(Enum):
    """Which catalog a spec is resolved against."""
    INSTALLED_ONLY = "installed"
    REMOTE = "remote"


class TieBreak(Enum):
    """Pick the highest or lowest match of a partial version."""
    LATEST = "latest"
    OLDEST = "oldest"


class ResolutionSource(Enum):
    """Where a version spec came from."""
    NVMRC = ".nvmrc"
    NODE_VERSION = ".node-version"
    PACKAGE_JSON = "package.json engines.node"
    COMMAND_LINE = "command line"

    def __str__(self) -> str:
        return self.value


VERSION_FILES = (
    (ResolutionSource.NVMRC, ".nvmrc"),
    (ResolutionSource.NODE_VERSION, ".node-version"),
)


@dataclass(frozen=True)
class VersionFileSpec:
    """A spec read from a version file."""
    spec: VersionSpec
    source: ResolutionSource
    path: str


@dataclass(frozen=True)
class ResolvedVersion:
    """
    Outcome of a successful resolution.

    Attributes:
        version: Concrete ``vX.Y.Z`` version
        source: Where the version spec came from
        range: Range text when resolution went through a semver range
        fallback: True when an oldest-match found nothing and ``version``
            is the unverified input echoed back
    """
    version: str
    source: ResolutionSource = ResolutionSource.COMMAND_LINE
    range: str | None = None
    fallback: bool = False


def _pool(catalog: VersionCatalog, mode: ResolveMode) -> list[str]:
    if mode is ResolveMode.INSTALLED_ONLY:
        return catalog.installed
    return catalog.remote()


def _no_match(spec: VersionSpec, catalog: VersionCatalog, mode: ResolveMode, source: ResolutionSource, reason: str = ""):
    if mode is ResolveMode.INSTALLED_ONLY:
        return NoLocalMatch(spec.version, catalog.installed, source.value, reason)
    return NoRemoteMatch(spec.version)


def _resolve_lts(spec: VersionSpec, catalog: VersionCatalog, mode: ResolveMode, source: ResolutionSource) -> str:
    # Installed versions carry no LTS flag; the remote index decides
    lts = catalog.remote(lts_only=True)
    if mode is ResolveMode.REMOTE:
        if not lts:
            raise NoRemoteMatch(spec.version)
        return lts[-1]

    lts_set = set(lts)
    candidates = [v for v in catalog.installed if v in lts_set]
    if not candidates:
        raise _no_match(spec, catalog, mode, source, "no installed LTS version found")
    return max(candidates, key=parse_version)


def resolve(
    spec: VersionSpec,
    catalog: VersionCatalog,
    mode: ResolveMode = ResolveMode.INSTALLED_ONLY,
    tie_break: TieBreak = TieBreak.LATEST,
    source: ResolutionSource = ResolutionSource.COMMAND_LINE,
) -> ResolvedVersion:
    """
    Resolve a spec to one concrete version.

    Exact versions are returned unchecked; the caller verifies that they are
    installed. Ranges always resolve to the highest satisfying version
    whatever ``tie_break`` says.

    Raises:
        NoLocalMatch: Nothing installed satisfies the version spec
        NoRemoteMatch: Nothing in the remote index satisfies the version spec
        RemoteFetchFailed: The remote index was needed but unavailable
    """
    if spec.kind is SpecKind.EXACT:
        return ResolvedVersion(spec.version, source)

    if spec.kind is SpecKind.KEYWORD:
        if spec.keyword == "lts":
            return ResolvedVersion(_resolve_lts(spec, catalog, mode, source), source)
        pool = _pool(catalog, mode)
        if not pool:
            raise _no_match(spec, catalog, mode, source)
        return ResolvedVersion(pool[-1], source)

    pool = _pool(catalog, mode)

    if spec.kind is SpecKind.RANGE:
        found = match_latest(spec.range or "", pool)
        if found is None:
            raise _no_match(spec, catalog, mode, source)
        return ResolvedVersion(found, source, range=spec.range)

    if tie_break is TieBreak.OLDEST:
        oldest: OldestMatch = match_oldest(spec.version, pool)
        if oldest.fallback:
            logger.debug(f"No match for {spec.version}, falling back to the input")
        return ResolvedVersion(oldest.version, source, fallback=oldest.fallback)

    found = match_latest(spec.version, pool)
    if found is None:
        raise _no_match(spec, catalog, mode, source)
    return ResolvedVersion(found, source)


def _read_text(path: str, source: ResolutionSource) -> str:
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise InvalidRangeInFile(source.value, "", detail="not UTF-8 text") from e
    except OSError as e:
        raise InvalidRangeInFile(source.value, "", detail=f"unreadable ({e.strerror or e})") from e


def _first_line(content: str) -> str:
    lines = content.strip().splitlines()
    return lines[0].strip() if lines else ""


def _parse_file_spec(raw: str, source: ResolutionSource) -> VersionSpec:
    try:
        return parse_version_spec(raw, source.value)
    except InvalidVersionSpec as e:
        raise InvalidRangeInFile(source.value, raw) from e


def read_version_file(directory: str) -> VersionFileSpec | None:
    """
    Find the version spec supplied by the version files of a directory.

    Sources are tried in order: ``.nvmrc``, ``.node-version``,
    ``package.json`` ``engines.node``. The first source holding a value
    wins; an empty file counts as absent, a malformed one fails without
    trying later sources.

    Returns:
        VersionFileSpec, or None when no source supplies a version

    Raises:
        InvalidRangeInFile: If the winning source holds an invalid value
            or cannot be decoded as UTF-8 text
    """
    for source, name in VERSION_FILES:
        path = os.path.join(directory, name)
        if not os.path.isfile(path):
            continue
        raw = _first_line(_read_text(path, source))
        if not raw:
            logger.debug(f"Ignoring empty {name}")
            continue
        return VersionFileSpec(_parse_file_spec(raw, source), source, path)

    path = os.path.join(directory, "package.json")
    if not os.path.isfile(path):
        return None
    source = ResolutionSource.PACKAGE_JSON
    try:
        data = json.loads(_read_text(path, source))
    except ValueError as e:
        raise InvalidRangeInFile("package.json", "", detail=f"malformed JSON ({e})") from e

    engines = data.get("engines") if isinstance(data, dict) else None
    node = engines.get("node") if isinstance(engines, dict) else None
    if not isinstance(node, str) or not node.strip():
        return None
    return VersionFileSpec(_parse_file_spec(node.strip(), source), source, path)
