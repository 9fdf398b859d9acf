"""
Installation and removal of node.js versions.

Downloads the platform archive into the cache, verifies it against the
mirror's SHASUMS256.txt, extracts it into the store and renames the
extracted directory to ``vX.Y.Z``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import subprocess
import tarfile
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from .catalog import VersionCatalog, parse_version
from .collectors import HttpOptions, NetworkError, download_archive, fetch_shasums
from .common import vlog
from .errors import InstallError, RemoteFetchFailed
from .paths import NvmPaths
from .platforms import Platform
from .resolver import ResolveMode, TieBreak, resolve
from .retry import RetryExhausted, retry_call
from .switch import SwitchCoordinator
from .version_spec import parse_version_spec

logger = logging.getLogger(__name__)

MIN_VERSION = (4, 5, 0)


@dataclass(frozen=True)
class InstallResult:
    """
    Result of installing one version.

    Attributes:
        version: Version that was requested after resolution
        node_dir: Install directory
        success: Whether the version is installed afterwards
        skipped: Already installed, nothing done
        checksum_verified: Whether the archive matched a published checksum
        corepack_enabled: Whether ``corepack enable`` ran successfully
        mirror: Mirror the archive came from ("" when served from cache)
        duration_seconds: Total time taken
    """
    version: str
    node_dir: str
    success: bool
    skipped: bool = False
    checksum_verified: bool = False
    corepack_enabled: bool = False
    mirror: str = ""
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "node_dir": self.node_dir,
            "success": self.success,
            "skipped": self.skipped,
            "checksum_verified": self.checksum_verified,
            "corepack_enabled": self.corepack_enabled,
            "mirror": self.mirror,
            "duration_seconds": self.duration_seconds,
        }


def resolve_install_version(raw: str, catalog: VersionCatalog) -> str:
    """
    Resolve install input against the remote index.

    Full versions skip the remote lookup entirely.

    Raises:
        InvalidVersionSpec: If the input does not parse
        NoRemoteMatch: If nothing remote matches
        RemoteFetchFailed: If the index is needed but unavailable
    """
    spec = parse_version_spec(raw)
    try:
        return resolve(spec, catalog, ResolveMode.REMOTE, TieBreak.LATEST).version
    except RemoteFetchFailed as e:
        raise RemoteFetchFailed(
            e.failures,
            f"unable to fetch remote versions to match {spec.version}; specify a full version to skip this",
        ) from e


def check_minimum_version(version: str) -> None:
    """
    Raises:
        InstallError: If the version predates v4.5.0
    """
    parsed = parse_version(version)
    if (parsed.major, parsed.minor, parsed.patch) < MIN_VERSION:
        raise InstallError(
            f"can not install node.js {version}: versions below v4.5.0 are not supported",
            version=version,
        )


def verify_checksum(
    file_path: str,
    expected_checksum: str,
    algorithm: str = "sha256",
) -> bool:
    """
    Verify file checksum matches expected value.

    Args:
        file_path: Path to file to verify
        expected_checksum: Expected checksum value
        algorithm: Hash algorithm (sha256, sha512, md5)

    Returns:
        True if checksum matches, False otherwise
    """
    try:
        hasher = hashlib.new(algorithm)
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                hasher.update(chunk)
    except OSError:
        return False
    return hasher.hexdigest().lower() == expected_checksum.lower()


def extract_archive(archive: str, target_dir: str) -> None:
    """
    Extract a ``.tgz`` / ``.tar.gz`` or ``.zip`` archive into ``target_dir``.

    Raises:
        InstallError: If the archive is corrupt or unsupported
    """
    os.makedirs(target_dir, exist_ok=True)
    try:
        if archive.endswith(".zip"):
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(target_dir)
        else:
            with tarfile.open(archive, "r:*") as tf:
                tf.extractall(target_dir, filter="data")
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        raise InstallError(
            f"failed to extract {archive}: {e}",
            remediation="Try to clean cache with 'nvm cleanup' and try again.",
        ) from e


def enable_corepack(node_dir: str, version: str, platform: Platform, timeout: int = 60) -> bool:
    """
    Run ``corepack enable`` with the installed node.

    Failures are reported and swallowed; the install itself stands.

    Returns:
        True if corepack was enabled
    """
    corepack = platform.corepack_path(node_dir)
    if not os.path.exists(corepack):
        logger.warning(f"Corepack is not available in Node.js {version} (requires v16.9.0+)")
        return False

    logger.info("Enabling corepack...")
    command = [platform.node_path(node_dir), corepack, "enable"]
    try:
        result = subprocess.run(
            command,
            cwd=node_dir,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Failed to enable corepack: {e}")
        logger.warning("You can manually enable it later with: corepack enable")
        return False

    if result.returncode != 0:
        logger.warning(f"Failed to enable corepack: exit code {result.returncode}: {result.stderr[:200]}")
        logger.warning("You can manually enable it later with: corepack enable")
        return False

    logger.info(f"Corepack enabled for Node.js {version}")
    return True


def _verify_download(
    archive: Path,
    mirror: str,
    version: str,
    file_name: str,
    options: HttpOptions | None,
) -> bool:
    try:
        sums = fetch_shasums(mirror, version, options)
    except NetworkError as e:
        logger.debug(f"No checksums for {version} on {mirror}: {e}")
        return False

    expected = sums.get(file_name)
    if not expected:
        logger.debug(f"{file_name} is not listed in SHASUMS256.txt")
        return False
    if not verify_checksum(str(archive), expected):
        archive.unlink(missing_ok=True)
        raise InstallError(
            f"checksum mismatch for {file_name}",
            version=version,
            remediation="retry the install, or pick another mirror",
        )
    return True


def install_version(
    raw: str,
    paths: NvmPaths,
    platform: Platform,
    catalog: VersionCatalog,
    mirrors: Sequence[str],
    options: HttpOptions | None = None,
    corepack: bool = False,
    link_retries: int = 5,
    verbose: bool = False,
    on_installed: Callable[[str], None] | None = None,
) -> InstallResult:
    """
    Install a node.js version.

    ``on_installed`` is called with the version once it is in the store,
    before corepack runs; skipped installs do not call it.

    Raises:
        InvalidVersionSpec: If the input does not parse
        NoRemoteMatch: If nothing remote matches
        RemoteFetchFailed: If the index or the archive could not be fetched
        InstallError: If the version is too old or verification/extraction fails
    """
    start_time = time.time()
    version = resolve_install_version(raw, catalog)
    check_minimum_version(version)

    node_dir = paths.node_dir(version)
    if platform.dir_has_bin(node_dir):
        logger.warning(f"Node.js version {version} is already installed")
        return InstallResult(version=version, node_dir=node_dir, success=True, skipped=True)

    dist_name = platform.dist_name(version)
    file_name = platform.dist_file_name(version)
    archive = Path(paths.cache_dir) / version / platform.cache_file_name

    mirror = ""
    checksum_verified = False
    if archive.exists():
        vlog(f"Using cached archive {archive}", verbose)
    else:
        logger.info(f"Downloading Node {version}...")
        partial = archive.with_name(f"{archive.name}.partial")
        mirror = download_archive(mirrors, version, file_name, partial, options)
        checksum_verified = _verify_download(partial, mirror, version, file_name, options)
        partial.replace(archive)
        logger.info("downloaded successful")

    if os.path.exists(node_dir):
        shutil.rmtree(node_dir)

    logger.info(f"Installing Node {version}...")
    extracted = os.path.join(paths.store_dir, dist_name)
    try:
        extract_archive(str(archive), paths.store_dir)
        retry_call(
            lambda: os.rename(extracted, node_dir),
            platform.is_transient_lock_error,
            attempts=link_retries,
            verbose=verbose,
        )
    except (InstallError, RetryExhausted, OSError) as e:
        shutil.rmtree(extracted, ignore_errors=True)
        if isinstance(e, InstallError):
            raise
        raise InstallError(
            f"Node {version} installed failed: {e}",
            version=version,
            remediation="Try to clean cache with 'nvm cleanup' and try again.",
        ) from e
    logger.info(f"Node.js {version} installed.")
    if on_installed is not None:
        on_installed(version)

    corepack_enabled = enable_corepack(node_dir, version, platform) if corepack else False

    logger.info("")
    logger.info("Tip: Enable automatic version switching with nvm auto-use enable")
    return InstallResult(
        version=version,
        node_dir=node_dir,
        success=True,
        checksum_verified=checksum_verified,
        corepack_enabled=corepack_enabled,
        mirror=mirror,
        duration_seconds=time.time() - start_time,
    )


def uninstall_version(raw: str, coordinator: SwitchCoordinator, latest: bool = False) -> str:
    """
    Remove an installed version.

    A partial version picks the oldest installed match unless ``latest``.
    The permanent link and the session override are dropped when they
    pointed at the removed version.

    Returns:
        Version removed

    Raises:
        NotInstalled: If nothing installed matches
    """
    tie_break = TieBreak.LATEST if latest else TieBreak.OLDEST
    resolved = coordinator.find_installed(raw, tie_break)
    node_dir = coordinator.paths.node_dir(resolved.version)

    shutil.rmtree(node_dir)
    logger.info(f"Node.js version {resolved.version} uninstalled.")
    coordinator.forget(resolved.version)
    return resolved.version


def cleanup(paths: NvmPaths) -> list[str]:
    """
    Remove downloaded archives and the remote index cache.

    Returns:
        Paths removed
    """
    removed = []
    if os.path.isdir(paths.cache_dir):
        # Archives live in per-version dirs, the index cache is a file
        for name in sorted(os.listdir(paths.cache_dir)):
            path = os.path.join(paths.cache_dir, name)
            if os.path.isdir(path):
                shutil.rmtree(path)
            else:
                os.unlink(path)
            removed.append(path)
    logger.info(f"Removed {len(removed)} cached item(s) from {paths.cache_dir}")
    return removed
