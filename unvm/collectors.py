"""
Remote data collection from node.js distribution mirrors.

Fetches the version index (``index.json``), checksum lists and archives.
Mirrors are tried sequentially in preference order; every per-mirror
failure is recorded and reported together when all of them fail.
"""

from __future__ import annotations

import json
import logging
import shutil
import ssl
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from .errors import RemoteFetchFailed
from .upstream_cache import RemoteVersion, get_cache_path, get_fresh_versions, save_versions

logger = logging.getLogger(__name__)

USER_AGENT = "unvm/1.0"


class CollectionError(Exception):
    """Raised when collecting remote data fails."""
    pass


class NetworkError(CollectionError):
    """Raised when network requests fail."""
    pass


class ParseError(CollectionError):
    """Raised when response parsing fails."""
    pass


@dataclass(frozen=True)
class HttpOptions:
    """
    Transport settings for mirror requests.

    Attributes:
        timeout: Timeout in seconds for each request
        proxy: Proxy URL, or None for a direct connection
        verify_ssl: Verify TLS certificates
    """
    timeout: int = 30
    proxy: str | None = None
    verify_ssl: bool = True


def _build_opener(options: HttpOptions) -> urllib.request.OpenerDirector:
    proxies = {"http": options.proxy, "https": options.proxy} if options.proxy else {}
    handlers: list[Any] = [urllib.request.ProxyHandler(proxies)]
    if not options.verify_ssl:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        handlers.append(urllib.request.HTTPSHandler(context=context))
    return urllib.request.build_opener(*handlers)


def http_get(url: str, options: HttpOptions | None = None, headers: dict[str, str] | None = None) -> bytes:
    """Perform HTTP GET request.

    Args:
        url: URL to fetch
        options: Timeout, proxy and TLS settings
        headers: Optional HTTP headers

    Returns:
        Response body as bytes

    Raises:
        NetworkError: If request fails
    """
    options = options or HttpOptions()
    try:
        default_headers = {"User-Agent": USER_AGENT}
        if headers:
            default_headers.update(headers)

        req = urllib.request.Request(url, headers=default_headers)
        with _build_opener(options).open(req, timeout=options.timeout) as response:
            return response.read()
    except Exception as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e


def http_download(url: str, dest: str, options: HttpOptions | None = None) -> None:
    """Stream a URL into ``dest``.

    Raises:
        NetworkError: If the request or the write fails
    """
    options = options or HttpOptions()
    try:
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        with _build_opener(options).open(req, timeout=options.timeout) as response:
            with open(dest, "wb") as f:
                shutil.copyfileobj(response, f)
    except Exception as e:
        raise NetworkError(f"Failed to download {url}: {e}") from e


def dist_url(mirror: str, *parts: str) -> str:
    """Join a mirror base URL with path parts."""
    return "/".join([mirror.rstrip("/")] + [p.strip("/") for p in parts])


def parse_index(body: bytes) -> list[RemoteVersion]:
    """
    Parse an ``index.json`` body.

    Raises:
        ParseError: If the body is not a JSON list of version records
    """
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise ParseError(f"Invalid version index: {e}") from e
    if not isinstance(data, list):
        raise ParseError("Invalid version index: expected a list")
    versions = [RemoteVersion.from_dict(item) for item in data if isinstance(item, dict) and item.get("version")]
    if not versions:
        raise ParseError("Invalid version index: no versions")
    return versions


def fetch_remote_index(mirrors: Sequence[str], options: HttpOptions | None = None) -> tuple[list[RemoteVersion], str]:
    """
    Fetch the version index from the first mirror that serves a valid one.

    Returns:
        Tuple of (records, mirror that answered)

    Raises:
        RemoteFetchFailed: If every mirror failed
    """
    failures: list[tuple[str, str]] = []
    for mirror in mirrors:
        url = dist_url(mirror, "index.json")
        try:
            versions = parse_index(http_get(url, options))
        except CollectionError as e:
            logger.debug(f"Mirror {mirror} failed: {e}")
            failures.append((url, str(e)))
            continue
        logger.debug(f"Fetched {len(versions)} versions from {mirror}")
        return versions, mirror
    raise RemoteFetchFailed(failures)


def load_remote_index(
    mirrors: Sequence[str],
    cache_dir: str | None = None,
    options: HttpOptions | None = None,
    max_age_seconds: int = 3600,
) -> list[RemoteVersion]:
    """
    Version index, served from cache while fresh, fetched otherwise.

    A successful fetch refreshes the cache; cache write problems never fail
    the request.
    """
    cache_path = get_cache_path(cache_dir) if cache_dir else None
    if cache_path is not None:
        cached = get_fresh_versions(cache_path, max_age_seconds, mirrors)
        if cached is not None:
            logger.debug(f"Using cached version index {cache_path}")
            return cached

    versions, mirror = fetch_remote_index(mirrors, options)
    if cache_path is not None:
        save_versions(cache_path, versions, source=mirror, mirrors=mirrors)
    return versions


def remote_loader(
    mirrors: Sequence[str],
    cache_dir: str | None = None,
    options: HttpOptions | None = None,
    max_age_seconds: int = 3600,
) -> Callable[[], list[RemoteVersion]]:
    """Deferred ``load_remote_index`` for ``VersionCatalog``."""
    def load() -> list[RemoteVersion]:
        return load_remote_index(mirrors, cache_dir, options, max_age_seconds)
    return load


def parse_shasums(text: str) -> dict[str, str]:
    """Map file name to sha256 from a ``SHASUMS256.txt`` body."""
    sums: dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) == 2:
            sums[parts[1].lstrip("*")] = parts[0].lower()
    return sums


def fetch_shasums(mirror: str, version: str, options: HttpOptions | None = None) -> dict[str, str]:
    """
    Checksums published for a version on one mirror.

    Raises:
        NetworkError: If the list cannot be fetched
    """
    body = http_get(dist_url(mirror, version, "SHASUMS256.txt"), options)
    return parse_shasums(body.decode("utf-8", errors="replace"))


def download_archive(
    mirrors: Sequence[str],
    version: str,
    file_name: str,
    dest: Path,
    options: HttpOptions | None = None,
) -> str:
    """
    Download a distribution archive, trying mirrors in order.

    Returns:
        Mirror the archive came from

    Raises:
        RemoteFetchFailed: If no mirror served the archive
    """
    failures: list[tuple[str, str]] = []
    dest.parent.mkdir(parents=True, exist_ok=True)
    for mirror in mirrors:
        url = dist_url(mirror, version, file_name)
        logger.debug(f"Downloading {url}")
        try:
            http_download(url, str(dest), options)
        except NetworkError as e:
            failures.append((url, str(e)))
            dest.unlink(missing_ok=True)
            continue
        return mirror
    raise RemoteFetchFailed(failures, f"unable to download node.js {version}")
