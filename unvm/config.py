"""
Configuration file parsing and management.

Supports YAML configuration files (JSON accepted too).
Merges configurations from multiple sources (custom → project → user → system → defaults).
Environment variables and command line flags are applied on top by the caller.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

from .common import env_flag, vlog


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".unvm.yml",                                   # Project root (highest priority)
    ".unvm.yaml",
    os.path.expanduser("~/.config/unvm/config.yml"),  # User global
    os.path.expanduser("~/.config/unvm/config.yaml"),
    "/etc/unvm/config.yml",                        # System global
    "/etc/unvm/config.yaml",
]

DEFAULT_DIST_URL = "https://nodejs.org/dist"


@dataclass(frozen=True)
class Preferences:
    """
    Network and switching preferences.

    Attributes:
        timeout_seconds: Timeout for each network request
        cache_ttl_seconds: Remote version index cache lifetime
        verify_ssl: Verify TLS certificates of mirrors
        proxy: Proxy URL for mirror requests
        corepack: Run ``corepack enable`` after installing
        link_retries: Attempts for replacing the permanent link
    """
    timeout_seconds: int = 30
    cache_ttl_seconds: int = 3600
    verify_ssl: bool = True
    proxy: str | None = None
    corepack: bool = False
    link_retries: int = 5

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.timeout_seconds < 1 or self.timeout_seconds > 120:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. "
                "Must be between 1 and 120"
            )

        if self.cache_ttl_seconds < 60 or self.cache_ttl_seconds > 86400:
            raise ValueError(
                f"Invalid cache_ttl_seconds: {self.cache_ttl_seconds}. "
                "Must be between 60 and 86400 (1 minute to 1 day)"
            )

        if self.link_retries < 1 or self.link_retries > 20:
            raise ValueError(
                f"Invalid link_retries: {self.link_retries}. "
                "Must be between 1 and 20"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            timeout_seconds=data.get("timeout_seconds", 30),
            cache_ttl_seconds=data.get("cache_ttl_seconds", 3600),
            verify_ssl=data.get("verify_ssl", True),
            proxy=data.get("proxy"),
            corepack=data.get("corepack", False),
            link_retries=data.get("link_retries", 5),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for unvm.

    Attributes:
        version: Config schema version
        home: Base directory override (NVM_HOME)
        link: Permanent link directory override (NVM_LINK)
        mirrors: Distribution mirror base URLs, in preference order
        preferences: Global preferences
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    home: str = ""
    link: str = ""
    mirrors: tuple[str, ...] = ()
    preferences: Preferences = field(default_factory=Preferences)
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

        for mirror in self.mirrors:
            if not mirror.startswith(("http://", "https://")):
                raise ValueError(f"Invalid mirror URL: {mirror}. Must start with http:// or https://")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        mirrors = data.get("mirrors", [])
        if isinstance(mirrors, str):
            mirrors = [mirrors]

        return Config(
            version=data.get("version", 1),
            home=os.path.expanduser(data.get("home", "") or ""),
            link=os.path.expanduser(data.get("link", "") or ""),
            mirrors=tuple(mirrors),
            preferences=Preferences.from_dict(data.get("preferences", {}) or {}),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        default = Preferences()
        mine, theirs = self.preferences, other.preferences

        def pick(name: str) -> Any:
            value = getattr(mine, name)
            return value if value != getattr(default, name) else getattr(theirs, name)

        merged_preferences = Preferences(
            timeout_seconds=pick("timeout_seconds"),
            cache_ttl_seconds=pick("cache_ttl_seconds"),
            verify_ssl=pick("verify_ssl"),
            proxy=pick("proxy"),
            corepack=pick("corepack"),
            link_retries=pick("link_retries"),
        )

        return Config(
            version=self.version,
            home=self.home or other.home,
            link=self.link or other.link,
            mirrors=self.mirrors or other.mirrors,
            preferences=merged_preferences,
            source=self.source or other.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to configuration file (.yml, .yaml or .json)
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. Project .unvm.yml
    3. User ~/.config/unvm/config.yml
    4. System /etc/unvm/config.yml
    5. Default configuration

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    merged = configs[0]
    for config in configs[1:]:
        merged = merged.merge_with(config)

    vlog(f"Merged {len(configs)} config files", verbose)
    return merged


def get_dist_urls(
    config: Config,
    environ: Mapping[str, str],
    override: str | None = None,
) -> list[str]:
    """
    Ordered, de-duplicated list of mirror base URLs to try.

    An explicit override wins alone. Otherwise mirrors from
    ``NVM_NODEJS_ORG_MIRROR`` (``;``-separated) come first, then configured
    mirrors, and the canonical nodejs.org dist is always the last resort.
    """
    if override:
        return [override]

    candidates = (environ.get("NVM_NODEJS_ORG_MIRROR") or "").split(";")
    candidates += list(config.mirrors)
    candidates.append(DEFAULT_DIST_URL)

    urls: list[str] = []
    for url in candidates:
        url = url.strip()
        if url and url not in urls:
            urls.append(url)
    return urls


def resolve_proxy(
    environ: Mapping[str, str],
    first_url: str,
    cli_proxy: str | None = None,
    config: Config | None = None,
) -> tuple[str | None, str | None]:
    """
    Choose the proxy for mirror requests.

    Priority: ``--proxy`` flag > ``NVM_PROXY`` > config > protocol specific
    variables (lowercase first, npm convention).

    Returns:
        Tuple of (proxy URL, description of where it came from)
    """
    if cli_proxy:
        return cli_proxy, "--proxy flag"
    if environ.get("NVM_PROXY"):
        return environ["NVM_PROXY"], "NVM_PROXY"
    if config is not None and config.preferences.proxy:
        return config.preferences.proxy, config.source or "config"

    if first_url.startswith("https:"):
        names = ("https_proxy", "HTTPS_PROXY", "http_proxy", "HTTP_PROXY")
    else:
        names = ("http_proxy", "HTTP_PROXY")
    for name in names:
        if environ.get(name):
            return environ[name], name
    return None, None


def resolve_verify_ssl(
    environ: Mapping[str, str],
    cli_value: bool | None = None,
    config: Config | None = None,
) -> bool:
    """
    Decide whether to verify TLS certificates.

    Priority: command line flag > ``NVM_VERIFY_SSL`` > config > on.
    """
    if cli_value is not None:
        return cli_value
    from_env = env_flag(environ, "NVM_VERIFY_SSL")
    if from_env is not None:
        return from_env
    if config is not None:
        return config.preferences.verify_ssl
    return True


def resolve_corepack(
    environ: Mapping[str, str],
    cli_value: bool | None = None,
    config: Config | None = None,
) -> bool:
    """Corepack priority: command line flag > ``NVM_COREPACK_ENABLED`` > config > off."""
    if cli_value is not None:
        return cli_value
    if environ.get("NVM_COREPACK_ENABLED") is not None:
        return environ["NVM_COREPACK_ENABLED"] == "true"
    if config is not None:
        return config.preferences.corepack
    return False
