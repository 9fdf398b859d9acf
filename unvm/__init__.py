"""
unvm - universal node.js version manager.

Core Modules:
- Resolution: version spec parsing, installed/remote catalog, resolver
- Switching: environment planner, session file, permanent link, coordinator
- Installation: remote index, archive download and verification, profile setup
"""

__version__ = "1.0.0"
__author__ = "unvm Contributors"

VERSION = __version__

# Resolution
from .version_spec import SpecKind, VersionSpec, parse_version_spec
from .catalog import (
    OldestMatch,
    VersionCatalog,
    list_installed,
    match_latest,
    match_oldest,
    sort_versions,
    to_range,
)
from .resolver import (
    ResolutionSource,
    ResolvedVersion,
    ResolveMode,
    TieBreak,
    read_version_file,
    resolve,
)

# Switching
from .environment import EnvironmentState
from .planner import apply_link, apply_use, reset_paths
from .platforms import Platform, PosixPlatform, Win32Platform, select_platform
from .paths import NvmPaths
from .switch import SwitchCoordinator, SwitchResult

# Installation
from .upstream_cache import RemoteVersion
from .collectors import HttpOptions, fetch_remote_index, load_remote_index
from .installer import InstallResult, install_version, uninstall_version

# Foundation
from .config import Config, Preferences, load_config
from .errors import (
    UnvmError,
    InvalidVersionSpec,
    NotInstalled,
    NoLocalMatch,
    NoRemoteMatch,
    RemoteFetchFailed,
    InvalidRangeInFile,
    NoVersionFile,
    ConcurrencyConflict,
    InstallError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    # Version
    "__version__",
    "VERSION",
    # Resolution
    "SpecKind",
    "VersionSpec",
    "parse_version_spec",
    "OldestMatch",
    "VersionCatalog",
    "list_installed",
    "match_latest",
    "match_oldest",
    "sort_versions",
    "to_range",
    "ResolutionSource",
    "ResolvedVersion",
    "ResolveMode",
    "TieBreak",
    "read_version_file",
    "resolve",
    # Switching
    "EnvironmentState",
    "apply_link",
    "apply_use",
    "reset_paths",
    "Platform",
    "PosixPlatform",
    "Win32Platform",
    "select_platform",
    "NvmPaths",
    "SwitchCoordinator",
    "SwitchResult",
    # Installation
    "RemoteVersion",
    "HttpOptions",
    "fetch_remote_index",
    "load_remote_index",
    "InstallResult",
    "install_version",
    "uninstall_version",
    # Foundation
    "Config",
    "Preferences",
    "load_config",
    "UnvmError",
    "InvalidVersionSpec",
    "NotInstalled",
    "NoLocalMatch",
    "NoRemoteMatch",
    "RemoteFetchFailed",
    "InvalidRangeInFile",
    "NoVersionFile",
    "ConcurrencyConflict",
    "InstallError",
    "setup_logging",
    "get_logger",
]
