"""
Common utilities shared across unvm modules.
"""

from __future__ import annotations

import os
import re
from typing import Mapping


VERSION_RE = re.compile(r"^v\d+\.\d+\.\d+$")
NUMERIC_PARTIAL_RE = re.compile(r"^\d+(?:\.\d+){0,2}$")


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log a message only when verbose mode is on.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("UNVM_DEBUG", "0") == "1":
        from .logging_config import get_logger
        get_logger().debug(msg)


def replace_version(version: str | None) -> str | None:
    """
    Normalize a version string for display and storage.

    Lowercases and ensures a single leading ``v``:
    ``"20.10.0"`` -> ``"v20.10.0"``, ``"V18"`` -> ``"v18"``.
    """
    if not version:
        return version
    version = version.strip().lower()
    return version if version.startswith("v") else f"v{version}"


def strip_v(version: str) -> str:
    """Remove one leading ``v``/``V`` from a version string."""
    version = version.strip()
    if version[:1] in ("v", "V"):
        return version[1:]
    return version


def is_full_version(version: str) -> bool:
    """Check for the ``vMAJOR.MINOR.PATCH`` form used for store directories."""
    return bool(VERSION_RE.match(version))


def env_flag(environ: Mapping[str, str], name: str) -> bool | None:
    """
    Read a boolean environment flag.

    Returns:
        True/False when the variable is set, None when it is absent or empty
    """
    value = environ.get(name)
    if value is None or value == "":
        return None
    return value.strip().lower() not in ("0", "false", "no", "off")
