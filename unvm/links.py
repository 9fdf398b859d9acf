"""
Permanent link management.

The link is a symlink (a junction on Windows) from the link dir to the bin
dir of the default version. Replacing it is remove-then-create, retried on
transient lock errors.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable

from .errors import ConcurrencyConflict
from .platforms import Platform
from .retry import RetryExhausted, retry_call

logger = logging.getLogger(__name__)

_LINK_VERSION_RE = re.compile(r"(v\d+\.\d+\.\d+)")


def link_exists(link_dir: str) -> bool:
    return os.path.lexists(link_dir)


def read_link_version(link_dir: str) -> str | None:
    """
    Version the permanent link points at.

    Returns:
        ``vX.Y.Z``, or None when there is no link or its target names no version
    """
    if not os.path.lexists(link_dir):
        return None
    try:
        # Symlinks and Windows junctions; plain directories raise
        target = os.readlink(link_dir)
    except OSError:
        return None
    match = _LINK_VERSION_RE.search(target)
    return match.group(1) if match else None


def _remove(link_dir: str) -> None:
    if os.path.islink(link_dir) or os.path.isfile(link_dir):
        os.unlink(link_dir)
    elif os.path.isdir(link_dir):
        # Junctions report as directories on older Pythons
        os.rmdir(link_dir)


def replace_link(
    link_dir: str,
    target_dir: str,
    platform: Platform,
    attempts: int = 5,
    sleep: Callable[[float], None] | None = None,
    verbose: bool = False,
) -> None:
    """
    Point the permanent link at ``target_dir``.

    Raises:
        ConcurrencyConflict: If a transient lock error persisted through every attempt
        OSError: Any other filesystem error
    """
    parent = os.path.dirname(link_dir)
    if parent:
        os.makedirs(parent, exist_ok=True)

    def swap() -> None:
        if os.path.lexists(link_dir):
            _remove(link_dir)
        platform.create_dir_link(target_dir, link_dir)

    kwargs = {"sleep": sleep} if sleep is not None else {}
    try:
        retry_call(swap, platform.is_transient_lock_error, attempts=attempts, verbose=verbose, **kwargs)
    except RetryExhausted as e:
        raise ConcurrencyConflict(link_dir, e.attempts, e.last_error) from e
    logger.debug(f"Linked {link_dir} -> {target_dir}")


def remove_link(link_dir: str) -> bool:
    """
    Remove the permanent link.

    Returns:
        True if a link was removed
    """
    if not os.path.lexists(link_dir):
        return False
    _remove(link_dir)
    return True
