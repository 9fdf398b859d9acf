"""
PATH planning for version switching.

Pure functions of an ``EnvironmentState``: each returns a new state and
touches neither the filesystem (beyond the injected ``has_node`` probe)
nor the process environment.
"""

from __future__ import annotations

import os
from typing import Callable

from .environment import EnvironmentState


def _under(entry: str, base_dir: str) -> bool:
    return entry.startswith(base_dir)


def reset_paths(
    state: EnvironmentState,
    base_dir: str,
    link_dir: str,
    has_node: Callable[[str], bool],
) -> EnvironmentState:
    """
    Remove every node.js entry from PATH, then append ``<base>/bin``.

    Dropped entries: anything under ``base_dir``, the permanent link dir,
    and any other directory holding a node executable.

    Args:
        state: Current environment
        base_dir: Root of the version store
        link_dir: Permanent link directory
        has_node: Probe telling whether a directory holds a node binary
    """
    kept = [
        entry for entry in state.path
        if not _under(entry, base_dir) and entry != link_dir and not has_node(entry)
    ]
    kept.append(os.path.join(base_dir, "bin"))
    return state.with_path(kept)


def apply_use(state: EnvironmentState, version_bin_dir: str) -> EnvironmentState:
    """Put a version's bin dir in front of an already reset PATH."""
    return state.with_path([version_bin_dir] + list(state.path))


def apply_link(state: EnvironmentState, link_dir: str, link_exists: bool) -> EnvironmentState:
    """
    Put the permanent link dir in front of PATH.

    No-op while a transient override is active or when the link is missing.
    An existing occurrence of the link dir is moved, not duplicated.
    """
    if state.nvm_use or not link_exists:
        return state
    rest = [entry for entry in state.path if entry != link_dir]
    return state.with_path([link_dir] + rest)


def remove_link(state: EnvironmentState, link_dir: str) -> EnvironmentState:
    """Drop the permanent link dir from PATH."""
    return state.with_path([entry for entry in state.path if entry != link_dir])
