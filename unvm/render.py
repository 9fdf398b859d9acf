"""
Output rendering for ``ls`` and ``ls-remote``.
"""

import os
import sys
from typing import Sequence

from .upstream_cache import RemoteVersion


# Environment options
USE_COLOR = os.environ.get("UNVM_COLOR", "1") == "1"

# ANSI color codes
GREEN = "\033[32m"
CYAN = "\033[36m"
DIM = "\033[2m"
RESET = "\033[0m"


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text or not sys.stdout.isatty():
        return text
    return f"{color}{text}{RESET}"


def render_installed(
    versions: Sequence[str],
    active: str | None = None,
    linked: str | None = None,
) -> list[str]:
    """Lines for ``ls``.

    ``*`` marks the active version, ``(linked)`` the permanent default.
    An empty store yields a hint without any version number in it.
    """
    if not versions:
        return ["No node.js versions installed. Run 'nvm install lts' to get started."]

    lines = []
    for version in versions:
        marker = "*" if version == active else " "
        text = f"{marker} {version}"
        if version == linked:
            text += f" {colorize('(linked)', DIM)}"
        lines.append(colorize(text, GREEN) if version == active else text)
    return lines


def render_remote(entries: Sequence[RemoteVersion], installed: Sequence[str] = ()) -> list[str]:
    """Lines for ``ls-remote``: version, LTS codename, installed marker."""
    installed_set = set(installed)
    width = max((len(e.version) for e in entries), default=0)
    lines = []
    for entry in entries:
        text = entry.version.ljust(width)
        if entry.is_lts:
            codename = entry.lts if isinstance(entry.lts, str) else "LTS"
            text += f"  {colorize(f'(LTS: {codename})', CYAN)}"
        if entry.version in installed_set:
            text += f"  {colorize('installed', GREEN)}"
        lines.append(text.rstrip())
    return lines
