"""
Session transfer file.

After a switch the calling shell wrapper sources a small script that
applies the new environment. The script is regenerated wholesale on every
write; concurrent sessions are kept apart by ``NVM_RUN_ID``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from .environment import EnvironmentState

logger = logging.getLogger(__name__)

FLAVORS = ("sh", "ps1", "cmd")


def select_flavor(shell: str | None, platform_name: str, environ: Mapping[str, str]) -> str:
    """
    Script flavor for the calling shell.

    ``--shell`` decides when given; without it Windows hosts write
    PowerShell when ``NVM_POWERSHELL`` is set and cmd otherwise.
    """
    if shell == "powershell":
        return "ps1"
    if shell == "cmd":
        return "cmd"
    if shell:
        return "sh"
    if platform_name == "win32":
        return "ps1" if environ.get("NVM_POWERSHELL") else "cmd"
    return "sh"


def transfer_file_name(flavor: str, run_id: str = "") -> str:
    return f"nvm_env{run_id}.{flavor}"


def transfer_file_path(tmp_dir: str, flavor: str, run_id: str = "") -> Path:
    return Path(tmp_dir) / transfer_file_name(flavor, run_id)


def _escape_sh(value: str) -> str:
    return value.replace('"', '\\"')


def render(state: EnvironmentState, flavor: str) -> str:
    """
    Script text that applies ``state`` in the target shell.

    Raises:
        ValueError: If flavor is unknown
    """
    if flavor == "sh":
        return (
            "\n"
            f"export NVM_USE={state.nvm_use}\n"
            f'export NVM_AUTO_USE_SHOWN_ERRORS="{_escape_sh(state.shown_errors_string)}"\n'
            f'export PATH="{_escape_sh(state.path_string)}"\n'
        )
    if flavor == "ps1":
        lines = [
            f'$Env:NVM_USE="{state.nvm_use}"',
            f'$Env:NVM_AUTO_USE_SHOWN_ERRORS="{state.shown_errors_string}"',
            f'$Env:Path="{state.path_string}"',
        ]
    elif flavor == "cmd":
        lines = [
            "@ECHO OFF",
            f'SET "NVM_USE={state.nvm_use}"',
            f'SET "NVM_AUTO_USE_SHOWN_ERRORS={state.shown_errors_string}"',
            f'SET "PATH={state.path_string}"',
        ]
    else:
        raise ValueError(f"Unknown transfer file flavor: {flavor}. Must be one of: {', '.join(FLAVORS)}")
    return "".join(f"{line}\r\n" for line in lines)


def render_install(version: str, state: EnvironmentState, flavor: str) -> str:
    """
    Script text announcing a fresh install through ``NVM_INSTALL``.

    PATH is passed through unchanged; the shell wrapper runs its
    post-install hooks when ``NVM_INSTALL`` is set.

    Raises:
        ValueError: If flavor is unknown
    """
    if flavor == "sh":
        return (
            "\n"
            f'export PATH="{_escape_sh(state.path_string)}"\n'
            f"export NVM_INSTALL={version}\n"
        )
    if flavor == "ps1":
        lines = [f'$Env:NVM_INSTALL="{version}"', f'$Env:Path="{state.path_string}"']
    elif flavor == "cmd":
        lines = ["@ECHO OFF", f'SET "NVM_INSTALL={version}"', f'SET "PATH={state.path_string}"']
    else:
        raise ValueError(f"Unknown transfer file flavor: {flavor}. Must be one of: {', '.join(FLAVORS)}")
    return "".join(f"{line}\r\n" for line in lines)


def write_script(content: str, path: Path) -> None:
    """
    Write a transfer script atomically.

    Raises:
        IOError: If the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_name(f".{path.name}.{os.getpid()}.tmp")
        with open(temp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        temp_path.replace(path)
    except OSError as e:
        raise IOError(f"Failed to write session file {path}: {e}")
    logger.debug(f"Wrote session file {path}")


def write_transfer_file(state: EnvironmentState, path: Path, flavor: str) -> None:
    """Write the script applying ``state``."""
    write_script(render(state, flavor), path)
