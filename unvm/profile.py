"""
Shell profile editing for ``auto-use enable`` / ``auto-use disable``.

The auto-use hook lives in a marker-delimited block so it can be replaced
or removed without touching anything else in the profile.
"""

from __future__ import annotations

import logging
import os
import platform as _platform
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# NVM auto-use BEGIN - do not modify #"
END_MARKER = "# NVM auto-use END - do not modify #"


class MalformedBlock(ValueError):
    """Markers present but not in BEGIN..END order."""
    pass


@dataclass(frozen=True)
class ProfileTarget:
    """Profile file to edit and the line ending it uses."""
    path: str
    shell: str
    newline: str = "\n"


def detect_shell(shell: str | None, environ: Mapping[str, str], system: str | None = None) -> str:
    """``--shell`` if given, else guess from the environment."""
    if shell:
        return shell
    system = (system or _platform.system()).lower()
    if system == "windows":
        return "powershell"
    if environ.get("ZSH_VERSION") or "zsh" in environ.get("SHELL", ""):
        return "zsh"
    return "bash"


def profile_target(
    shell: str,
    home: str,
    environ: Mapping[str, str],
    system: str | None = None,
) -> ProfileTarget:
    """
    Profile file for a shell.

    zsh uses ``~/.zshrc``; bash uses ``~/.bash_profile`` on macOS when it
    exists and ``~/.bashrc`` otherwise; PowerShell honors ``NVM_PSPROFILE``
    and prefers the PowerShell 7 profile when its directory exists.
    """
    system = (system or _platform.system()).lower()
    if shell == "zsh":
        return ProfileTarget(os.path.join(home, ".zshrc"), shell)
    if shell in ("powershell", "cmd"):
        if environ.get("NVM_PSPROFILE"):
            return ProfileTarget(environ["NVM_PSPROFILE"], "powershell", "\r\n")
        ps7 = os.path.join(home, "Documents", "PowerShell", "Microsoft.PowerShell_profile.ps1")
        if os.path.exists(ps7) or os.path.isdir(os.path.dirname(ps7)):
            return ProfileTarget(ps7, "powershell", "\r\n")
        ps5 = os.path.join(home, "Documents", "WindowsPowerShell", "Microsoft.PowerShell_profile.ps1")
        return ProfileTarget(ps5, "powershell", "\r\n")
    if system == "darwin":
        bash_profile = os.path.join(home, ".bash_profile")
        if os.path.exists(bash_profile):
            return ProfileTarget(bash_profile, shell)
    return ProfileTarget(os.path.join(home, ".bashrc"), shell)


def setup_lines(shell: str, base_dir: str, home: str, use_cd_wrapper: bool = False) -> list[str]:
    """Lines of the auto-use block, markers included."""
    if shell == "powershell":
        command = "Enable-NvmAutoUseCdWrapper -Quiet" if use_cd_wrapper else "Enable-NvmAutoUse -Quiet"
        return [BEGIN_MARKER, '. "$Env:NVM_HOME\\bin\\nvm-auto-use.ps1"', command, END_MARKER]

    nvm_home = base_dir.replace(home, "${HOME}", 1) if home else base_dir
    command = "nvm_enable_auto_use --cd" if use_cd_wrapper else "nvm_enable_auto_use"
    return [BEGIN_MARKER, f'source "{nvm_home}/bin/nvm-auto-use.sh"', command, END_MARKER]


def _strip_trailing_blank(lines: list[str]) -> list[str]:
    while lines and not lines[-1].strip():
        lines = lines[:-1]
    return lines


def remove_block(lines: list[str]) -> tuple[list[str], bool]:
    """
    Drop the marker block and the blank lines around it.

    Returns:
        Tuple of (new lines, whether a block was found)

    Raises:
        MalformedBlock: If the markers are unpaired or out of order
    """
    if BEGIN_MARKER not in lines:
        if END_MARKER in lines:
            raise MalformedBlock(f"'{END_MARKER}' without '{BEGIN_MARKER}'")
        return lines, False
    begin = lines.index(BEGIN_MARKER)
    if END_MARKER in lines[:begin]:
        raise MalformedBlock(f"'{END_MARKER}' before '{BEGIN_MARKER}'")
    if END_MARKER not in lines[begin:]:
        raise MalformedBlock(f"missing '{END_MARKER}'")
    end = lines.index(END_MARKER, begin)

    head = lines[:begin]
    tail = lines[end + 1:]
    if head and not head[-1].strip():
        head = head[:-1]
    if tail and not tail[0].strip():
        tail = tail[1:]
    return _strip_trailing_blank(head + tail), True


def insert_block(lines: list[str], block: list[str]) -> list[str]:
    """Append the block after a blank line, replacing any existing block."""
    lines, _ = remove_block(lines)
    return _strip_trailing_blank(lines) + [""] + block + [""]


def _read_lines(path: str) -> list[str]:
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        return f.read().replace("\r\n", "\n").split("\n")


def _write_lines(target: ProfileTarget, lines: list[str]) -> None:
    parent = os.path.dirname(target.path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(target.path, "w", encoding="utf-8", newline="") as f:
        f.write(target.newline.join(lines))


def is_enabled(path: str) -> bool:
    return BEGIN_MARKER in _read_lines(path)


def enable_auto_use(target: ProfileTarget, base_dir: str, home: str, use_cd_wrapper: bool = False) -> None:
    """
    Install the auto-use block in a profile.

    Raises:
        MalformedBlock: If an existing block cannot be located safely
    """
    replacing = is_enabled(target.path)
    block = setup_lines(target.shell, base_dir, home, use_cd_wrapper)
    _write_lines(target, insert_block(_read_lines(target.path), block))

    mode = " (cd wrapper mode)" if use_cd_wrapper else ""
    verb = "updated" if replacing else "enabled"
    logger.info(f"Auto-use {verb}{mode}!")
    logger.info(f"Added to: {target.path}")
    logger.info("")
    logger.info("To activate in your current shell, run:")
    if target.shell == "powershell":
        logger.info("  . $PROFILE")
    else:
        logger.info(f"  source {target.path}")
    logger.info("Or restart your terminal.")


def disable_auto_use(target: ProfileTarget) -> bool:
    """
    Remove the auto-use block from a profile.

    Returns:
        True if a block was removed

    Raises:
        MalformedBlock: If the markers are unpaired or out of order
    """
    lines, found = remove_block(_read_lines(target.path))
    if not found:
        logger.warning(f"Auto-use is not enabled in {os.path.basename(target.path)}")
        return False

    _write_lines(target, lines + [""])
    logger.info("Auto-use disabled!")
    logger.info(f"Removed from: {target.path}")
    logger.info("")
    logger.info("To deactivate in your current shell, run:")
    if target.shell == "powershell":
        logger.info("  Disable-NvmAutoUse")
    else:
        logger.info("  nvm_disable_auto_use")
    logger.info("Or restart your terminal.")
    return True
