"""
Platform capability interface.

Everything that differs between a posix and a Windows node.js layout lives
behind ``Platform``; the catalog, planner and installer take one as a
parameter instead of branching on ``sys.platform`` themselves.
"""

from __future__ import annotations

import errno
import logging
import os
import platform as _platform
import sys

logger = logging.getLogger(__name__)

SHELLS = ("bash", "zsh", "sh", "powershell", "cmd")


def _normalize_arch(machine: str) -> str:
    machine = machine.lower()
    if machine in ("x86_64", "amd64"):
        return "x64"
    if machine in ("aarch64", "arm64"):
        return "arm64"
    if machine in ("i386", "i686", "x86"):
        return "x86"
    return machine


class Platform:
    """
    Node.js layout for one target OS.

    Attributes:
        name: Platform identifier ("posix" or "win32")
        delimiter: PATH list separator
        archive_ext: Extension of the distribution archive
        cache_file_name: File name used for the cached download
    """
    name = ""
    delimiter = os.pathsep
    archive_ext = ""
    cache_file_name = ""

    def __init__(self, system: str | None = None, arch: str | None = None):
        self.system = (system or _platform.system()).lower()
        self.arch = _normalize_arch(arch or _platform.machine())

    def get_bin_dir(self, node_dir: str) -> str:
        """Directory holding the node executable for an installed version."""
        raise NotImplementedError

    def dist_name(self, version: str) -> str:
        """Top-level directory name inside the distribution archive."""
        raise NotImplementedError

    def dist_file_name(self, version: str) -> str:
        """Archive file name on the distribution server."""
        return f"{self.dist_name(version)}{self.archive_ext}"

    def dir_has_bin(self, directory: str) -> bool:
        """Check whether a directory holds a node installation."""
        raise NotImplementedError

    def corepack_path(self, node_dir: str) -> str:
        raise NotImplementedError

    def node_path(self, node_dir: str) -> str:
        raise NotImplementedError

    def create_dir_link(self, target_dir: str, link_dir: str) -> None:
        """Create the directory link used as the permanent default."""
        raise NotImplementedError

    def is_transient_lock_error(self, exc: BaseException) -> bool:
        """Classify filesystem errors that go away when retried shortly after."""
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(system={self.system!r}, arch={self.arch!r})"


class PosixPlatform(Platform):
    """Linux / macOS layout: ``<version>/bin/node``, ``.tar.gz`` archives."""

    name = "posix"
    delimiter = ":"
    archive_ext = ".tar.gz"
    cache_file_name = "node.tgz"

    def get_bin_dir(self, node_dir: str) -> str:
        return os.path.join(node_dir, "bin")

    def dist_name(self, version: str) -> str:
        system = "darwin" if self.system == "darwin" else self.system
        arch = self.arch
        if arch == "arm64" and system == "darwin":
            major = int(version.lstrip("vV").split(".")[0])
            if major < 16:
                # No apple silicon builds before 16; x64 runs under rosetta
                logger.info(
                    f"Version {version} (major {major} < 16) falling back to x64 for {system} {arch}"
                )
                arch = "x64"
        return f"node-{version}-{system}-{arch}"

    def dir_has_bin(self, directory: str) -> bool:
        return os.path.exists(os.path.join(directory, "bin", "node"))

    def corepack_path(self, node_dir: str) -> str:
        return os.path.join(node_dir, "bin", "corepack")

    def node_path(self, node_dir: str) -> str:
        return os.path.join(node_dir, "bin", "node")

    def create_dir_link(self, target_dir: str, link_dir: str) -> None:
        os.symlink(target_dir, link_dir, target_is_directory=True)


class Win32Platform(Platform):
    """Windows layout: ``<version>/node.exe``, ``.zip`` archives."""

    name = "win32"
    delimiter = ";"
    archive_ext = ".zip"
    cache_file_name = "node.zip"

    # EPERM/EACCES/EBUSY right after creating or deleting a path
    _LOCK_ERRNOS = {errno.EPERM, errno.EACCES, errno.EBUSY}

    def get_bin_dir(self, node_dir: str) -> str:
        return node_dir

    def dist_name(self, version: str) -> str:
        arch = "x64" if self.arch in ("x64", "arm64") else "x86"
        return f"node-{version}-win-{arch}"

    def dir_has_bin(self, directory: str) -> bool:
        return os.path.exists(os.path.join(directory, "node.exe"))

    def corepack_path(self, node_dir: str) -> str:
        return os.path.join(node_dir, "corepack.cmd")

    def node_path(self, node_dir: str) -> str:
        return os.path.join(node_dir, "node.exe")

    def create_dir_link(self, target_dir: str, link_dir: str) -> None:
        # Junctions need no symlink privilege or Developer Mode
        import _winapi
        _winapi.CreateJunction(os.path.abspath(target_dir), os.path.abspath(link_dir))

    def is_transient_lock_error(self, exc: BaseException) -> bool:
        return isinstance(exc, OSError) and exc.errno in self._LOCK_ERRNOS


def select_platform(shell: str | None = None) -> Platform:
    """
    Pick the platform implementation.

    ``bash``/``zsh``/``sh`` select posix (this includes Git Bash on Windows),
    ``powershell``/``cmd`` select win32, otherwise the host OS decides.

    Raises:
        ValueError: If shell is not a known shell name
    """
    if shell:
        if shell not in SHELLS:
            raise ValueError(f"Unknown shell: {shell}. Must be one of: {', '.join(SHELLS)}")
        if shell in ("powershell", "cmd"):
            return Win32Platform()
        return PosixPlatform()
    if sys.platform == "win32":
        return Win32Platform()
    return PosixPlatform()
