"""
On-disk layout of the version store.

    <base>/nodejs/vX.Y.Z     installed versions
    <base>/nodejs/bin        permanent link (default, NVM_LINK overrides)
    <base>/cache             downloads and remote index cache
    <base>/bin               manager scripts, always on PATH
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from typing import Mapping

from .common import replace_version
from .config import Config


@dataclass(frozen=True)
class NvmPaths:
    """
    Resolved directories for one invocation.

    Attributes:
        base_dir: Root of everything unvm owns
        link_dir: Permanent link path
        tmp_dir: Directory for the session transfer file
        run_id: Per-session key appended to the transfer file name
    """
    base_dir: str
    link_dir: str
    tmp_dir: str
    run_id: str = ""

    @property
    def store_dir(self) -> str:
        return os.path.join(self.base_dir, "nodejs")

    @property
    def cache_dir(self) -> str:
        return os.path.join(self.base_dir, "cache")

    @property
    def bin_dir(self) -> str:
        return os.path.join(self.base_dir, "bin")

    def node_dir(self, version: str) -> str:
        """Install directory of a version (``v`` prefix added when missing)."""
        return os.path.join(self.store_dir, replace_version(version))

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], config: Config | None = None) -> NvmPaths:
        """
        Build the layout from environment variables, then config, then defaults.
        """
        config = config or Config()
        base_dir = (
            environ.get("NVM_HOME")
            or config.home
            or os.path.join(os.path.expanduser("~"), "nvm")
        )
        link_dir = (
            environ.get("NVM_LINK")
            or config.link
            or os.path.join(base_dir, "nodejs", "bin")
        )
        tmp_dir = environ.get("NVM_TMPDIR") or tempfile.gettempdir()
        return cls(
            base_dir=base_dir,
            link_dir=link_dir,
            tmp_dir=tmp_dir,
            run_id=environ.get("NVM_RUN_ID", ""),
        )
