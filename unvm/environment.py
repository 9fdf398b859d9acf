"""
Process environment snapshot for version switching.

The planner and switch coordinator never touch ``os.environ``; they thread
an immutable ``EnvironmentState`` through each step and the caller
serializes the final one to the session transfer file.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Mapping

SHOWN_ERRORS_SEPARATOR = ";"


@dataclass(frozen=True)
class EnvironmentState:
    """
    Environment variables that version switching reads and writes.

    Attributes:
        path: PATH entries in order, empty segments dropped
        delimiter: PATH list separator of the target platform
        nvm_use: Transient override version (NVM_USE), "" when unset
        shown_errors: Auto-use warnings already shown this session
        link_version: Version the permanent link points at, if any
    """
    path: tuple[str, ...] = ()
    delimiter: str = ":"
    nvm_use: str = ""
    shown_errors: tuple[str, ...] = ()
    link_version: str | None = None

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str],
        delimiter: str,
        link_version: str | None = None,
    ) -> EnvironmentState:
        """Snapshot the relevant variables of a process environment."""
        path = tuple(p for p in (environ.get("PATH") or "").split(delimiter) if p)
        shown = environ.get("NVM_AUTO_USE_SHOWN_ERRORS") or ""
        return cls(
            path=path,
            delimiter=delimiter,
            nvm_use=environ.get("NVM_USE") or "",
            shown_errors=tuple(e for e in shown.split(SHOWN_ERRORS_SEPARATOR) if e),
            link_version=link_version,
        )

    @property
    def path_string(self) -> str:
        return self.delimiter.join(self.path)

    @property
    def shown_errors_string(self) -> str:
        return SHOWN_ERRORS_SEPARATOR.join(self.shown_errors)

    @property
    def active_version(self) -> str | None:
        """Transient override first, then the permanent link, else nothing."""
        return self.nvm_use or self.link_version or None

    def with_path(self, path: tuple[str, ...] | list[str]) -> EnvironmentState:
        return dataclasses.replace(self, path=tuple(p for p in path if p))

    def with_nvm_use(self, version: str | None) -> EnvironmentState:
        return dataclasses.replace(self, nvm_use=version or "")

    def with_link_version(self, version: str | None) -> EnvironmentState:
        return dataclasses.replace(self, link_version=version)

    def has_shown_error(self, key: str) -> bool:
        return key in self.shown_errors

    def with_shown_error(self, key: str) -> EnvironmentState:
        if key in self.shown_errors:
            return self
        return dataclasses.replace(self, shown_errors=self.shown_errors + (key,))
