"""
Switch coordinator: use, link, unlink, auto-use and stop.

Each operation resolves first, then plans the new environment, and only
then touches disk (the permanent link, then the session transfer file).
A failure before that point leaves both untouched.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import planner
from .catalog import VersionCatalog
from .common import strip_v, vlog
from .environment import EnvironmentState
from .errors import (
    NoActiveVersion,
    NoLocalMatch,
    NotInstalled,
    NoVersionFile,
    RemoteFetchFailed,
    UnvmError,
)
from .links import link_exists, remove_link, replace_link
from .paths import NvmPaths
from .platforms import Platform
from .resolver import (
    ResolutionSource,
    ResolvedVersion,
    ResolveMode,
    TieBreak,
    read_version_file,
    resolve,
)
from .session import render_install, transfer_file_path, write_script, write_transfer_file
from .version_spec import SpecKind, VersionSpec, parse_version_spec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwitchResult:
    """
    Outcome of a switch operation.

    Attributes:
        version: Version now in effect, None when nothing changed
        state: Environment after the operation
        switched: Whether PATH was changed
        source: Where the version spec came from
    """
    version: str | None
    state: EnvironmentState
    switched: bool = False
    source: ResolutionSource | None = None


class SwitchCoordinator:
    """
    Orchestrates version switching for one invocation.

    Args:
        paths: Directory layout
        platform: Target platform
        catalog: Installed (and lazily remote) versions
        state: Environment snapshot at startup
        flavor: Transfer file flavor ("sh", "ps1" or "cmd")
        link_retries: Attempts for replacing the permanent link
        verbose: Enable verbose logging
    """

    def __init__(
        self,
        paths: NvmPaths,
        platform: Platform,
        catalog: VersionCatalog,
        state: EnvironmentState,
        flavor: str = "sh",
        link_retries: int = 5,
        verbose: bool = False,
    ):
        self.paths = paths
        self.platform = platform
        self.catalog = catalog
        self.state = state
        self.flavor = flavor
        self.link_retries = link_retries
        self.verbose = verbose

    @property
    def session_path(self) -> Path:
        return transfer_file_path(self.paths.tmp_dir, self.flavor, self.paths.run_id)

    def _persist(self, state: EnvironmentState) -> None:
        write_transfer_file(state, self.session_path, self.flavor)
        self.state = state

    def _reset(self, state: EnvironmentState) -> EnvironmentState:
        return planner.reset_paths(
            state, self.paths.base_dir, self.paths.link_dir, self.platform.dir_has_bin
        )

    def _find_installed(
        self,
        spec: VersionSpec,
        source: ResolutionSource,
        tie_break: TieBreak = TieBreak.LATEST,
    ) -> ResolvedVersion:
        resolved = resolve(spec, self.catalog, ResolveMode.INSTALLED_ONLY, tie_break, source)
        if not self.catalog.is_installed(resolved.version):
            raise NotInstalled(resolved.version, source.value)
        return resolved

    def _bin_dir(self, version: str) -> str:
        return self.platform.get_bin_dir(self.paths.node_dir(version))

    def _switch_state(self, version: str) -> EnvironmentState:
        state = planner.apply_use(self._reset(self.state), self._bin_dir(version))
        return state.with_nvm_use(version)

    def find_installed(self, raw: str, tie_break: TieBreak = TieBreak.LATEST) -> ResolvedVersion:
        """Resolve command line input to an installed version."""
        return self._find_installed(parse_version_spec(raw), ResolutionSource.COMMAND_LINE, tie_break)

    def use(self, raw: str | None = None, directory: str | None = None) -> SwitchResult:
        """
        Activate a version for the current shell session.

        Without ``raw`` the version files of ``directory`` supply the version spec.

        Raises:
            NoVersionFile: No version given and no version file found
            InvalidVersionSpec: The version does not parse
            InvalidRangeInFile: The version file holds an invalid value
            NotInstalled: The resolved version is not installed
            NoLocalMatch: Nothing installed matches
        """
        if raw is None:
            directory = directory or os.getcwd()
            file_spec = read_version_file(directory)
            if file_spec is None:
                raise NoVersionFile(directory)
            spec, source = file_spec.spec, file_spec.source
        else:
            spec, source = parse_version_spec(raw), ResolutionSource.COMMAND_LINE

        resolved = self._find_installed(spec, source)
        self._persist(self._switch_state(resolved.version))

        if source is ResolutionSource.COMMAND_LINE:
            logger.info(f"Now using node {resolved.version}.")
        else:
            range_info = f": {resolved.range}" if resolved.range else ""
            logger.info(f"Using node {resolved.version} (from {source.value}{range_info})")
        return SwitchResult(resolved.version, self.state, switched=True, source=source)

    def auto_use(self, directory: str | None = None, silent: bool = True, verbose: bool = False) -> SwitchResult | None:
        """
        Switch to the version requested by the directory's version files.

        No version file is a no-op. A version that is not installed is
        reported once per shell session; the shown warnings are carried in
        the transfer file. The switch confirmation always prints.

        Returns:
            SwitchResult when a version is (or already was) active, else None
        """
        directory = directory or os.getcwd()
        try:
            file_spec = read_version_file(directory)
        except UnvmError as e:
            if not silent:
                logger.warning(f"Auto-use failed: {e.message}")
            return None

        if file_spec is None:
            if not silent:
                logger.info(f"No .nvmrc, .node-version or package.json engines.node found in {directory}")
            return None

        spec, source = file_spec.spec, file_spec.source
        try:
            resolved = self._find_installed(spec, source)
        except (NotInstalled, NoLocalMatch):
            clean = strip_v(spec.raw.strip())
            key = f"{source.value}:{clean}"
            if not self.state.has_shown_error(key):
                logger.warning(f"Version {clean} from {source.value} not installed")
                self._persist(self.state.with_shown_error(key))
            else:
                vlog(f"Already reported {key} this session", self.verbose)
            return None
        except RemoteFetchFailed as e:
            if not silent:
                logger.warning(f"Auto-use failed: {e.message}")
            return None

        if self.state.active_version == resolved.version:
            return SwitchResult(resolved.version, self.state, switched=False, source=source)

        self._persist(self._switch_state(resolved.version))
        action = "Switched to" if verbose else "Using"
        range_info = f": {resolved.range}" if resolved.range else ""
        logger.info(f"{action} node {resolved.version} (auto-use from {source.value}{range_info})")
        return SwitchResult(resolved.version, self.state, switched=True, source=source)

    def link(self, raw: str) -> SwitchResult:
        """
        Make a version the permanent default.

        ``latest`` and ``lts`` pick among installed versions; ``lts`` needs
        the remote index to know which of them are LTS releases.

        Raises:
            NoLocalMatch: Nothing installed matches
            NotInstalled: The version is not installed
            RemoteFetchFailed: LTS status could not be determined
            ConcurrencyConflict: The link stayed locked through every retry
        """
        spec = parse_version_spec(raw)
        source = ResolutionSource.COMMAND_LINE

        if spec.kind is SpecKind.KEYWORD:
            if not self.catalog.installed:
                raise NoLocalMatch(spec.version, [], reason="no node.js versions installed yet")
            try:
                resolved = self._find_installed(spec, source)
            except RemoteFetchFailed as e:
                raise RemoteFetchFailed(
                    e.failures, "unable to fetch remote versions to determine LTS status"
                ) from e
            kind = "LTS version" if spec.keyword == "lts" else "version"
            logger.info(f"Linking to latest installed {kind}: {resolved.version}")
        else:
            resolved = self._find_installed(spec, source)

        replace_link(
            self.paths.link_dir,
            self._bin_dir(resolved.version),
            self.platform,
            attempts=self.link_retries,
            verbose=self.verbose,
        )
        state = self.state.with_link_version(resolved.version)
        if state.nvm_use:
            self.state = state
            vlog(f"NVM_USE={state.nvm_use} shadows the link in this session", self.verbose)
        else:
            self._persist(planner.apply_link(state, self.paths.link_dir, True))
        logger.info(f"Linked node {resolved.version} as the default version.")
        return SwitchResult(resolved.version, self.state, switched=not state.nvm_use, source=source)

    def unlink(self) -> SwitchResult:
        """Remove the permanent link and drop it from PATH."""
        removed = remove_link(self.paths.link_dir)
        previous = self.state.link_version
        state = planner.remove_link(self.state, self.paths.link_dir).with_link_version(None)
        self._persist(state)
        if removed:
            logger.info(f"Unlinked the default node version{f' {previous}' if previous else ''}.")
        else:
            logger.info("No default node version is linked.")
        return SwitchResult(None, self.state, switched=removed)

    def stop(self) -> SwitchResult:
        """
        Undo ``use`` in the current shell.

        Node entries are removed from PATH and the override cleared; the
        permanent link, when present, becomes the active version again.
        """
        previous = self.state.nvm_use
        state = self._reset(self.state).with_nvm_use(None)
        state = planner.apply_link(state, self.paths.link_dir, link_exists(self.paths.link_dir))
        self._persist(state)
        if previous:
            logger.info(f"Stopped using node {previous}.")
        else:
            logger.info("No node version was in use in this shell.")
        return SwitchResult(self.state.active_version, self.state, switched=bool(previous))

    def forget(self, version: str) -> bool:
        """
        Drop references to a version that was just uninstalled.

        Returns:
            True if the link or the session override pointed at it
        """
        changed = False
        state = self.state
        if state.link_version == version:
            remove_link(self.paths.link_dir)
            state = planner.remove_link(state, self.paths.link_dir).with_link_version(None)
            logger.info(f"Removed the default link to {version}.")
            changed = True
        if state.nvm_use == version:
            state = self._reset(state).with_nvm_use(None)
            state = planner.apply_link(state, self.paths.link_dir, link_exists(self.paths.link_dir))
            changed = True
        if changed:
            self._persist(state)
        return changed

    def announce_install(self, version: str) -> None:
        """Hand ``NVM_INSTALL`` to the shell wrapper after an install."""
        write_script(render_install(version, self.state, self.flavor), self.session_path)

    def post_install(self, raw: str | None = None) -> str:
        """
        Re-run the post-install step for an installed version.

        Without ``raw`` the active version (override, else the link) is taken.

        Returns:
            Version announced

        Raises:
            NoActiveVersion: No version given and none in use
            InvalidVersionSpec: The version does not parse
            NotInstalled: The version is not installed
            NoLocalMatch: Nothing installed matches
        """
        if raw is None:
            active = self.state.active_version
            if not active:
                raise NoActiveVersion("postinstall")
            raw = active
        resolved = self.find_installed(raw)
        self.announce_install(resolved.version)
        logger.info(f"Running post-install for node {resolved.version} (NVM_INSTALL={resolved.version})")
        return resolved.version
