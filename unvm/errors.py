"""
Error taxonomy for version resolution and switching.

The resolver and planner raise these; only the switch coordinator and the
CLI decide how they are shown and which exit code they map to.
"""

from __future__ import annotations

from typing import Sequence


class UnvmError(Exception):
    """
    Base exception for unvm errors.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
        exit_code: Process exit status the CLI should use
    """
    exit_code = 1

    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class InvalidVersionSpec(UnvmError):
    """Input does not parse as exact, partial, keyword or range."""

    def __init__(self, raw: str, source: str = "command line"):
        self.raw = raw
        self.source = source
        super().__init__(
            f"invalid version '{raw}' from {source}",
            remediation="use a version like 20, 20.10, 20.10.0, lts, latest or a semver range",
        )


class NotInstalled(UnvmError):
    """A well-formed exact version has no installed directory."""

    def __init__(self, version: str, source: str = "command line"):
        self.version = version
        self.source = source
        super().__init__(
            f"node.js version {version} is not installed yet",
            remediation=f"run: nvm install {version}",
        )


class NoLocalMatch(UnvmError):
    """A partial, keyword or range matched nothing installed."""

    def __init__(self, spec: str, available: Sequence[str], source: str = "command line", reason: str = ""):
        self.spec = spec
        self.available = tuple(available)
        self.source = source
        message = reason or f"can't find an installed node.js version that matches {spec}"
        if source != "command line":
            message += f" (from {source})"
        listing = " ".join(self.available) if self.available else "(none)"
        super().__init__(message, remediation=f"Available versions: {listing}")


class NoRemoteMatch(UnvmError):
    """A partial, keyword or range matched nothing in the remote index."""

    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(
            f"unable to find a node.js version that matches '{spec}'",
            remediation="run: nvm ls-remote",
        )


class RemoteFetchFailed(UnvmError):
    """
    Every mirror failed to serve the version index.

    Attributes:
        failures: (url, error message) per mirror tried, in order
    """

    def __init__(self, failures: Sequence[tuple[str, str]], reason: str = ""):
        self.failures = tuple(failures)
        details = "; ".join(f"{url}: {err}" for url, err in self.failures)
        message = reason or "unable to fetch remote node.js versions"
        if details:
            message += f" ({details})"
        super().__init__(message, remediation="check your network, proxy or NVM_NODEJS_ORG_MIRROR settings")

    @property
    def cause(self) -> str:
        """Last recorded failure message."""
        return self.failures[-1][1] if self.failures else ""


class InvalidRangeInFile(UnvmError):
    """A version file holds content that is neither a version nor a valid range."""

    def __init__(self, source: str, raw: str, detail: str = ""):
        self.source = source
        self.raw = raw
        self.detail = detail
        text = f"invalid node version '{raw}' in {source}"
        if detail:
            text = f"{source}: {detail}"
        super().__init__(text, remediation=f"fix or remove {source}")


class NoVersionFile(UnvmError):
    """No version was given and no version file was found."""

    def __init__(self, directory: str):
        self.directory = directory
        super().__init__(
            f"no .nvmrc, .node-version or package.json engines.node found in {directory}",
            remediation="specify a version, e.g. nvm use 20",
        )


class NoActiveVersion(UnvmError):
    """No version was given and none is active in this shell."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(
            "unable to determine a version: none given and no version is in use",
            remediation=f"provide a version, e.g. nvm {command} 20",
        )


class ConcurrencyConflict(UnvmError):
    """Permanent link replacement kept failing on a transient lock error."""

    def __init__(self, path: str, attempts: int, cause: BaseException | None = None):
        self.path = path
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"unable to replace link {path} after {attempts} attempts: {cause}",
            remediation="close programs using the current node.js version and retry",
        )


class InstallError(UnvmError):
    """Download, verification or extraction of a node.js archive failed."""

    def __init__(self, message: str, version: str = "", remediation: str | None = None):
        self.version = version
        super().__init__(message, remediation=remediation)
