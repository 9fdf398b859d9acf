"""
Shared fixtures: a fake version store on disk and an isolated environment.
"""

import os

import pytest

from unvm.catalog import VersionCatalog
from unvm.environment import EnvironmentState
from unvm.logging_config import setup_logging
from unvm.paths import NvmPaths
from unvm.platforms import PosixPlatform
from unvm.switch import SwitchCoordinator
from unvm.upstream_cache import RemoteVersion


@pytest.fixture(autouse=True)
def _logging():
    """Route unvm records through the root logger so caplog sees them."""
    setup_logging(level="DEBUG", propagate=True)
    yield


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the developer's nvm variables out of the tests."""
    for name in (
        "NVM_HOME", "NVM_LINK", "NVM_TMPDIR", "NVM_RUN_ID", "NVM_USE",
        "NVM_AUTO_USE_SHOWN_ERRORS", "NVM_NODEJS_ORG_MIRROR", "NVM_PROXY",
        "NVM_VERIFY_SSL", "NVM_COREPACK_ENABLED", "NVM_POWERSHELL", "UNVM_DEBUG",
        "http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def platform():
    return PosixPlatform(system="linux", arch="x86_64")


@pytest.fixture
def nvm_paths(tmp_path):
    base = tmp_path / "nvm"
    (base / "nodejs").mkdir(parents=True)
    tmp = tmp_path / "tmp"
    tmp.mkdir()
    return NvmPaths(
        base_dir=str(base),
        link_dir=str(base / "nodejs" / "bin"),
        tmp_dir=str(tmp),
        run_id="42",
    )


@pytest.fixture
def make_store(nvm_paths):
    """Create installed versions (``vX.Y.Z/bin/node``) in the fake store."""
    def make(*versions, with_binary=True):
        for version in versions:
            bin_dir = os.path.join(nvm_paths.node_dir(version), "bin")
            os.makedirs(bin_dir, exist_ok=True)
            if with_binary:
                node = os.path.join(bin_dir, "node")
                with open(node, "w") as f:
                    f.write("#!/bin/sh\n")
                os.chmod(node, 0o755)
        return nvm_paths
    return make


@pytest.fixture
def make_coordinator(nvm_paths, platform):
    """Coordinator over the fake store with a given environment."""
    def make(installed=(), remote=None, environ=None, link_version=None):
        loader = (lambda: list(remote)) if remote is not None else None
        catalog = VersionCatalog(installed, loader)
        environ = environ if environ is not None else {"PATH": "/opt/tools/bin:/usr/bin"}
        state = EnvironmentState.from_environ(environ, platform.delimiter, link_version)
        return SwitchCoordinator(nvm_paths, platform, catalog, state)
    return make


@pytest.fixture
def remote_index():
    return [
        RemoteVersion("v16.20.2", "Gallium"),
        RemoteVersion("v18.19.0", "Hydrogen"),
        RemoteVersion("v18.20.0", "Hydrogen"),
        RemoteVersion("v20.10.0", "Iron"),
        RemoteVersion("v20.11.0", "Iron"),
        RemoteVersion("v21.6.0", False),
    ]
