"""
Tests for list rendering (unvm/render.py).
"""

from unvm.render import render_installed, render_remote
from unvm.upstream_cache import RemoteVersion


class TestRenderInstalled:

    def test_empty(self):
        """An empty store renders a hint."""
        assert render_installed([]) == ["No node.js versions installed. Run 'nvm install lts' to get started."]

    def test_markers(self):
        """Active and linked versions are marked."""
        lines = render_installed(["v18.20.0", "v20.11.0"], active="v20.11.0", linked="v18.20.0")
        assert lines == ["  v18.20.0 (linked)", "* v20.11.0"]


class TestRenderRemote:

    def test_columns(self):
        """Versions are padded; LTS codename and install state follow."""
        entries = [
            RemoteVersion("v8.17.0", "Carbon"),
            RemoteVersion("v20.11.0", "Iron"),
            RemoteVersion("v21.6.0", False),
        ]
        assert render_remote(entries, installed=["v20.11.0"]) == [
            "v8.17.0   (LTS: Carbon)",
            "v20.11.0  (LTS: Iron)  installed",
            "v21.6.0",
        ]

    def test_boolean_lts(self):
        """A bare true LTS flag still renders."""
        assert render_remote([RemoteVersion("v4.9.1", True)]) == ["v4.9.1  (LTS: LTS)"]
