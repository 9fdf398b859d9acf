"""
Tests for the version catalog (unvm/catalog.py).
"""

import random

import pytest

from unvm.catalog import (
    OldestMatch,
    VersionCatalog,
    list_installed,
    match_latest,
    match_oldest,
    sort_versions,
    to_range,
)
from unvm.errors import RemoteFetchFailed
from unvm.upstream_cache import RemoteVersion
from unvm.version_spec import parse_version_spec


INSTALLED = ["v18.19.0", "v18.20.0", "v18.20.1", "v20.10.0"]


class TestSortVersions:
    """Semantic sorting."""

    def test_numeric_not_lexical(self):
        """v9 sorts before v10."""
        assert sort_versions(["v10.0.0", "v9.0.0", "v9.10.0", "v9.2.0"]) == [
            "v9.0.0", "v9.2.0", "v9.10.0", "v10.0.0",
        ]

    def test_sort_is_stable_under_reversal(self):
        """Sorting the reversed sorted list gives the same list."""
        versions = ["v20.10.0", "v4.5.0", "v18.20.1", "v18.9.0", "v0.12.18", "v22.0.0"]
        random.Random(7).shuffle(versions)
        once = sort_versions(versions)
        assert sort_versions(list(reversed(once))) == once

    @pytest.mark.parametrize("value", [None, "v1.0.0", {"a": 1}, []])
    def test_non_sequence_returned_unchanged(self, value):
        """Non-list input (or an empty list) comes back as-is."""
        assert sort_versions(value) is value


class TestToRange:
    """Partial version to range conversion."""

    @pytest.mark.parametrize("partial,expected", [
        ("v20", "20.x.x"),
        ("v20.10", "20.10.x"),
        ("v20.10.0", "20.10.0"),
        ("20", "20.x.x"),
    ])
    def test_to_range(self, partial, expected):
        """Missing components become wildcards."""
        assert to_range(partial) == expected

    def test_to_range_from_spec(self):
        """Parsed specs convert the same way."""
        assert to_range(parse_version_spec("18.2")) == "18.2.x"

    def test_range_passthrough(self):
        """Real ranges are returned untouched."""
        assert to_range(">=18.0.0") == ">=18.0.0"
        assert to_range(parse_version_spec("^20.1.0")) == "^20.1.0"

    def test_keyword_has_no_range(self):
        """Keywords cannot be converted."""
        with pytest.raises(ValueError):
            to_range(parse_version_spec("lts"))

    def test_partial_range_only_matches_its_minor(self):
        """A major.minor range never matches another minor."""
        versions = ["v18.19.0", "v18.20.0", "v18.20.1", "v18.3.0"]
        assert match_latest(to_range("v18.20"), versions) == "v18.20.1"
        assert match_latest(to_range("v18.19"), versions) == "v18.19.0"


class TestMatching:
    """matchLatest / matchOldest."""

    def test_match_latest(self):
        """Highest match wins."""
        assert match_latest("v18", INSTALLED) == "v18.20.1"

    def test_match_oldest(self):
        """Lowest match wins."""
        assert match_oldest("v18", INSTALLED) == OldestMatch("v18.19.0", fallback=False)

    def test_match_latest_not_found(self):
        """No match is None, not an exception."""
        assert match_latest("v99", INSTALLED) is None

    def test_match_oldest_falls_back_to_input(self):
        """No match echoes the input back, flagged as a fallback."""
        result = match_oldest("v99", INSTALLED)
        assert result.version == "v99"
        assert result.fallback is True

    def test_match_range(self):
        """Semver ranges match directly."""
        assert match_latest(">=18.20.0 <20", INSTALLED) == "v18.20.1"
        assert match_latest("^20.0.0", INSTALLED) == "v20.10.0"


class TestListInstalled:
    """Store scanning."""

    def test_lists_versions_with_binary(self, make_store, platform):
        """Only vX.Y.Z dirs holding bin/node are installed."""
        paths = make_store("v20.10.0", "v9.0.0", "v18.20.1")
        make_store("v16.0.0", with_binary=False)
        assert list_installed(paths.store_dir, platform) == ["v9.0.0", "v18.20.1", "v20.10.0"]

    def test_ignores_link_and_junk(self, make_store, platform, tmp_path):
        """The link dir and other names are skipped."""
        paths = make_store("v20.10.0")
        (tmp_path / "nvm" / "nodejs" / "bin").mkdir()
        (tmp_path / "nvm" / "nodejs" / "node-v21.0.0-linux-x64").mkdir()
        assert list_installed(paths.store_dir, platform) == ["v20.10.0"]

    def test_missing_store(self, tmp_path, platform):
        """No store means nothing installed."""
        assert list_installed(str(tmp_path / "absent"), platform) == []


class TestVersionCatalog:
    """VersionCatalog."""

    def test_installed_sorted(self):
        """Installed versions are kept sorted."""
        catalog = VersionCatalog(["v20.10.0", "v18.20.1"])
        assert catalog.installed == ["v18.20.1", "v20.10.0"]
        assert catalog.is_installed("v20.10.0")
        assert not catalog.is_installed("v16.0.0")

    def test_remote_loaded_once(self):
        """The loader runs lazily and only once."""
        calls = []

        def loader():
            calls.append(1)
            return [RemoteVersion("v20.11.0", "Iron"), RemoteVersion("v21.0.0", False)]

        catalog = VersionCatalog([], loader)
        assert calls == []
        assert catalog.remote() == ["v20.11.0", "v21.0.0"]
        assert catalog.remote(lts_only=True) == ["v20.11.0"]
        assert calls == [1]

    def test_remote_skips_malformed_entries(self):
        """Index entries that are not vX.Y.Z are dropped and the rest sorted."""
        catalog = VersionCatalog([], lambda: [
            RemoteVersion("v10.0.0"), RemoteVersion("garbage"), RemoteVersion("v9.0.0"),
        ])
        assert catalog.remote() == ["v9.0.0", "v10.0.0"]

    def test_no_loader(self):
        """Asking for remote data without a loader is a fetch failure."""
        with pytest.raises(RemoteFetchFailed):
            VersionCatalog([]).remote()
