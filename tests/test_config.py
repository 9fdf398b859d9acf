"""
Tests for configuration parsing (unvm/config.py).
"""

import json
from unittest.mock import patch

import pytest

from unvm.config import (
    DEFAULT_DIST_URL,
    Config,
    Preferences,
    get_dist_urls,
    load_config,
    load_config_file,
    resolve_corepack,
    resolve_proxy,
    resolve_verify_ssl,
)


VALID_YAML = """\
version: 1
home: ~/custom-nvm
mirrors:
  - https://mirror.example/dist
preferences:
  timeout_seconds: 10
  proxy: http://proxy.example:3128
  corepack: true
"""


@pytest.fixture
def no_default_locations():
    """Keep real config files on this machine out of load_config."""
    with patch("unvm.config.CONFIG_LOCATIONS", []):
        yield


class TestPreferences:
    """Tests for Preferences dataclass."""

    def test_defaults(self):
        """Test Preferences with default values."""
        prefs = Preferences()
        assert prefs.timeout_seconds == 30
        assert prefs.cache_ttl_seconds == 3600
        assert prefs.verify_ssl is True
        assert prefs.proxy is None
        assert prefs.corepack is False
        assert prefs.link_retries == 5

    @pytest.mark.parametrize("kwargs", [
        {"timeout_seconds": 0},
        {"timeout_seconds": 121},
        {"cache_ttl_seconds": 10},
        {"link_retries": 0},
    ])
    def test_validation(self, kwargs):
        """Out of range values are rejected."""
        with pytest.raises(ValueError):
            Preferences(**kwargs)


class TestConfig:
    """Tests for Config dataclass."""

    def test_invalid_version(self):
        """Only schema version 1 is accepted."""
        with pytest.raises(ValueError, match="Unsupported config version"):
            Config(version=2)

    def test_invalid_mirror(self):
        """Mirrors must be http(s) URLs."""
        with pytest.raises(ValueError, match="Invalid mirror URL"):
            Config(mirrors=("ftp://mirror.example",))

    def test_from_dict_single_mirror_string(self):
        """A single mirror may be given as a string."""
        config = Config.from_dict({"mirrors": "https://mirror.example/dist"})
        assert config.mirrors == ("https://mirror.example/dist",)

    def test_merge_prefers_self(self):
        """Higher priority values win; unset ones fall through."""
        project = Config(mirrors=("https://a.example",), preferences=Preferences(timeout_seconds=10))
        user = Config(
            home="/home/me/nvm",
            mirrors=("https://b.example",),
            preferences=Preferences(timeout_seconds=20, proxy="http://proxy:3128"),
        )
        merged = project.merge_with(user)
        assert merged.mirrors == ("https://a.example",)
        assert merged.home == "/home/me/nvm"
        assert merged.preferences.timeout_seconds == 10
        assert merged.preferences.proxy == "http://proxy:3128"


class TestLoading:
    """Tests for reading configuration files."""

    def test_load_yaml(self, tmp_path):
        """YAML files load with preferences."""
        path = tmp_path / "config.yml"
        path.write_text(VALID_YAML)
        config = load_config_file(str(path))
        assert config is not None
        assert config.mirrors == ("https://mirror.example/dist",)
        assert config.preferences.timeout_seconds == 10
        assert config.preferences.corepack is True
        assert config.home.endswith("custom-nvm")
        assert not config.home.startswith("~")
        assert config.source == str(path)

    def test_load_json(self, tmp_path):
        """JSON files are accepted too."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"version": 1, "preferences": {"link_retries": 3}}))
        config = load_config_file(str(path))
        assert config.preferences.link_retries == 3

    def test_missing_file(self, tmp_path):
        """Missing files load as None."""
        assert load_config_file(str(tmp_path / "nope.yml")) is None

    def test_invalid_yaml(self, tmp_path):
        """Unparseable files load as None."""
        path = tmp_path / "bad.yml"
        path.write_text("preferences: [unclosed")
        assert load_config_file(str(path)) is None

    def test_invalid_values(self, tmp_path):
        """Files failing validation load as None."""
        path = tmp_path / "bad.yml"
        path.write_text("version: 3\n")
        assert load_config_file(str(path)) is None

    def test_load_config_defaults(self, no_default_locations):
        """No files means defaults."""
        assert load_config() == Config()

    def test_load_config_custom_path(self, tmp_path, no_default_locations):
        """An explicit path is loaded."""
        path = tmp_path / "config.yml"
        path.write_text(VALID_YAML)
        assert load_config(str(path)).preferences.timeout_seconds == 10

    def test_load_config_custom_path_missing(self, tmp_path, no_default_locations):
        """An explicit path that cannot be loaded is an error."""
        with pytest.raises(ValueError, match="Could not load config"):
            load_config(str(tmp_path / "nope.yml"))

    def test_load_config_merges_locations(self, tmp_path):
        """Earlier locations take priority over later ones."""
        project = tmp_path / "project.yml"
        project.write_text("preferences:\n  timeout_seconds: 10\n")
        user = tmp_path / "user.yml"
        user.write_text("mirrors: [https://user.example/dist]\npreferences:\n  timeout_seconds: 20\n")
        with patch("unvm.config.CONFIG_LOCATIONS", [str(project), str(user)]):
            config = load_config()
        assert config.preferences.timeout_seconds == 10
        assert config.mirrors == ("https://user.example/dist",)


class TestDistUrls:
    """get_dist_urls."""

    def test_default_only(self):
        """Without settings only nodejs.org is used."""
        assert get_dist_urls(Config(), {}) == [DEFAULT_DIST_URL]

    def test_order_and_dedupe(self):
        """Environment mirrors, then config, then the default; no duplicates."""
        config = Config(mirrors=("https://b.example", DEFAULT_DIST_URL))
        environ = {"NVM_NODEJS_ORG_MIRROR": "https://a.example; https://b.example;"}
        assert get_dist_urls(config, environ) == ["https://a.example", "https://b.example", DEFAULT_DIST_URL]

    def test_override(self):
        """--mirror wins alone."""
        environ = {"NVM_NODEJS_ORG_MIRROR": "https://a.example"}
        assert get_dist_urls(Config(), environ, override="https://c.example") == ["https://c.example"]


class TestProxy:
    """resolve_proxy."""

    def test_cli_wins(self):
        """The --proxy flag beats everything."""
        environ = {"NVM_PROXY": "http://env:1", "https_proxy": "http://https:1"}
        assert resolve_proxy(environ, "https://nodejs.org", "http://cli:1") == ("http://cli:1", "--proxy flag")

    def test_nvm_proxy_beats_config(self):
        """NVM_PROXY beats the config file."""
        config = Config(preferences=Preferences(proxy="http://config:1"))
        assert resolve_proxy({"NVM_PROXY": "http://env:1"}, "https://nodejs.org", config=config)[0] == "http://env:1"

    def test_config(self):
        """The config proxy names its source."""
        config = Config(preferences=Preferences(proxy="http://config:1"), source="/etc/unvm/config.yml")
        assert resolve_proxy({}, "https://nodejs.org", config=config) == ("http://config:1", "/etc/unvm/config.yml")

    def test_https_lowercase_first(self):
        """https mirrors prefer https_proxy, lowercase first."""
        environ = {"HTTPS_PROXY": "http://upper:1", "https_proxy": "http://lower:1", "http_proxy": "http://plain:1"}
        assert resolve_proxy(environ, "https://nodejs.org") == ("http://lower:1", "https_proxy")

    def test_https_falls_back_to_http_proxy(self):
        """https mirrors fall back to http_proxy."""
        assert resolve_proxy({"HTTP_PROXY": "http://plain:1"}, "https://nodejs.org")[0] == "http://plain:1"

    def test_http_ignores_https_proxy(self):
        """http mirrors only look at http proxies."""
        assert resolve_proxy({"https_proxy": "http://https:1"}, "http://mirror.local") == (None, None)


class TestFlags:
    """resolve_verify_ssl / resolve_corepack."""

    def test_verify_ssl_precedence(self):
        """Flag > environment > config > on."""
        config = Config(preferences=Preferences(verify_ssl=False))
        assert resolve_verify_ssl({}) is True
        assert resolve_verify_ssl({}, config=config) is False
        assert resolve_verify_ssl({"NVM_VERIFY_SSL": "true"}, config=config) is True
        assert resolve_verify_ssl({"NVM_VERIFY_SSL": "false"}) is False
        assert resolve_verify_ssl({"NVM_VERIFY_SSL": "false"}, cli_value=True) is True

    def test_corepack_precedence(self):
        """Only the exact string 'true' enables corepack from the environment."""
        config = Config(preferences=Preferences(corepack=True))
        assert resolve_corepack({}) is False
        assert resolve_corepack({}, config=config) is True
        assert resolve_corepack({"NVM_COREPACK_ENABLED": "1"}, config=config) is False
        assert resolve_corepack({"NVM_COREPACK_ENABLED": "true"}) is True
        assert resolve_corepack({"NVM_COREPACK_ENABLED": "true"}, cli_value=False) is False
