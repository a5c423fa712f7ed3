"""Tests for the persisted discovery preferences."""

import json

import pytest

import cc_sync.io.settings
from cc_sync.io.settings import DEFAULT_EXCLUDES, DEFAULT_MAX_DEPTH, DiscoverySettings


def test_path_follows_xdg(isolated_settings):
    assert cc_sync.io.settings.settings_path() == isolated_settings


def test_missing_file_reads_empty(isolated_settings):
    assert cc_sync.io.settings.read_settings() == {}


@pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
def test_corrupt_file_reads_empty(isolated_settings, content):
    isolated_settings.parent.mkdir(parents=True)
    isolated_settings.write_text(content)
    assert cc_sync.io.settings.read_settings() == {}


def test_update_keeps_unknown_keys(isolated_settings):
    cc_sync.io.settings.write_settings({"theme": "dark"})
    merged = cc_sync.io.settings.update_settings(discovery_enabled=False)
    assert merged == {"theme": "dark", "discovery_enabled": False}
    assert json.loads(isolated_settings.read_text()) == merged
    assert not list(isolated_settings.parent.glob("*.tmp"))


def test_failed_write_leaves_no_temp_file(isolated_settings):
    with pytest.raises(TypeError):
        cc_sync.io.settings.write_settings({"bad": object()})
    assert not list(isolated_settings.parent.glob("*.tmp"))
    assert not isolated_settings.exists()


class TestDiscoverySettings:
    def test_defaults(self, isolated_settings):
        assert cc_sync.io.settings.load_discovery_settings() == DiscoverySettings()

    def test_values_from_file(self, isolated_settings):
        cc_sync.io.settings.write_settings({
            "discovery_enabled": False,
            "discovery_max_depth": 2,
            "discovery_excludes": ["vendor"],
        })
        loaded = cc_sync.io.settings.load_discovery_settings()
        assert loaded == DiscoverySettings(enabled=False, max_depth=2, excludes=("vendor",))

    @pytest.mark.parametrize(
        "data",
        [
            pytest.param({"discovery_max_depth": 0}, id="depth-zero"),
            pytest.param({"discovery_max_depth": "3"}, id="depth-string"),
            pytest.param({"discovery_max_depth": True}, id="depth-bool"),
            pytest.param({"discovery_excludes": "node_modules"}, id="excludes-string"),
            pytest.param({"discovery_excludes": [1]}, id="excludes-non-string"),
        ],
    )
    def test_malformed_values_fall_back(self, isolated_settings, data):
        cc_sync.io.settings.write_settings(data)
        loaded = cc_sync.io.settings.load_discovery_settings()
        assert loaded.max_depth == DEFAULT_MAX_DEPTH
        assert loaded.excludes == DEFAULT_EXCLUDES

    def test_save_enabled_round_trip(self, isolated_settings):
        cc_sync.io.settings.save_discovery_enabled(False)
        assert cc_sync.io.settings.load_discovery_settings().enabled is False
        cc_sync.io.settings.save_discovery_enabled(True)
        assert cc_sync.io.settings.load_discovery_settings().enabled is True
