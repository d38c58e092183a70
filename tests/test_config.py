"""tests for config loading."""

import pytest

from config import load_config, DEFAULTS
from protocol.errors import ConfigError


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "nope.yaml")) == DEFAULTS

    def test_no_path(self):
        assert load_config()["listen_port"] == 0

    def test_file_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("listen_port: 7000\nlog_level: debug\n")
        config = load_config(str(path))
        assert config["listen_port"] == 7000
        assert config["log_level"] == "DEBUG"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)) == DEFAULTS

    def test_keyword_overrides_win(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("log_level: INFO\n")
        assert load_config(str(path), log_level="ERROR")["log_level"] == "ERROR"

    def test_none_override_ignored(self):
        assert load_config(log_level=None)["log_level"] == "WARNING"

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("peer_name: alice\n")
        with pytest.raises(ConfigError, match="peer_name"):
            load_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("listen_port: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    @pytest.mark.parametrize("key,value", [
        ("listen_port", 70000),
        ("listen_port", "6000"),
        ("connect_timeout", 0),
        ("max_message_bytes", -1),
        ("seen_cache_size", True),
        ("log_level", "LOUD"),
        ("service_type", "_chat._udp.local."),
    ])
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigError):
            load_config(**{key: value})
