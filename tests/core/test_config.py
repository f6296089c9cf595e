"""Tests for hashpipe.core.config."""

import json
import os

import pytest
import yaml

from hashpipe.core.config import DEFAULT_NICK, DEFAULT_QUIT_MESSAGE, Config
from hashpipe.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("HASHPIPE_"):
            monkeypatch.delenv(key)


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.get("irc.nick") == DEFAULT_NICK
        assert config.get("irc.quit_message") == DEFAULT_QUIT_MESSAGE
        assert config.get("irc.server") is None
        assert config.get("irc.channels") is None
        assert config.get("pipe.raw_in") is False

    def test_yaml_config_file(self, tmp_config_file):
        config = Config(config_file=tmp_config_file)
        assert config.get("irc.server") == "irc.example.net"
        assert config.get("irc.channels") == ["#ops", "#builds"]
        assert config.get("pipe.quiet") is True
        # Untouched defaults survive the merge
        assert config.get("pipe.raw_out") is False

    def test_json_config_file(self, tmp_dir):
        path = os.path.join(tmp_dir, "config.json")
        with open(path, "w") as f:
            json.dump({"irc": {"server": "irc.json.net"}}, f)
        config = Config(config_file=path)
        assert config.get("irc.server") == "irc.json.net"

    def test_env_overrides_file(self, tmp_config_file, monkeypatch):
        monkeypatch.setenv("HASHPIPE_IRC__NICK", "envnick")
        config = Config(config_file=tmp_config_file)
        assert config.get("irc.nick") == "envnick"

    def test_custom_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PIPE_IRC__SERVER", "irc.other.net")
        config = Config(env_prefix="PIPE_")
        assert config.get("irc.server") == "irc.other.net"

    def test_missing_file(self, tmp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            Config(config_file=os.path.join(tmp_dir, "nope.yaml"))

    def test_unsupported_extension(self, tmp_dir):
        path = os.path.join(tmp_dir, "config.ini")
        with open(path, "w") as f:
            f.write("[irc]\n")
        with pytest.raises(ConfigurationError, match="Unsupported"):
            Config(config_file=path)

    def test_file_must_be_mapping(self, tmp_dir):
        path = os.path.join(tmp_dir, "config.yaml")
        with open(path, "w") as f:
            yaml.dump(["a", "b"], f)
        with pytest.raises(ConfigurationError, match="mapping"):
            Config(config_file=path)

    def test_get_missing_key(self):
        config = Config()
        assert config.get("nonexistent.key") is None
        assert config.get("nonexistent.key", "fallback") == "fallback"

    def test_set(self):
        config = Config()
        config.set("irc.server", "irc.libera.chat")
        config.set("new.section.key", 1)
        assert config.get("irc.server") == "irc.libera.chat"
        assert config.get("new.section.key") == 1

    def test_validated_raises_configuration_error(self):
        with pytest.raises(ConfigurationError, match="server"):
            Config().validated()
