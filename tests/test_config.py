"""Unit tests for configuration loading."""

import json
from pathlib import Path

import pytest

from pymirror.config import MirrorConfig, ServerConfig, load_config
from pymirror.exceptions import ConfigError


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_host_and_port(self):
        """Address is split into host and port."""
        server = ServerConfig(address="ftp.example.com:2121", folder="/backup/")

        assert server.host == "ftp.example.com"
        assert server.port == 2121
        assert server.folder == "backup"  # Normalized without slashes
        assert server.remote_root == "/backup"

    def test_default_port_and_credentials(self):
        """Missing port defaults to 21, login to anonymous."""
        server = ServerConfig(address="10.0.0.5")

        assert server.host == "10.0.0.5"
        assert server.port == 21
        assert server.user == "anonymous"
        assert server.password == "anonymous"
        assert server.secure is False
        assert server.remote_root == "/"

    def test_invalid_port(self):
        """A non-numeric port is rejected."""
        with pytest.raises(ConfigError, match="Invalid port"):
            ServerConfig(address="host:ftp")

    def test_empty_address(self):
        """An empty address is rejected."""
        with pytest.raises(ConfigError):
            ServerConfig(address="  ")

    def test_from_dict(self):
        """All keys are read from a dictionary."""
        server = ServerConfig.from_dict(
            {
                "address": "h:21",
                "folder": "data",
                "user": "bob",
                "password": "pw",
                "secure": True,
            }
        )

        assert server.user == "bob"
        assert server.password == "pw"
        assert server.secure is True

    def test_from_dict_missing_address(self):
        """An entry without address is rejected."""
        with pytest.raises(ConfigError, match="address"):
            ServerConfig.from_dict({"folder": "x"})

    def test_secure_must_be_boolean(self):
        """A string such as "false" is not silently read as true."""
        with pytest.raises(ConfigError, match="secure"):
            ServerConfig.from_dict({"address": "h:21", "secure": "false"})


class TestMirrorConfig:
    """Tests for MirrorConfig and load_config."""

    def _document(self, **overrides):
        data = {
            "servers": [{"address": "a:21", "folder": "one"}],
            "local": "data",
            "db": "state.json",
            "interval": 5000,
        }
        data.update(overrides)
        return data

    def test_from_dict(self):
        """Required keys are parsed and defaults applied."""
        config = MirrorConfig.from_dict(self._document())

        assert config.local == Path("data")
        assert config.db == Path("state.json")
        assert config.interval == 5000
        assert config.interval_seconds == 5.0
        assert config.timeout == 30.0
        assert [s.address for s in config.servers] == ["a:21"]

    def test_missing_keys(self):
        """Missing required keys are all reported."""
        with pytest.raises(ConfigError, match="local, db"):
            MirrorConfig.from_dict({"servers": [], "interval": 1})

    def test_servers_must_be_list(self):
        """servers must be a list."""
        with pytest.raises(ConfigError, match="servers"):
            MirrorConfig.from_dict(self._document(servers={"address": "a"}))

    def test_invalid_interval(self):
        """interval must be a number."""
        with pytest.raises(ConfigError, match="Invalid number"):
            MirrorConfig.from_dict(self._document(interval="soon"))

    def test_negative_interval(self):
        """interval must not be negative."""
        with pytest.raises(ConfigError, match="Interval"):
            MirrorConfig.from_dict(self._document(interval=-1))

    def test_non_positive_timeout(self):
        """timeout must be positive."""
        with pytest.raises(ConfigError, match="Timeout"):
            MirrorConfig.from_dict(self._document(timeout=0))

    def test_not_an_object(self):
        """The document must be a JSON object."""
        with pytest.raises(ConfigError):
            MirrorConfig.from_dict([])

    def test_load_config_resolves_relative_paths(self, temp_dir):
        """Relative paths are resolved against the config file directory."""
        path = temp_dir / "config.json"
        path.write_text(json.dumps(self._document(timeout=5)))

        config = load_config(path)

        assert config.local == temp_dir / "data"
        assert config.db == temp_dir / "state.json"
        assert config.timeout == 5.0

    def test_load_config_keeps_absolute_paths(self, temp_dir):
        """Absolute paths are used as given."""
        path = temp_dir / "config.json"
        local = temp_dir / "elsewhere"
        path.write_text(json.dumps(self._document(local=str(local))))

        assert load_config(path).local == local

    def test_load_config_missing_file(self, temp_dir):
        """A missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "missing.json")

    def test_load_config_invalid_json(self, temp_dir):
        """Invalid JSON raises ConfigError."""
        path = temp_dir / "config.json"
        path.write_text("{")

        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(path)
