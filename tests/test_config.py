"""Tests for configuration loading."""

import tempfile
from pathlib import Path

import pytest
import yaml

from ficsclient.config import Config, LoggingConfig, ServerConfig, SessionConfig, load_config


class TestConfig:
    """Tests for Config class."""

    def test_server_config_defaults(self) -> None:
        """Test server config defaults."""
        config = Config()

        assert config.server.host == "freechess.org"
        assert config.server.port == 5000
        assert config.server.encoding == "latin-1"

    def test_session_config_defaults(self) -> None:
        """Test session config defaults."""
        config = Config()

        assert config.session.username is None
        assert config.session.password is None
        assert config.session.prompt == "fics%"
        assert config.session.keepalive_interval == 59 * 60
        assert config.session.setup_commands == ["set prompt", "set seek 0", "set style 12"]
        assert config.session.auto_next_page is True

    def test_logging_config_defaults(self) -> None:
        """Test logging config defaults."""
        config = Config()

        assert config.logging.level == "WARNING"
        assert config.logging.enable_json is True
        assert config.logging.enable_markdown is True

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test settings taken from FICS_ environment variables."""
        monkeypatch.setenv("FICS_SERVER__HOST", "chess.example.org")
        monkeypatch.setenv("FICS_SESSION__USERNAME", "foobarbaz")

        config = Config()

        assert config.server.host == "chess.example.org"
        assert config.session.username == "foobarbaz"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_no_file(self) -> None:
        """Test loading config without a file."""
        config = load_config()

        assert config.server.port == 5000

    def test_load_config_missing_file(self) -> None:
        """Test that a missing file falls back to defaults."""
        config = load_config(Path("/nonexistent/fics.yaml"))

        assert config.server.host == "freechess.org"

    def test_load_config_from_yaml(self) -> None:
        """Test loading config from YAML file."""
        config_data = {
            "server": {"host": "localhost", "port": 5001},
            "session": {
                "username": "foobarbaz",
                "password": "secret",
                "setup_commands": ["set style 12"],
            },
            "logging": {"level": "DEBUG"},
        }

        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(config_data, f)
            config_path = Path(f.name)

        try:
            config = load_config(config_path=config_path)

            assert config.server.host == "localhost"
            assert config.server.port == 5001
            assert config.session.username == "foobarbaz"
            assert config.session.password is not None
            assert config.session.password.get_secret_value() == "secret"
            assert config.session.setup_commands == ["set style 12"]
            assert config.logging.level == "DEBUG"
            # Other values should be defaults
            assert config.session.prompt == "fics%"
        finally:
            config_path.unlink()

    def test_load_config_empty_file(self) -> None:
        """Test loading an empty YAML file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            config_path = Path(f.name)

        try:
            config = load_config(config_path=config_path)

            assert config.server.host == "freechess.org"
        finally:
            config_path.unlink()


class TestModels:
    """Tests for the config section models."""

    def test_password_hidden_in_repr(self) -> None:
        """Test that the password is not printed."""
        config = SessionConfig(username="foo", password="hunter2")  # type: ignore[arg-type]

        assert "hunter2" not in repr(config)

    def test_invalid_port(self) -> None:
        """Test invalid port raises error."""
        with pytest.raises(ValueError):
            ServerConfig(port="not a port")  # type: ignore[arg-type]

    def test_invalid_level(self) -> None:
        """Test invalid logging level raises error."""
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")  # type: ignore[arg-type]
