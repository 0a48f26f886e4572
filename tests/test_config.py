"""
Test Configuration Module
========================

Unit tests for settings loading and validation.
"""

import pytest
from pathlib import Path

# Add parent directory to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import (
    BridgeConfig, Settings, create_default_settings, get_default_config_dir,
    load_settings, save_settings
)
from core.exceptions import ConfigError


class TestBridgeConfig:
    """Tests for BridgeConfig."""

    def test_default_values(self):
        """Test default configuration values."""
        config = BridgeConfig()
        assert config.url == "http://127.0.0.1:9987"
        assert config.port == 8080

    def test_validation_invalid_port(self):
        """Test invalid port raises error."""
        config = BridgeConfig(port=70000)
        with pytest.raises(ConfigError):
            config.validate()


class TestSettings:
    """Tests for main Settings class."""

    def test_default_values(self):
        """Test default configuration values."""
        settings = Settings()
        assert settings.address == "localhost"
        assert settings.name == "SimpleBot"
        assert settings.disconnect_message == "Disconnecting"
        assert settings.rate_limit == 2
        assert settings.rate_limit_window == 1.0
        assert settings.prefix == "."
        assert settings.dynamic_actions == "dynamic.yaml"

    def test_validation_valid(self):
        Settings().validate()  # Should not raise

    def test_validation_invalid_rate_limit(self):
        with pytest.raises(ConfigError):
            Settings(rate_limit=0).validate()

    def test_validation_invalid_window(self):
        with pytest.raises(ConfigError):
            Settings(rate_limit_window=0).validate()

    def test_validation_empty_prefix(self):
        with pytest.raises(ConfigError):
            Settings(prefix="").validate()

    def test_relative_paths(self, tmp_path):
        """Test relative paths resolve against the settings directory."""
        settings = Settings(base_dir=str(tmp_path))
        assert settings.dynamic_actions_path == tmp_path / "dynamic.yaml"
        assert settings.resolve_path("/abs/key") == Path("/abs/key")

    def test_to_dict(self):
        d = Settings().to_dict()
        assert "prefix" in d
        assert "bridge" in d
        assert "actions" in d


class TestLoadSettings:
    """Tests for loading settings files."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test a missing file is not an error."""
        settings = load_settings(str(tmp_path / "missing.yaml"), load_env=False)
        assert settings.name == "SimpleBot"
        assert settings.base_dir == str(tmp_path)

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "name: Helper\n"
            "prefix: '!'\n"
            "rate_limit: 5\n"
            "unknown_key: ignored\n"
            "bridge:\n"
            "  port: 9000\n"
            "actions:\n"
            "  on_message:\n"
            "    - contains: hi\n"
            "      response: hello\n",
            encoding="utf-8"
        )

        settings = load_settings(str(path), load_env=False)
        assert settings.name == "Helper"
        assert settings.prefix == "!"
        assert settings.rate_limit == 5
        assert settings.bridge.port == 9000
        assert settings.actions["on_message"][0]["response"] == "hello"

    def test_parse_error(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("name: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_settings(str(path), load_env=False)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_settings(str(path), load_env=False)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("rate_limit: 0\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_settings(str(path), load_env=False)

    def test_env_overrides(self, tmp_path, monkeypatch):
        """Test environment variables win over the file."""
        path = tmp_path / "settings.yaml"
        path.write_text("prefix: '!'\n", encoding="utf-8")
        monkeypatch.setenv("SIMPLE_BOT_PREFIX", "#")
        monkeypatch.setenv("SIMPLE_BOT_RATE_LIMIT", "4")
        monkeypatch.setenv("SIMPLE_BOT_BRIDGE_URL", "http://relay:1234")

        settings = load_settings(str(path))
        assert settings.prefix == "#"
        assert settings.rate_limit == 4
        assert settings.bridge.url == "http://relay:1234"

    def test_invalid_env_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SIMPLE_BOT_RATE_LIMIT", "lots")
        with pytest.raises(ConfigError):
            load_settings(str(tmp_path / "settings.yaml"))

    def test_default_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SIMPLE_BOT_CONFIG_DIR", str(tmp_path))
        assert get_default_config_dir() == tmp_path


class TestSaveSettings:
    """Tests for writing settings files."""

    def test_save_and_load(self, tmp_path):
        settings = Settings(name="Saved", prefix="~")
        path = tmp_path / "out" / "settings.yaml"
        save_settings(settings, str(path))

        loaded = load_settings(str(path), load_env=False)
        assert loaded.name == "Saved"
        assert loaded.prefix == "~"

    def test_create_default_settings(self, tmp_path):
        """Test the starter file holds example actions."""
        created = create_default_settings(str(tmp_path))
        loaded = load_settings(created.settings_path, load_env=False)
        assert len(loaded.actions["on_message"]) == 2


class TestValueTypes:
    """Tests for settings values of the wrong type."""

    @pytest.mark.parametrize("content", [
        "prefix: 5\n",
        "dynamic_actions: [a, b]\n",
        "key_file: 12\n",
        "rate_limit: true\n",
        "rate_limit_window: fast\n",
        "bridge:\n  port: '80'\n",
        "bridge:\n  timeout: soon\n",
        "bridge:\n  url: 8\n",
        "logging:\n  level: 10\n",
    ])
    def test_wrong_type_is_config_error(self, tmp_path, content):
        """Test type errors surface as ConfigError."""
        path = tmp_path / "settings.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError):
            load_settings(str(path), load_env=False)

    def test_non_utf8_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_bytes(b"name: caf\xe9\n")
        with pytest.raises(ConfigError):
            load_settings(str(path), load_env=False)
