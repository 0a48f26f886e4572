"""
Configuration Management - YAML-based settings with environment overrides
=========================================================================

This module handles all configuration aspects including:
- Loading settings from a YAML file
- Environment variable overrides
- Default values
- Settings validation
- Re-reading on reload
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass, field, asdict

from .exceptions import ConfigError
from .logging import get_logger

logger = get_logger("config")

SETTINGS_FILENAME = "settings.yaml"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class BridgeConfig:
    """
    HTTP bridge configuration.

    The bridge is an external relay that speaks the voice server
    protocol. It posts incoming events to this bot and accepts
    replies on ``url``.
    """
    url: str = "http://127.0.0.1:9987"
    host: str = "127.0.0.1"
    port: int = 8080
    timeout: float = 10.0
    headers: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        if not isinstance(self.url, str) or not self.url:
            raise ConfigError(f"bridge url must be a non-empty string, got {self.url!r}")
        if not isinstance(self.host, str):
            raise ConfigError(f"bridge host must be a string, got {self.host!r}")
        if not _is_int(self.port) or self.port < 1 or self.port > 65535:
            raise ConfigError(f"Invalid bridge port: {self.port!r}")
        if not _is_number(self.timeout) or self.timeout <= 0:
            raise ConfigError(f"bridge timeout must be a positive number, got {self.timeout!r}")
        if not isinstance(self.headers, dict):
            raise ConfigError("bridge headers must be a mapping")


@dataclass
class LoggingConfig:
    """Log output configuration."""
    level: str = "INFO"
    log_dir: str = ""
    json_format: bool = False

    def validate(self) -> None:
        if not isinstance(self.level, str):
            raise ConfigError(f"logging level must be a string, got {self.level!r}")
        if not isinstance(self.log_dir, str):
            raise ConfigError(f"logging log_dir must be a string, got {self.log_dir!r}")


@dataclass
class Settings:
    """
    Main settings container.

    Mirrors the settings document: connection details, the rate
    limit, the builtin command prefix, the dynamic action file and
    the statically configured actions.
    """
    # Connection
    address: str = "localhost"
    channel: Optional[Union[int, str]] = None
    name: str = "SimpleBot"
    disconnect_message: str = "Disconnecting"
    key_file: str = "private.key"

    # Behaviour
    rate_limit: int = 2
    rate_limit_window: float = 1.0
    prefix: str = "."
    dynamic_actions: str = "dynamic.yaml"

    # Action file content: ``include`` and ``on_message``
    actions: Dict[str, Any] = field(default_factory=dict)

    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Paths (set at runtime)
    settings_path: str = ""
    base_dir: str = ""

    def validate(self) -> None:
        """
        Validate all settings.

        Raises:
            ConfigError: If any value is invalid
        """
        for key in ("address", "name", "disconnect_message", "prefix", "dynamic_actions", "key_file"):
            if not isinstance(getattr(self, key), str):
                raise ConfigError(f"{key} must be a string, got {getattr(self, key)!r}")
        if not _is_int(self.rate_limit) or self.rate_limit < 1:
            raise ConfigError(f"rate_limit must be at least 1, got {self.rate_limit!r}")
        if not _is_number(self.rate_limit_window) or self.rate_limit_window <= 0:
            raise ConfigError(f"rate_limit_window must be positive, got {self.rate_limit_window!r}")
        if not self.prefix:
            raise ConfigError("prefix cannot be empty")
        if not isinstance(self.actions, dict):
            raise ConfigError("actions must be a mapping with include and on_message")
        if self.channel is not None and not isinstance(self.channel, (int, str)):
            raise ConfigError(f"channel must be an id or a name, got {self.channel!r}")
        self.bridge.validate()
        self.logging.validate()

    def resolve_path(self, path: str) -> Path:
        """Resolve a path from the settings relative to the settings directory."""
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return Path(self.base_dir or ".") / candidate

    @property
    def dynamic_actions_path(self) -> Path:
        return self.resolve_path(self.dynamic_actions)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a dictionary suitable for the YAML file."""
        return {
            "address": self.address,
            "channel": self.channel,
            "name": self.name,
            "disconnect_message": self.disconnect_message,
            "key_file": self.key_file,
            "rate_limit": self.rate_limit,
            "rate_limit_window": self.rate_limit_window,
            "prefix": self.prefix,
            "dynamic_actions": self.dynamic_actions,
            "bridge": asdict(self.bridge),
            "logging": asdict(self.logging),
            "actions": self.actions,
        }


def get_default_config_dir() -> Path:
    """
    Get the default configuration directory path.

    Returns:
        Path to the configuration directory
    """
    if "SIMPLE_BOT_CONFIG_DIR" in os.environ:
        return Path(os.environ["SIMPLE_BOT_CONFIG_DIR"])

    if "XDG_CONFIG_HOME" in os.environ:
        return Path(os.environ["XDG_CONFIG_HOME"]) / "simple-bot"

    return Path.home() / ".config" / "simple-bot"


def get_default_settings_path() -> Path:
    return get_default_config_dir() / SETTINGS_FILENAME


def load_settings(settings_path: Optional[str] = None, load_env: bool = True) -> Settings:
    """
    Load settings from a YAML file with environment variable overrides.

    Settings are built in the following order:
    1. Default values from the dataclass
    2. Values from the YAML file
    3. Environment variable overrides

    A missing or unreadable file is only a soft error: the defaults are
    used and a warning is logged.

    Args:
        settings_path: Path to the settings file (optional)
        load_env: Whether to apply environment variable overrides

    Returns:
        Settings object with loaded values

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values
    """
    path = Path(settings_path) if settings_path else get_default_settings_path()

    settings = Settings()
    settings.settings_path = str(path)
    settings.base_dir = str(path.parent)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Settings file {path} not found, using defaults")
        data = {}
    except OSError as e:
        logger.warning(f"Failed to read settings, using defaults: {e}")
        data = {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse settings: {e}", {"path": str(path)})
    except UnicodeDecodeError as e:
        raise ConfigError(f"Settings file is not valid UTF-8: {e}", {"path": str(path)})

    if not isinstance(data, dict):
        raise ConfigError("Settings file must contain a mapping", {"path": str(path)})

    _apply_yaml_config(settings, data)

    if load_env:
        _apply_env_overrides(settings)

    settings.validate()

    return settings


def _apply_yaml_config(settings: Settings, yaml_config: Dict[str, Any]) -> None:
    """
    Apply YAML values to a Settings object.

    Unknown keys are ignored.

    Args:
        settings: Settings object to update
        yaml_config: Dictionary of values from YAML
    """
    for key in (
        "address", "channel", "name", "disconnect_message", "key_file",
        "rate_limit", "rate_limit_window", "prefix", "dynamic_actions",
    ):
        if key in yaml_config:
            setattr(settings, key, yaml_config[key])

    if "actions" in yaml_config:
        settings.actions = yaml_config["actions"] or {}

    if "bridge" in yaml_config:
        section = yaml_config["bridge"] or {}
        if not isinstance(section, dict):
            raise ConfigError("bridge must be a mapping")
        for key, value in section.items():
            if hasattr(settings.bridge, key):
                setattr(settings.bridge, key, value)

    if "logging" in yaml_config:
        section = yaml_config["logging"] or {}
        if not isinstance(section, dict):
            raise ConfigError("logging must be a mapping")
        for key, value in section.items():
            if hasattr(settings.logging, key):
                setattr(settings.logging, key, value)


def _apply_env_overrides(settings: Settings) -> None:
    """
    Apply environment variable overrides to a Settings object.

    Environment variables follow the pattern SIMPLE_BOT_[SECTION_]KEY,
    for example SIMPLE_BOT_PREFIX or SIMPLE_BOT_BRIDGE_URL.

    Args:
        settings: Settings object to update
    """
    env_mappings = {
        "SIMPLE_BOT_ADDRESS": (None, "address"),
        "SIMPLE_BOT_NAME": (None, "name"),
        "SIMPLE_BOT_PREFIX": (None, "prefix"),
        "SIMPLE_BOT_RATE_LIMIT": (None, "rate_limit", int),
        "SIMPLE_BOT_RATE_LIMIT_WINDOW": (None, "rate_limit_window", float),
        "SIMPLE_BOT_DYNAMIC_ACTIONS": (None, "dynamic_actions"),

        "SIMPLE_BOT_BRIDGE_URL": ("bridge", "url"),
        "SIMPLE_BOT_BRIDGE_HOST": ("bridge", "host"),
        "SIMPLE_BOT_BRIDGE_PORT": ("bridge", "port", int),

        "SIMPLE_BOT_LOG_LEVEL": ("logging", "level"),
        "SIMPLE_BOT_LOG_DIR": ("logging", "log_dir"),
    }

    for env_var, mapping in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        section, key = mapping[0], mapping[1]
        converter = mapping[2] if len(mapping) > 2 else str
        target = getattr(settings, section) if section else settings

        try:
            converted = converter(value)
        except ValueError:
            raise ConfigError(f"Invalid value for {env_var}: {value!r}")

        setattr(target, key, converted)


def save_settings(settings: Settings, settings_path: Optional[str] = None) -> None:
    """
    Save settings to a YAML file.

    Args:
        settings: Settings object to save
        settings_path: Target path (defaults to ``settings.settings_path``)

    Raises:
        ConfigError: If the file cannot be written
    """
    path = Path(settings_path or settings.settings_path or get_default_settings_path())
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Failed to save settings: {e}", {"path": str(path)})


def create_default_settings(config_dir: Optional[str] = None) -> Settings:
    """
    Create a starter settings file with a couple of example actions.

    Args:
        config_dir: Directory to create the file in (optional)

    Returns:
        Settings object that was written
    """
    directory = Path(config_dir) if config_dir else get_default_config_dir()
    directory.mkdir(parents=True, exist_ok=True)

    settings = Settings()
    settings.settings_path = str(directory / SETTINGS_FILENAME)
    settings.base_dir = str(directory)
    settings.actions = {
        "include": [],
        "on_message": [
            {"contains": "hello", "response": "Hi!"},
            {"chat": "poke", "response": "Please write me a message instead."},
        ],
    }

    save_settings(settings)
    return settings
