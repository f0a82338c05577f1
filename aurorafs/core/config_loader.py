"""
AuroraFS Configuration Loader

Configuration management for the filesystem core:
- JSON configuration file loading
- Default value handling
- Runtime configuration updates
- Type-safe access to configuration values

Author: YSNRFD
Version: 1.0.0
"""

import json
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, List

from aurorafs.exceptions import BootFailureError, ConfigValidationError


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / 'config.json'


@dataclass
class SystemConfig:
    """Identification of the simulated system."""
    name: str = "Aurora OS"
    version: str = "1.0.0"
    schema_version: int = 2


@dataclass
class FilesystemConfig:
    """Filesystem and persistence settings."""
    storage_key: str = "aurora-filesystem"
    users_storage_key: str = "aurora-users"
    groups_storage_key: str = "aurora-groups"
    version_storage_key: str = "aurora-version"
    persist_delay: float = 1.0  # seconds of quiet before a save
    trash_dir: str = ".Trash"


@dataclass
class UsersConfig:
    """User management settings."""
    home_prefix: str = "/home"
    default_shell: str = "/bin/bash"
    uid_floor: int = 1000
    gid_floor: int = 100
    default_user: str = "user"
    protected_users: List[str] = field(default_factory=lambda: ["root", "user"])
    protected_groups: List[str] = field(default_factory=lambda: ["root", "users", "admin"])


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    log_file: Optional[str] = None
    console_output: bool = True
    use_colors: bool = True


@dataclass
class IntegrityConfig:
    """Identity markers checked once per load."""
    expected_name: str = "aurorafs"
    expected_author: str = "YSNRFD"
    expected_license: str = "AGPL-3.0"
    # sha256 of the developer override phrase
    override_key_hash: str = "265f5974313a8b2314b2b92eefb4ef5342be969f87d01709fbd491422a42206d"
    override_storage_key: str = "aurora-dev-override"


@dataclass
class Config:
    """
    Main configuration container.

    Holds all configuration settings for the filesystem core.
    """
    system: SystemConfig = field(default_factory=SystemConfig)
    filesystem: FilesystemConfig = field(default_factory=FilesystemConfig)
    users: UsersConfig = field(default_factory=UsersConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    integrity: IntegrityConfig = field(default_factory=IntegrityConfig)


class ConfigLoader:
    """
    Configuration loader and manager.

    Handles loading configuration from JSON files and providing
    runtime configuration access.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load('config.json')
        >>> print(config.users.home_prefix)
        /home
    """

    _instance: Optional['ConfigLoader'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'ConfigLoader':
        """Singleton pattern for configuration access."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._config = Config()
                cls._instance._loaded = False
            return cls._instance

    def load(self, config_path: str) -> Config:
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded settings

        Raises:
            BootFailureError: If the file cannot be loaded or parsed
        """
        path = Path(config_path)

        if not path.exists():
            raise BootFailureError(
                f"Configuration file not found: {config_path}",
                stage="config"
            )

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise BootFailureError(
                f"Invalid JSON in configuration file: {e}",
                stage="config"
            )
        except OSError as e:
            raise BootFailureError(
                f"Cannot read configuration file: {e}",
                stage="config"
            )

        self._config = self._parse_config(data)
        self._loaded = True
        return self._config

    def _parse_config(self, data: dict[str, Any]) -> Config:
        """Parse configuration data into Config object."""
        config = Config()

        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration root must be an object")

        for section in fields(Config):
            if section.name not in data:
                continue
            section_data = data[section.name]
            if not isinstance(section_data, dict):
                raise ConfigValidationError(
                    f"Section '{section.name}' must be an object",
                    key=section.name
                )
            current = getattr(config, section.name)
            known = {f.name for f in fields(current)}
            unknown = set(section_data) - known
            if unknown:
                raise ConfigValidationError(
                    f"Unknown keys in section '{section.name}': {sorted(unknown)}",
                    key=section.name
                )
            values = {name: section_data.get(name, getattr(current, name)) for name in known}
            setattr(config, section.name, type(current)(**values))

        return config

    @property
    def config(self) -> Config:
        """Get the current configuration."""
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., 'users.home_prefix')
            default: Default value if key not found
        """
        obj: Any = self._config
        for part in key.split('.'):
            if hasattr(obj, part):
                obj = getattr(obj, part)
            else:
                return default
        return obj

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value at runtime.

        Note:
            This modifies configuration at runtime but does not
            persist changes to disk.
        """
        parts = key.split('.')
        obj: Any = self._config

        for part in parts[:-1]:
            if hasattr(obj, part):
                obj = getattr(obj, part)
            else:
                raise ConfigValidationError(f"Invalid configuration key: {key}", key=key)

        final_key = parts[-1]
        if hasattr(obj, final_key):
            setattr(obj, final_key, value)
        else:
            raise ConfigValidationError(f"Invalid configuration key: {key}", key=key)

    def reset(self) -> None:
        """Drop any loaded configuration and return to defaults."""
        self._config = Config()
        self._loaded = False

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        def dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, '__dataclass_fields__'):
                return {
                    k: dataclass_to_dict(v)
                    for k, v in obj.__dict__.items()
                }
            elif isinstance(obj, list):
                return [dataclass_to_dict(item) for item in obj]
            return obj

        return dataclass_to_dict(self._config)


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Config object with current settings
    """
    return ConfigLoader().config
