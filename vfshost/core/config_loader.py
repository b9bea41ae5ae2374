"""
vfshost Configuration Loader

Configuration management for a session:
- JSON configuration file loading
- Configuration validation
- Default value handling
- Runtime configuration updates

Author: YSNRFD
Version: 1.0.0
"""

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

from vfshost.exceptions import ConfigValidationError


@dataclass
class HostConfig:
    """Settings of the synchronous system facade."""
    cwd: str = "/"
    new_line: str = "\n"
    case_sensitive: bool = True
    encoding: str = "utf-8"
    raise_on_exit: bool = True


@dataclass
class RegistryConfig:
    """Public package mirror settings."""
    base_url: str = "https://cdn.jsdelivr.net/npm"
    timeout: Optional[float] = None  # None: transport default


@dataclass
class LibraryConfig:
    """Default-library bootstrap settings."""
    cdn_url: str = "https://cdn.jsdelivr.net/npm/typescript/lib"
    directory: str = "libs/"


@dataclass
class ResolutionConfig:
    """Shallow module-resolution policy settings."""
    modules_dir: str = "node_modules"
    entry_file_name: str = "index.d.ts"
    extension: str = ".ts"
    package_version: str = "0.0.0-alpha5"


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    log_file: Optional[str] = None
    console_output: bool = False
    buffer_size: int = 1000


@dataclass
class Config:
    """
    Main configuration container.

    Holds every setting a Session needs. Sessions receive a Config
    explicitly; nothing reads configuration from global state.
    """
    host: HostConfig = field(default_factory=HostConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    libraries: LibraryConfig = field(default_factory=LibraryConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    'host': HostConfig,
    'registry': RegistryConfig,
    'libraries': LibraryConfig,
    'resolution': ResolutionConfig,
    'logging': LoggingConfig,
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigLoader:
    """
    Configuration loader and manager.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load('vfshost.json')
        >>> config.host.cwd
        '/'
    """

    def __init__(self, config: Optional[Config] = None):
        self._config = config or Config()

    @property
    def config(self) -> Config:
        """Get the current configuration."""
        return self._config

    def load(self, config_path: str) -> Config:
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded settings

        Raises:
            ConfigValidationError: If the file cannot be loaded, parsed or validated
        """
        path = Path(config_path)

        if not path.exists():
            raise ConfigValidationError(f"Configuration file not found: {config_path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid JSON in configuration file: {e}") from e
        except OSError as e:
            raise ConfigValidationError(f"Cannot read configuration file: {e}") from e

        return self.load_dict(data)

    def load_dict(self, data: dict[str, Any]) -> Config:
        """Build and validate a Config from a plain dictionary."""
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration root must be an object")

        self._config = self._parse_config(data)
        self.validate(self._config)
        return self._config

    def _parse_config(self, data: dict[str, Any]) -> Config:
        """Parse configuration data into a Config object."""
        config = Config()

        for section_name, section_data in data.items():
            section_cls = _SECTIONS.get(section_name)
            if section_cls is None:
                raise ConfigValidationError(
                    f"Unknown configuration section: {section_name}", key=section_name
                )
            if not isinstance(section_data, dict):
                raise ConfigValidationError(
                    f"Section {section_name} must be an object", key=section_name
                )

            known = {f.name for f in fields(section_cls)}
            unknown = set(section_data) - known
            if unknown:
                key = f"{section_name}.{sorted(unknown)[0]}"
                raise ConfigValidationError(f"Invalid configuration key: {key}", key=key)

            current = getattr(config, section_name)
            setattr(config, section_name, replace(current, **section_data))

        return config

    @staticmethod
    def validate(config: Config) -> None:
        """
        Check cross-field constraints.

        Raises:
            ConfigValidationError: On the first violated constraint
        """
        host = config.host
        if not host.cwd.startswith('/') or not host.cwd.endswith('/'):
            raise ConfigValidationError(
                "host.cwd must be absolute and end with '/'", key="host.cwd"
            )
        if host.new_line not in ("\n", "\r\n"):
            raise ConfigValidationError("host.new_line must be LF or CRLF", key="host.new_line")

        for key, url in (("registry.base_url", config.registry.base_url),
                         ("libraries.cdn_url", config.libraries.cdn_url)):
            if not url.startswith(("http://", "https://")):
                raise ConfigValidationError(f"{key} must be an http(s) URL", key=key)

        if config.registry.timeout is not None and config.registry.timeout <= 0:
            raise ConfigValidationError("registry.timeout must be positive", key="registry.timeout")

        if not config.libraries.directory.endswith('/') or config.libraries.directory.startswith('/'):
            raise ConfigValidationError(
                "libraries.directory must be relative and end with '/'",
                key="libraries.directory"
            )

        if config.logging.level.upper() not in _LOG_LEVELS:
            raise ConfigValidationError(
                f"Unknown log level: {config.logging.level}", key="logging.level"
            )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., 'registry.base_url')
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

        The updated configuration is re-validated; on failure the
        previous value is restored and the error is raised.
        """
        parts = key.split('.')
        obj: Any = self._config

        for part in parts[:-1]:
            if hasattr(obj, part):
                obj = getattr(obj, part)
            else:
                raise ConfigValidationError(f"Invalid configuration key: {key}", key=key)

        final_key = parts[-1]
        if len(parts) < 2 or not hasattr(obj, final_key):
            raise ConfigValidationError(f"Invalid configuration key: {key}", key=key)

        previous = getattr(obj, final_key)
        setattr(obj, final_key, value)
        try:
            self.validate(self._config)
        except ConfigValidationError:
            setattr(obj, final_key, previous)
            raise

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            name: {f.name: getattr(getattr(self._config, name), f.name)
                   for f in fields(section_cls)}
            for name, section_cls in _SECTIONS.items()
        }
