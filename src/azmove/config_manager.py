"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores operator defaults like resource group, region and backup vault so
they do not have to be repeated on every migration.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
"""

import logging
import os
import tempfile
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from azmove.errors import ConfigError

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for older Python versions
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

logger = logging.getLogger(__name__)


@dataclass
class MoveConfig:
    """azmove configuration data."""

    default_resource_group: str | None = None
    default_region: str | None = None
    default_vault: str | None = None
    backup_retention_days: int = 7

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # Filter out None values as TOML doesn't support them
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MoveConfig":
        """Create from dictionary."""
        retention = data.get("backup_retention_days", 7)
        try:
            retention = int(retention)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"backup_retention_days must be an integer, got {retention!r}") from e
        if retention <= 0:
            raise ConfigError("backup_retention_days must be positive")

        return cls(
            default_resource_group=data.get("default_resource_group"),
            default_region=data.get("default_region"),
            default_vault=data.get("default_vault"),
            backup_retention_days=retention,
        )

    @classmethod
    def keys(cls) -> list[str]:
        return [f.name for f in fields(cls)]


class ConfigManager:
    """Manage azmove configuration file.

    Configuration is stored at ~/.azmove/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".azmove"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Ensure a custom config path is within an allowed directory.

        Allowed: ~/.azmove/, the current working directory and the system
        temporary directory.

        Raises:
            ConfigError: If path is outside allowed directories
        """
        resolved_path = path.resolve()
        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]

        for allowed_dir in allowed_dirs:
            try:
                resolved_path.relative_to(allowed_dir)
                return resolved_path
            except ValueError:
                continue

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}\n"
            f"  - {tempfile.gettempdir()}"
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Raises:
            ConfigError: If a custom path is invalid or does not exist
        """
        if custom_path:
            path = cls._validate_config_path(Path(custom_path).expanduser())
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> MoveConfig:
        """Load configuration from file.

        A missing default config file yields defaults.

        Raises:
            ConfigError: If loading fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return MoveConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]
        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

        logger.debug(f"Loaded config from: {config_path}")
        return MoveConfig.from_dict(data)

    @classmethod
    def save_config(cls, config: MoveConfig, custom_path: str | None = None) -> Path:
        """Save configuration atomically, preserving comments in an existing file.

        Returns:
            Path written

        Raises:
            ConfigError: If saving fails or path is outside allowed directories
        """
        temp_path: Path | None = None
        try:
            if custom_path:
                config_path = cls._validate_config_path(Path(custom_path).expanduser())
                config_path.parent.mkdir(parents=True, exist_ok=True)
            else:
                cls.DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
                os.chmod(cls.DEFAULT_CONFIG_DIR, 0o700)
                config_path = cls.DEFAULT_CONFIG_FILE

            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            for key in MoveConfig.keys():
                if key in doc:
                    del doc[key]
            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except ConfigError:
            raise
        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def update_config(cls, custom_path: str | None = None, **updates: Any) -> MoveConfig:
        """Update configuration values.

        Raises:
            ConfigError: On unknown keys, invalid values or I/O failure
        """
        config = cls.load_config(custom_path) if cls._exists(custom_path) else MoveConfig()

        for key, value in updates.items():
            if key not in MoveConfig.keys():
                raise ConfigError(
                    f"Unknown config key: {key}. Valid keys: {', '.join(MoveConfig.keys())}"
                )
            setattr(config, key, value)

        # Round-trip through from_dict to validate values
        config = MoveConfig.from_dict(asdict(config))
        cls.save_config(config, custom_path)
        return config

    @classmethod
    def _exists(cls, custom_path: str | None) -> bool:
        if custom_path:
            return Path(custom_path).expanduser().exists()
        return cls.DEFAULT_CONFIG_FILE.exists()


__all__ = ["ConfigManager", "MoveConfig"]
