"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".mealtrack"


def _default_db_path() -> Path:
    """Return the default database path."""
    return _default_config_dir() / "mealtrack.db"


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: Path = field(default_factory=_default_db_path)


@dataclass
class StoreConfig:
    """Store access behaviour."""

    busy_timeout_seconds: float = 5.0  # sqlite lock wait per connection
    read_retries: int = 3
    retry_backoff_seconds: float = 0.2


@dataclass
class TrackingConfig:
    """Consumption tracking options."""

    strict_units: bool = False  # reject consumed units that differ from planned


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class DefaultsConfig:
    """Default values for various operations."""

    user_id: int = 1
    output_format: str = "table"  # "table", "json", "markdown"


@dataclass
class Settings:
    """Main application settings."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.mealtrack/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        if "database" in data:
            db_data = data["database"] or {}
            if "path" in db_data:
                settings.database.path = Path(db_data["path"]).expanduser()

        if "store" in data:
            store_data = data["store"] or {}
            if "busy_timeout_seconds" in store_data:
                settings.store.busy_timeout_seconds = float(
                    store_data["busy_timeout_seconds"]
                )
            if "read_retries" in store_data:
                settings.store.read_retries = int(store_data["read_retries"])
            if "retry_backoff_seconds" in store_data:
                settings.store.retry_backoff_seconds = float(
                    store_data["retry_backoff_seconds"]
                )

        if "tracking" in data:
            tracking_data = data["tracking"] or {}
            if "strict_units" in tracking_data:
                settings.tracking.strict_units = bool(tracking_data["strict_units"])

        if "logging" in data:
            logging_data = data["logging"] or {}
            if "level" in logging_data:
                settings.logging.level = str(logging_data["level"]).upper()

        if "defaults" in data:
            def_data = data["defaults"] or {}
            if "user_id" in def_data:
                settings.defaults.user_id = int(def_data["user_id"])
            if "output_format" in def_data:
                settings.defaults.output_format = def_data["output_format"]

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.mealtrack/config.yaml
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "database": {
                "path": str(self.database.path),
            },
            "store": {
                "busy_timeout_seconds": self.store.busy_timeout_seconds,
                "read_retries": self.store.read_retries,
                "retry_backoff_seconds": self.store.retry_backoff_seconds,
            },
            "tracking": {
                "strict_units": self.tracking.strict_units,
            },
            "logging": {
                "level": self.logging.level,
            },
            "defaults": {
                "user_id": self.defaults.user_id,
                "output_format": self.defaults.output_format,
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load()
    return _settings
