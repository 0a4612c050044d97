"""
Configuration management for Baby Sleep Tracker

Handles auto-configuration with sensible defaults and environment detection.
Values come from ``data/config.json`` and are overridden by ``BABYSLEEP_*``
environment variables.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict
import logging

from .core.enums import StoreBackend


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///baby_sleep_tracker.db"
    echo: bool = False
    pool_pre_ping: bool = True


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    auto_reload: bool = False
    workers: int = 1


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Baby Sleep Tracker"
    version: str = "1.0.0"
    description: str = "Nap and night-sleep log with timeline reconstruction"

    # Paths (will be set automatically)
    data_dir: Optional[str] = None
    user_data_dir: Optional[str] = None

    # Entry Store
    store_backend: str = StoreBackend.SQLALCHEMY.value
    write_timeout_seconds: float = 10.0  # Writes surface failure instead of hanging

    # Features
    enable_cors: bool = True
    cors_origins: Optional[List[str]] = None

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"  # Directory for log files

    # Environment
    is_development: bool = False


@dataclass
class SleepTrackerConfig:
    """Complete configuration for Baby Sleep Tracker."""

    app: AppConfig
    server: ServerConfig
    database: DatabaseConfig

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "app": asdict(self.app),
            "server": asdict(self.server),
            "database": asdict(self.database),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SleepTrackerConfig":
        """Create from dictionary."""
        return cls(
            app=AppConfig(**data.get("app", {})),
            server=ServerConfig(**data.get("server", {})),
            database=DatabaseConfig(**data.get("database", {})),
        )


class ConfigManager:
    """Manages configuration loading, saving, and auto-detection."""

    def __init__(self):
        self.config_file: Optional[Path] = None
        self.config: Optional[SleepTrackerConfig] = None

    def detect_environment(self) -> Dict[str, Any]:
        """Detect the current environment and return environment info."""
        env_info: Dict[str, Any] = {}

        env_info["is_development"] = _env_flag("BABYSLEEP_DEV_MODE")
        env_info["data_dir"] = os.getenv("BABYSLEEP_DATA_DIR")
        env_info["user_data_dir"] = os.getenv("BABYSLEEP_USER_DATA_DIR")
        env_info["debug"] = _env_flag("BABYSLEEP_DEBUG")

        return env_info

    def _apply_env_overrides(self, config: SleepTrackerConfig) -> SleepTrackerConfig:
        """Apply BABYSLEEP_* environment variables on top of loaded values."""
        db_url = os.getenv("BABYSLEEP_DATABASE_URL")
        if db_url:
            config.database.url = db_url

        backend = os.getenv("BABYSLEEP_STORE_BACKEND")
        if backend:
            # Raises ValueError on an unknown backend name
            config.app.store_backend = StoreBackend(backend.lower()).value

        if os.getenv("BABYSLEEP_LOG_TO_FILE") is not None:
            config.app.log_to_file = _env_flag("BABYSLEEP_LOG_TO_FILE")

        timeout = os.getenv("BABYSLEEP_WRITE_TIMEOUT")
        if timeout:
            config.app.write_timeout_seconds = float(timeout)

        if _env_flag("BABYSLEEP_DEBUG"):
            config.server.debug = True
            config.app.log_level = "DEBUG"

        return config

    def get_config_file_path(self) -> Path:
        """Get the path for the config file."""
        user_data_dir = os.getenv("BABYSLEEP_USER_DATA_DIR")
        if user_data_dir:
            config_dir = Path(user_data_dir)
        else:
            config_dir = Path.cwd() / "data"

        return config_dir / "config.json"

    def create_default_config(self) -> SleepTrackerConfig:
        """Create default configuration with auto-detected values."""
        env_info = self.detect_environment()

        config = SleepTrackerConfig(
            app=AppConfig(
                data_dir=env_info.get("data_dir"),
                user_data_dir=env_info.get("user_data_dir"),
                is_development=env_info["is_development"],
                log_level="DEBUG" if env_info["debug"] else "INFO",
            ),
            server=ServerConfig(
                debug=env_info["debug"], auto_reload=env_info["is_development"]
            ),
            database=DatabaseConfig(),
        )

        if env_info.get("user_data_dir"):
            db_path = Path(env_info["user_data_dir"]) / "baby_sleep_tracker.db"
            config.database.url = f"sqlite:///{db_path}"

        return self._apply_env_overrides(config)

    def load_config(self) -> SleepTrackerConfig:
        """Load configuration from file or create default."""
        self.config_file = self.get_config_file_path()

        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    data = json.load(f)

                env_info = self.detect_environment()
                data.setdefault("app", {}).update(
                    {
                        "data_dir": env_info.get("data_dir"),
                        "user_data_dir": env_info.get("user_data_dir"),
                        "is_development": env_info["is_development"],
                    }
                )

                self.config = self._apply_env_overrides(
                    SleepTrackerConfig.from_dict(data)
                )
                logging.debug(f"Loaded configuration from {self.config_file}")

            except (OSError, ValueError, TypeError) as e:
                logging.warning(f"Failed to load config from {self.config_file}: {e}")
                logging.info("Creating default configuration")
                self.config = self.create_default_config()
        else:
            self.config = self.create_default_config()

        return self.config

    def save_config(self, config: Optional[SleepTrackerConfig] = None) -> bool:
        """Save configuration to file."""
        if config is None:
            config = self.config

        if config is None:
            logging.error("No configuration to save")
            return False

        try:
            if self.config_file is None:
                self.config_file = self.get_config_file_path()

            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)

            logging.info(f"Saved configuration to {self.config_file}")
            return True

        except OSError as e:
            logging.error(f"Failed to save config to {self.config_file}: {e}")
            return False

    def update_config(self, updates: Dict[str, Any]) -> bool:
        """Update configuration with new values."""
        if self.config is None:
            self.load_config()

        try:
            config_dict = self.config.to_dict()

            for key, value in updates.items():
                if "." in key:
                    # Handle nested keys like "server.port"
                    section, field = key.split(".", 1)
                    if section in config_dict:
                        config_dict[section][field] = value
                elif key in config_dict and isinstance(value, dict):
                    config_dict[key].update(value)

            self.config = SleepTrackerConfig.from_dict(config_dict)
            return self.save_config()

        except TypeError as e:
            logging.error(f"Failed to update configuration: {e}")
            return False

    def get_database_url(self) -> str:
        """Get the database URL."""
        if self.config is None:
            self.load_config()
        return self.config.database.url

    def get_store_backend(self) -> StoreBackend:
        """Get the configured Entry Store backend."""
        if self.config is None:
            self.load_config()
        return StoreBackend(self.config.app.store_backend)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of warnings/errors."""
        if self.config is None:
            self.load_config()

        issues = []

        try:
            StoreBackend(self.config.app.store_backend)
        except ValueError:
            issues.append(f"Unknown store backend: {self.config.app.store_backend}")

        if self.config.app.write_timeout_seconds <= 0:
            issues.append("write_timeout_seconds must be positive")

        db_url = self.config.database.url
        if db_url.startswith("sqlite:///"):
            db_path = Path(db_url.replace("sqlite:///", ""))
            db_dir = db_path.parent
            if not db_dir.exists():
                issues.append(f"Database directory does not exist: {db_dir}")
            elif not os.access(db_dir, os.W_OK):
                issues.append(f"Database directory is not writable: {db_dir}")

        return issues


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> SleepTrackerConfig:
    """Get the current configuration."""
    return config_manager.load_config()


def get_database_url() -> str:
    """Get the database URL."""
    return config_manager.get_database_url()


def get_store_backend() -> StoreBackend:
    """Get the configured Entry Store backend."""
    return config_manager.get_store_backend()
