"""Configuration management."""

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .models.config import AppConfig, EnvSettings

DEFAULT_DB_FILENAME = "bookmarks.db"


class ConfigError(Exception):
    """Configuration-related error."""

    pass


class ConfigManager:
    """Manages application configuration from .env and config.yaml."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Configuration directory path. Defaults to ~/.threadkeep
        """
        if config_dir is None:
            env_config_dir = os.environ.get("THREADKEEP_CONFIG_DIR")
            if env_config_dir:
                config_dir = Path(env_config_dir)
            else:
                config_dir = Path.home() / '.threadkeep'

        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / 'config.yaml'
        self.env_file = self.config_dir / '.env'

    def load_env_settings(self) -> EnvSettings:
        """Load environment overrides, reading .env first when present.

        Returns:
            EnvSettings instance

        Raises:
            ConfigError: If the settings are invalid
        """
        if self.env_file.exists():
            load_dotenv(self.env_file)

        try:
            return EnvSettings()
        except Exception as e:
            raise ConfigError(f"Invalid environment settings: {e}") from e

    def load_app_config(self, required: bool = False) -> AppConfig:
        """Load application configuration from config.yaml.

        Args:
            required: Raise when config.yaml is missing instead of using defaults

        Returns:
            AppConfig instance

        Raises:
            ConfigError: If config file is missing (when required) or invalid
        """
        if not self.config_file.exists():
            if required:
                raise ConfigError(
                    f"Config file not found at {self.config_file}. "
                    f"Run 'threadkeep init' to create configuration."
                )
            return AppConfig()

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if data is None:
                data = {}

            return AppConfig(**data)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e
        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    def save_app_config(self, config: AppConfig) -> None:
        """Save application configuration to config.yaml.

        Args:
            config: AppConfig instance to save

        Raises:
            ConfigError: If save fails
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            data = config.model_dump(mode='json')

            with open(self.config_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

        except Exception as e:
            raise ConfigError(f"Failed to save config: {e}") from e

    def load(self) -> AppConfig:
        """Load config.yaml and apply environment overrides on top."""
        config = self.load_app_config()
        env = self.load_env_settings()

        update = {}
        if env.threadkeep_db_path:
            update["database_path"] = env.threadkeep_db_path
        if env.threadkeep_log_level:
            update["log_level"] = env.threadkeep_log_level

        if not update:
            return config

        try:
            return AppConfig(**{**config.model_dump(), **update})
        except Exception as e:
            raise ConfigError(f"Invalid environment override: {e}") from e

    def resolve_database_path(self, config: AppConfig) -> Path:
        """Return the database path, defaulting to the config directory."""
        if config.database_path:
            return Path(config.database_path).expanduser()
        return self.config_dir / DEFAULT_DB_FILENAME
