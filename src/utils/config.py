"""
Configuration management for the Restaurant Stock Engine.

This module handles:
- Database path configuration
- Environment-specific configuration (development vs. production)
- Engine settings (cost memoization, display precision)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import (
    APP_NAME,
    APP_VERSION,
    CURRENCY_DECIMAL_PLACES,
    DATABASE_FILENAME,
    DATABASE_VERSION,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "RESTAURANT_STOCK"


class Config:
    """
    Application configuration manager.

    Handles database paths, environment settings and engine tuning flags.
    Values are read from environment variables once, at construction.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION
        self._database_version = DATABASE_VERSION

        if environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_data_dir()

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME

        self._db_timeout = self._int_from_env("DB_TIMEOUT", 30)
        self._display_decimal_places = self._int_from_env(
            "DISPLAY_PLACES", CURRENCY_DECIMAL_PLACES
        )
        self._memoize_costs = self._bool_from_env("MEMOIZE", True)

    def _get_project_data_dir(self) -> Path:
        """
        Get the project's data directory for development.

        Returns:
            Path to project data/ directory
        """
        project_root = Path(__file__).parent.parent.parent
        return project_root / "data"

    def _get_user_data_dir(self) -> Path:
        """
        Get the per-user data directory for production.

        Returns:
            Path to the app subdirectory in the user's home
        """
        return Path.home() / ".restaurant_stock"

    def _int_from_env(self, name: str, default: int) -> int:
        """Read an integer setting, falling back to default with a warning."""
        var = f"{ENV_PREFIX}_{name}"
        raw = os.environ.get(var)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Invalid {var}='{raw}', using default {default}")
            return default

    def _bool_from_env(self, name: str, default: bool) -> bool:
        """Read a boolean setting ('1', 'true', 'yes', 'on' are truthy)."""
        var = f"{ENV_PREFIX}_{name}"
        raw = os.environ.get(var)
        if raw is None:
            return default
        value = raw.strip().lower()
        if value in ("1", "true", "yes", "on"):
            return True
        if value in ("0", "false", "no", "off"):
            return False
        logger.warning(f"Invalid {var}='{raw}', using default {default}")
        return default

    def ensure_directories(self):
        """Create the database directory if it doesn't exist."""
        self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def app_name(self) -> str:
        """Application name."""
        return self._app_name

    @property
    def app_version(self) -> str:
        """Application version."""
        return self._app_version

    @property
    def database_version(self) -> str:
        """Database schema version."""
        return self._database_version

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        Returns:
            Database URL string for SQLAlchemy
        """
        override = os.environ.get(f"{ENV_PREFIX}_DATABASE_URL")
        if override:
            return override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def db_timeout(self) -> int:
        """SQLite busy timeout in seconds."""
        return self._db_timeout

    @property
    def memoize_costs(self) -> bool:
        """Whether the cost engine caches resolved recipes per snapshot."""
        return self._memoize_costs

    @property
    def display_decimal_places(self) -> int:
        """Decimal places used when formatting costs for display."""
        return self._display_decimal_places

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if database file exists.

        Returns:
            True if database file exists, False otherwise
        """
        return self._database_path.exists()

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(environment='{self.environment}', database_path='{self._database_path}')"


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    RESTAURANT_STOCK_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(f"{ENV_PREFIX}_ENV", "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def get_database_url() -> str:
    """
    Get the database URL.

    Returns:
        SQLAlchemy database URL string
    """
    return get_config().database_url
