"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.
"""

import os
from typing import Optional

from er_refinery.domain.pipeline_config import PipelineConfig
from er_refinery.infrastructure.config_manager import ConfigManager, DatabaseConfig

# Application metadata
APP_NAME = "ER-Refinery"
APP_VERSION = "1.0.0"

# Default chunk size for CSV/JSON ingestion
DEFAULT_CHUNK_SIZE = 10000

# Default worker count for chunk-parallel standardization
DEFAULT_WORKERS = 1


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings loaded from configuration manager and environment.

    This class provides a unified interface for accessing application settings,
    combining values from the configuration manager with environment variables
    and sensible defaults.
    """

    def __init__(self):
        """Initialize settings from configuration manager and environment."""
        self._config_manager: Optional[ConfigManager] = None

        # Application settings from environment
        self.app_name = os.getenv("ER_APP_NAME", APP_NAME)
        self.chunk_size = int(os.getenv("ER_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)))
        self.workers = int(os.getenv("ER_WORKERS", str(DEFAULT_WORKERS)))

        # Logging
        self.log_level = os.getenv("ER_LOG_LEVEL", "INFO")
        self.log_json = _env_flag("ER_LOG_JSON", "false")

        # Quality report settings
        self.save_quality_report = _env_flag("ER_SAVE_QUALITY_REPORT", "true")
        self.quality_report_dir = os.getenv("ER_QUALITY_REPORT_DIR", "reports")

    @property
    def config_manager(self) -> ConfigManager:
        """Get configuration manager instance (loaded lazily on first access)."""
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager

    @property
    def db_config(self) -> DatabaseConfig:
        return self.config_manager.get_database_config()

    @property
    def pipeline_config(self) -> PipelineConfig:
        return self.config_manager.get_pipeline_config()

    def get_db_path(self) -> str:
        """Get database path for DuckDB.

        Returns:
            Database path or ':memory:' for in-memory database
        """
        return self.db_config.db_path or ":memory:"


# Global settings instance
settings = Settings()
