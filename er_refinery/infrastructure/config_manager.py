"""Configuration Manager.

This module loads database settings and the tunable pipeline vocabulary
(timestamp encodings, complaint table, age bounds, revenue unit, age-group
thresholds) from environment variables or a JSON file.

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Type-safe configuration using Pydantic models
    - Fail-fast validation prevents runtime errors
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from er_refinery.domain.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "ER_"

# Environment variable -> PipelineConfig field (integer-valued)
PIPELINE_ENV_FIELDS = {
    "ER_AGE_MIN": "age_min",
    "ER_AGE_MAX": "age_max",
    "ER_REVENUE_LOSS_PER_VISIT": "revenue_loss_per_visit",
    "ER_ADULT_MIN_AGE": "adult_min_age",
    "ER_SENIOR_MIN_AGE": "senior_min_age",
}


class DatabaseConfig(BaseModel):
    """Database configuration model.

    Parameters:
        db_type: Type of database (only 'duckdb' is supported)
        db_path: Path to database file, or ':memory:'
    """

    db_type: str = Field(default="duckdb", description="Database type")
    db_path: Optional[str] = Field(None, description="Path to database file (for DuckDB)")

    @field_validator("db_type")
    @classmethod
    def validate_db_type(cls, v: str) -> str:
        """Validate database type."""
        supported_types = ["duckdb"]
        if v.lower() not in supported_types:
            raise ValueError(f"Unsupported database type: {v}. Supported: {supported_types}")
        return v.lower()

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: Optional[str]) -> Optional[str]:
        """Validate database directory exists (if a file path is provided)."""
        if v is None or v == ":memory:":
            return v

        db_path_obj = Path(v)
        # Check if parent directory exists (file may not exist yet)
        if not db_path_obj.parent.exists():
            raise ValueError(f"Database directory does not exist: {db_path_obj.parent}")

        return str(db_path_obj)


class ConfigManager:
    """Configuration manager for database settings and pipeline vocabulary.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        pipeline_config = config.get_pipeline_config()

        # Load from file
        config = ConfigManager.from_file("er_config.json")
        db_config = config.get_database_config()
        ```

    File Format:
        {
            "database": {"db_type": "duckdb", "db_path": "data/er.duckdb"},
            "pipeline": {"age_max": 110, "complaint_map": {...}}
        }
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Configuration dictionary with optional "database"
                         and "pipeline" sections
        """
        self._config_data = config_data
        self._database_config: Optional[DatabaseConfig] = None
        self._pipeline_config: Optional[PipelineConfig] = None

    @classmethod
    def from_environment(cls) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - ER_DB_TYPE: Database type (duckdb)
            - ER_DB_PATH: Path to database file
            - ER_PIPELINE_CONFIG: JSON file whose "pipeline" section seeds the pipeline config
            - ER_AGE_MIN / ER_AGE_MAX: Valid age bounds
            - ER_REVENUE_LOSS_PER_VISIT: Loss unit per pre-physician walkout
            - ER_ADULT_MIN_AGE / ER_SENIOR_MIN_AGE: Age-group thresholds

        A project-root .env file is loaded first when present. Individual
        ER_* variables override values from ER_PIPELINE_CONFIG.

        Returns:
            ConfigManager instance

        Raises:
            ValueError: If an integer variable is not an integer
        """
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        pipeline_data: Dict[str, Any] = {}
        pipeline_file = os.getenv("ER_PIPELINE_CONFIG")
        if pipeline_file:
            pipeline_data.update(cls._read_json(pipeline_file).get("pipeline", {}))

        for env_name, field_name in PIPELINE_ENV_FIELDS.items():
            raw_value = os.getenv(env_name)
            if raw_value is None or raw_value == "":
                continue
            try:
                pipeline_data[field_name] = int(raw_value)
            except ValueError:
                raise ValueError(f"{env_name} must be an integer. Got: {raw_value!r}")

        config_data = {
            "database": {
                "db_type": os.getenv("ER_DB_TYPE", "duckdb"),
                "db_path": os.getenv("ER_DB_PATH"),
            },
            "pipeline": pipeline_data,
        }

        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        return cls(cls._read_json(config_path))

    @staticmethod
    def _read_json(config_path: str) -> Dict[str, Any]:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        if not isinstance(config_data, dict):
            raise ValueError(f"Configuration file must contain a JSON object: {config_path}")
        return config_data

    def get_database_config(self) -> DatabaseConfig:
        """Get database configuration (validated once, then cached)."""
        if self._database_config is None:
            db_config_data = {
                key: value for key, value in self._config_data.get("database", {}).items()
                if value is not None
            }
            self._database_config = DatabaseConfig(**db_config_data)

        return self._database_config

    def get_pipeline_config(self) -> PipelineConfig:
        """Get pipeline configuration (validated once, then cached)."""
        if self._pipeline_config is None:
            self._pipeline_config = PipelineConfig.from_overrides(self._config_data.get("pipeline", {}))
        return self._pipeline_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "pipeline.age_max")
            default: Default value if key not found
        """
        value = self._config_data

        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


# ============================================================================
# Convenience Functions
# ============================================================================

def get_database_config() -> DatabaseConfig:
    """Load database configuration from environment (defaults to in-memory DuckDB)."""
    return ConfigManager.from_environment().get_database_config()


def get_pipeline_config() -> PipelineConfig:
    """Load pipeline configuration from environment (defaults when unset)."""
    return ConfigManager.from_environment().get_pipeline_config()
