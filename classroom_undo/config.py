"""
Configuration module for the Classroom Undo Toolkit.

Provides centralized configuration for the trash, undo ledger and cleanup
sweep.
"""

from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional, Union, get_args, get_origin

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Log levels accepted by the command line and library."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class UndoConfig(BaseModel):
    """Central configuration for soft delete, undo and cleanup.

    Configuration Sources (in order of precedence):
        1. Programmatic settings (highest priority)
        2. Environment variables (CLASSROOM_UNDO_ prefix)
        3. Default values (lowest priority)

    Example:
        >>> config = UndoConfig(retention_days=30, undo_timeout_ms=10000)

        Loading from environment:

        >>> import os
        >>> os.environ['CLASSROOM_UNDO_RETENTION_DAYS'] = '45'
        >>> config = UndoConfig.from_env()

    Note:
        Shortening ``retention_days`` takes effect on the next cleanup sweep
        and permanently removes anything older than the new window.
    """

    # General settings
    application_name: str = Field(
        "Portal Guru", description="Name of the application using the toolkit"
    )
    environment: str = Field(
        "production", description="Environment (development, staging, production)"
    )
    timezone: str = Field(
        "Asia/Jakarta", description="Timezone used when displaying timestamps"
    )
    log_level: LogLevel = Field(LogLevel.INFO, description="Default log level")

    # Storage
    database_url: str = Field(
        "sqlite:///classroom_undo.db", description="SQLAlchemy database URL"
    )

    # Soft delete settings
    retention_days: int = Field(
        30, description="Days a soft-deleted record stays in the trash", gt=0
    )

    # Undo ledger settings
    undo_timeout_ms: int = Field(
        10000, description="Default undo window in milliseconds", ge=0
    )
    undo_grace_ms: int = Field(
        1000,
        description="Extra time an action stays cached after its undo window",
        ge=0,
    )
    memory_horizon_minutes: int = Field(
        60, description="Age after which cached actions are evicted", gt=0
    )
    max_cached_actions: int = Field(
        50, description="Maximum number of actions kept in memory", gt=0, le=10000
    )
    history_retention_days: int = Field(
        7, description="Days action history rows are kept after expiry", gt=0
    )

    # Cleanup settings
    cleanup_interval_hours: int = Field(
        24, description="Minimum hours between two cleanup sweeps", gt=0
    )
    scheduler_check_seconds: int = Field(
        3600, description="Seconds between scheduler checks", gt=0
    )
    state_file: str = Field(
        "./.classroom_undo_state.json",
        description="File recording when the last cleanup ran",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Environment must be one of: {', '.join(sorted(valid_environments))}"
            )
        return v.lower()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the display timezone is known."""
        import pytz

        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_env(cls, prefix: str = "CLASSROOM_UNDO_") -> "UndoConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        import os

        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]

                field_type = field_info.annotation

                # Handle Optional types
                if get_origin(field_type) is Union:
                    args = get_args(field_type)
                    field_type = next(
                        (arg for arg in args if arg is not type(None)), str
                    )

                try:
                    if field_type is bool:
                        config_dict[field_name] = value.lower() in (
                            "true",
                            "1",
                            "yes",
                            "on",
                        )
                    elif field_type is int:
                        config_dict[field_name] = int(value)
                    elif isinstance(field_type, type) and issubclass(field_type, Enum):
                        config_dict[field_name] = field_type(value.upper())
                    else:
                        config_dict[field_name] = value
                except (ValueError, TypeError):
                    # Let model validation report the bad value
                    config_dict[field_name] = value

        return cls.model_validate(config_dict)

    def get_retention_config(self) -> Dict[str, Any]:
        """Get trash retention configuration."""
        return {
            "retention": timedelta(days=self.retention_days),
            "history_retention": timedelta(days=self.history_retention_days),
            "cleanup_interval": timedelta(hours=self.cleanup_interval_hours),
        }

    def get_undo_config(self) -> Dict[str, Any]:
        """Get undo ledger configuration."""
        return {
            "timeout": timedelta(milliseconds=self.undo_timeout_ms),
            "grace": timedelta(milliseconds=self.undo_grace_ms),
            "memory_horizon": timedelta(minutes=self.memory_horizon_minutes),
            "max_cached_actions": self.max_cached_actions,
        }


# Global configuration instance
_config: Optional[UndoConfig] = None


def get_config() -> UndoConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = UndoConfig.from_env()

    return _config


def set_config(config: Optional[UndoConfig]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set, or None to reload from the environment
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> UndoConfig:
    """
    Configure the toolkit with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = UndoConfig(**kwargs)
    else:
        config_dict = _config.model_dump()
        config_dict.update(kwargs)
        _config = UndoConfig(**config_dict)

    return _config
