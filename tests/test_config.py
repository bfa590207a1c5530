"""
Tests for toolkit configuration and database wiring.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy import inspect

from classroom_undo.config import (
    LogLevel,
    UndoConfig,
    configure,
    get_config,
    set_config,
)
from classroom_undo.database import create_db_engine, create_session_factory


class TestUndoConfig:
    """Test the configuration model."""

    def test_defaults(self):
        config = UndoConfig()

        assert config.retention_days == 30
        assert config.undo_timeout_ms == 10000
        assert config.undo_grace_ms == 1000
        assert config.max_cached_actions == 50
        assert config.memory_horizon_minutes == 60
        assert config.history_retention_days == 7
        assert config.cleanup_interval_hours == 24
        assert config.scheduler_check_seconds == 3600
        assert config.timezone == "Asia/Jakarta"
        assert config.log_level == LogLevel.INFO

    def test_environment_is_validated(self):
        assert UndoConfig(environment="Staging").environment == "staging"
        with pytest.raises(ValidationError):
            UndoConfig(environment="qa")

    def test_timezone_is_validated(self):
        with pytest.raises(ValidationError):
            UndoConfig(timezone="Mars/Olympus")

    def test_retention_must_be_positive(self):
        with pytest.raises(ValidationError):
            UndoConfig(retention_days=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CLASSROOM_UNDO_RETENTION_DAYS", "45")
        monkeypatch.setenv("CLASSROOM_UNDO_LOG_LEVEL", "debug")
        monkeypatch.setenv("CLASSROOM_UNDO_DATABASE_URL", "sqlite:///tmp.db")

        config = UndoConfig.from_env()

        assert config.retention_days == 45
        assert config.log_level == LogLevel.DEBUG
        assert config.database_url == "sqlite:///tmp.db"

    def test_from_env_reports_bad_values(self, monkeypatch):
        monkeypatch.setenv("CLASSROOM_UNDO_UNDO_TIMEOUT_MS", "soon")

        with pytest.raises(ValidationError):
            UndoConfig.from_env()

    def test_sub_configs(self):
        config = UndoConfig(retention_days=14, undo_timeout_ms=5000)

        retention = config.get_retention_config()
        undo = config.get_undo_config()

        assert retention["retention"] == timedelta(days=14)
        assert retention["history_retention"] == timedelta(days=7)
        assert undo["timeout"] == timedelta(seconds=5)
        assert undo["memory_horizon"] == timedelta(hours=1)
        assert undo["max_cached_actions"] == 50

    def test_to_dict_is_json_friendly(self):
        data = UndoConfig().to_dict()

        assert data["log_level"] == "INFO"
        assert data["retention_days"] == 30


class TestGlobalConfig:
    """Test the module level configuration helpers."""

    def test_get_config_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CLASSROOM_UNDO_ENVIRONMENT", "development")

        assert get_config().environment == "development"
        assert get_config() is get_config()

    def test_set_config(self):
        config = UndoConfig(application_name="SD Negeri 1")
        set_config(config)

        assert get_config() is config

    def test_configure_updates_existing(self):
        set_config(UndoConfig(retention_days=10))

        config = configure(undo_timeout_ms=3000)

        assert config.retention_days == 10
        assert config.undo_timeout_ms == 3000
        assert get_config() is config


class TestDatabase:
    """Test engine and schema creation."""

    def test_memory_database_is_shared_between_sessions(self):
        engine = create_db_engine("sqlite://")

        assert engine.pool.__class__.__name__ == "StaticPool"

    def test_session_factory_creates_schema(self):
        factory = create_session_factory("sqlite://")

        tables = set(inspect(factory.kw["bind"]).get_table_names())

        assert {"students", "classes", "attendance", "tasks", "action_history"} <= tables

    def test_file_database(self, tmp_path):
        factory = create_session_factory(f"sqlite:///{tmp_path / 'school.db'}")

        assert (tmp_path / "school.db").exists()
        factory.kw["bind"].dispose()
