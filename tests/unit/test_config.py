"""
Wouch: Tests for Configuration Management

Test suite for ``wouch.core.config``. Covers:
- Default configuration values
- Environment variable overrides
- .env loading behaviour
- Engine behaviour settings
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from wouch.core.config import EngineConfig, ResubmissionPolicy, WouchConfig, get_config, load_config


class TestWouchConfig:
    """Tests for the WouchConfig settings model."""

    def test_default_values(self) -> None:
        """Default values should match sensible local-development defaults."""

        config = WouchConfig()

        assert config.catalog_db_host == "localhost"
        assert config.catalog_db_port == 5432
        assert config.runtime_db_host == "localhost"
        assert config.runtime_db_port == 5432
        assert config.log_level.upper() == "INFO"
        assert config.environment == "development"

    def test_env_var_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables must override default values."""

        monkeypatch.setenv("CATALOG_DB_HOST", "test-host")
        monkeypatch.setenv("CATALOG_DB_PORT", "5439")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = WouchConfig()

        assert config.catalog_db_host == "test-host"
        assert config.catalog_db_port == 5439
        assert config.log_level.upper() == "DEBUG"

    def test_database_properties_return_databaseconfig(self) -> None:
        """Database helper properties should return DatabaseConfig objects."""

        config = WouchConfig()

        catalog_db = config.catalog_db
        assert catalog_db.host == config.catalog_db_host
        assert catalog_db.port == config.catalog_db_port
        assert catalog_db.name == config.catalog_db_name

        runtime_db = config.runtime_db
        assert runtime_db.host == config.runtime_db_host
        assert runtime_db.port == config.runtime_db_port
        assert runtime_db.name == config.runtime_db_name


class TestEngineConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "FLOW_CODE",
            "ANSWER_RESUBMISSION",
            "SERIALIZE_SUBJECT_PIPELINES",
            "INTERVENTION_COMPONENT_TAG",
        ):
            monkeypatch.delenv(name, raising=False)

        engine = WouchConfig().engine

        assert engine.flow_code == "onboarding_v1"
        assert engine.answer_resubmission == ResubmissionPolicy.APPEND
        assert engine.serialize_subject_pipelines is False
        assert engine.intervention_component_tag == "KAI"
        assert (engine.default_metric_min, engine.default_metric_max) == (0, 100)

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANSWER_RESUBMISSION", "revise")
        monkeypatch.setenv("SERIALIZE_SUBJECT_PIPELINES", "true")
        monkeypatch.setenv("INTERVENTION_COMPONENT_TAG", "MODULE")

        engine = WouchConfig().engine

        assert engine.answer_resubmission == ResubmissionPolicy.REVISE
        assert engine.serialize_subject_pipelines is True
        assert engine.intervention_component_tag == "MODULE"

    def test_unknown_policy_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            EngineConfig(answer_resubmission="overwrite")


class TestLoadConfig:
    """Tests for the top-level load_config function."""

    def test_load_from_explicit_env_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An explicit env_file should be loaded when it exists."""

        # Registered with monkeypatch so the values loaded from the file
        # are removed again after the test.
        monkeypatch.setenv("CATALOG_DB_HOST", "placeholder")
        monkeypatch.setenv("RUNTIME_DB_PORT", "5432")

        env_path = tmp_path / ".env.test"
        env_path.write_text("CATALOG_DB_HOST=from_env_file\nRUNTIME_DB_PORT=5440\n")

        config = load_config(env_file=env_path)

        assert config.catalog_db_host == "from_env_file"
        assert config.runtime_db_port == 5440

    def test_missing_explicit_env_file_raises(self, tmp_path: Path) -> None:
        """A missing explicit env file should raise FileNotFoundError."""

        missing = tmp_path / "does_not_exist.env"
        with pytest.raises(FileNotFoundError):
            load_config(env_file=missing)


class TestGetConfigSingleton:
    def test_get_config_returns_singleton(self) -> None:
        """get_config should always return the same instance within a process."""

        config_1 = get_config()
        config_2 = get_config()

        assert config_1 is config_2
        assert isinstance(config_1.catalog_db_host, str)
