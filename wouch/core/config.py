"""
Wouch: Configuration Management

This module provides centralised configuration management for the Wouch
assessment engine. It loads configuration from environment variables
(optionally via a .env file), with strongly typed access via Pydantic
BaseSettings.

Key responsibilities:
- Load and validate configuration from environment variables
- Provide typed configuration objects for databases and engine behaviour
- Expose a cached global configuration accessor for convenience

External dependencies:
- pydantic: Data validation and settings management
- pydantic-settings: Environment variable integration for settings
- python-dotenv: Optional .env loading for local development

Database tables accessed:
- None (configuration only)

Thread safety: Thread-safe (configuration is immutable after initial load)

Author: Wouch Team
Created: 2025-11-24
Last Modified: 2025-12-02
Status: Development
Version: v0.2.0
"""

# ============================================================================
# Imports
# ============================================================================

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# ============================================================================
# Data Models
# ============================================================================


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Describes a single PostgreSQL database connection, including
    connection parameters and basic pooling configuration.

    Attributes:
        host: Database host name or IP address.
        port: TCP port for the PostgreSQL instance.
        name: Database name.
        user: Database user for connections.
        password: Password for the database user.
        pool_size: Maximum number of connections in the pool.
        max_overflow: Maximum number of connections above pool_size.
        pool_timeout: Timeout (in seconds) when acquiring a connection.
        echo: Whether to echo SQL statements (for debugging).
    """

    host: str
    port: int
    name: str
    user: str
    password: str
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    echo: bool = False


class ResubmissionPolicy(str, Enum):
    """How the flow treats a second answer to an already answered question.

    - ``APPEND`` – store another response and score it again; ledger
      contributions accumulate.
    - ``REVISE`` – store another response, reverse the question's prior
      net ledger contribution, then score the new answer.
    - ``REJECT`` – refuse the submission with a validation error.
    """

    APPEND = "append"
    REVISE = "revise"
    REJECT = "reject"


class EngineConfig(BaseModel):
    """Behavioural knobs for the orchestration engine.

    Attributes:
        flow_code: Flow identifier written on flow rows and audit events.
        answer_resubmission: Policy for repeated answers to one question.
        serialize_subject_pipelines: Whether pipelines for the same
            subject are serialised through an in-process lock.
        intervention_component_tag: Score-rule component tag marking
            boost rules applied on intervention completion.
        default_metric_min: Lower clamp for metrics without a definition.
        default_metric_max: Upper clamp for metrics without a definition.
    """

    flow_code: str = "onboarding_v1"
    answer_resubmission: ResubmissionPolicy = ResubmissionPolicy.APPEND
    serialize_subject_pipelines: bool = False
    intervention_component_tag: str = "KAI"
    default_metric_min: int = 0
    default_metric_max: int = 100


class WouchConfig(BaseSettings):
    """Main Wouch configuration loaded from environment variables.

    Environment variables use the following mapping by default:

    - CATALOG_DB_* for the content catalog database
    - RUNTIME_DB_* for the runtime database (ledger, flags, flows)
    - LOG_LEVEL / LOG_FILE for logging
    - ENVIRONMENT for environment name (development/staging/production)
    - FLOW_CODE, ANSWER_RESUBMISSION, SERIALIZE_SUBJECT_PIPELINES,
      INTERVENTION_COMPONENT_TAG, DEFAULT_METRIC_MIN/MAX for the engine
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # Catalog DB
    catalog_db_host: str = Field(default="localhost", alias="CATALOG_DB_HOST")
    catalog_db_port: int = Field(default=5432, alias="CATALOG_DB_PORT")
    catalog_db_name: str = Field(default="wouch_catalog", alias="CATALOG_DB_NAME")
    catalog_db_user: str = Field(default="wouch", alias="CATALOG_DB_USER")
    catalog_db_password: str = Field(default="", alias="CATALOG_DB_PASSWORD")

    # Runtime DB
    runtime_db_host: str = Field(default="localhost", alias="RUNTIME_DB_HOST")
    runtime_db_port: int = Field(default=5432, alias="RUNTIME_DB_PORT")
    runtime_db_name: str = Field(default="wouch_runtime", alias="RUNTIME_DB_NAME")
    runtime_db_user: str = Field(default="wouch", alias="RUNTIME_DB_USER")
    runtime_db_password: str = Field(default="", alias="RUNTIME_DB_PASSWORD")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str = Field(default="wouch.log", alias="LOG_FILE")

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Engine behaviour
    flow_code: str = Field(default="onboarding_v1", alias="FLOW_CODE")
    answer_resubmission: ResubmissionPolicy = Field(
        default=ResubmissionPolicy.APPEND, alias="ANSWER_RESUBMISSION"
    )
    serialize_subject_pipelines: bool = Field(
        default=False, alias="SERIALIZE_SUBJECT_PIPELINES"
    )
    intervention_component_tag: str = Field(
        default="KAI", alias="INTERVENTION_COMPONENT_TAG"
    )
    default_metric_min: int = Field(default=0, alias="DEFAULT_METRIC_MIN")
    default_metric_max: int = Field(default=100, alias="DEFAULT_METRIC_MAX")

    @property
    def catalog_db(self) -> DatabaseConfig:
        """Return database configuration for the catalog DB."""

        return DatabaseConfig(
            host=self.catalog_db_host,
            port=self.catalog_db_port,
            name=self.catalog_db_name,
            user=self.catalog_db_user,
            password=self.catalog_db_password,
        )

    @property
    def runtime_db(self) -> DatabaseConfig:
        """Return database configuration for the runtime DB."""

        return DatabaseConfig(
            host=self.runtime_db_host,
            port=self.runtime_db_port,
            name=self.runtime_db_name,
            user=self.runtime_db_user,
            password=self.runtime_db_password,
        )

    @property
    def engine(self) -> EngineConfig:
        """Return engine behaviour configuration.

        Environment variables:
        - FLOW_CODE
        - ANSWER_RESUBMISSION
        - SERIALIZE_SUBJECT_PIPELINES
        - INTERVENTION_COMPONENT_TAG
        - DEFAULT_METRIC_MIN / DEFAULT_METRIC_MAX
        """

        return EngineConfig(
            flow_code=self.flow_code,
            answer_resubmission=self.answer_resubmission,
            serialize_subject_pipelines=self.serialize_subject_pipelines,
            intervention_component_tag=self.intervention_component_tag,
            default_metric_min=self.default_metric_min,
            default_metric_max=self.default_metric_max,
        )


# ============================================================================
# Public API
# ============================================================================


def load_config(env_file: Optional[Path] = None) -> WouchConfig:
    """Load Wouch configuration.

    For local development this function will attempt to load a `.env` file
    from the current working directory if one is present. Environment
    variables always take precedence over values from `.env`.

    Args:
        env_file: Optional explicit path to a `.env` file. If omitted,
            the function will look for `.env` in the current working
            directory.

    Returns:
        A fully populated :class:`WouchConfig` instance.

    Raises:
        FileNotFoundError: If an explicit ``env_file`` is provided but
            does not exist.
    """

    if env_file is not None:
        if not env_file.exists():
            msg = f"Environment file not found: {env_file}"
            raise FileNotFoundError(msg)
        # An explicit env_file wins over existing values so tests and
        # local runs can control configuration.
        load_dotenv(env_file, override=True)
    else:
        default_env = Path(".env")
        if default_env.exists():
            load_dotenv(default_env)

    return WouchConfig()  # type: ignore[call-arg]


_global_config: Optional[WouchConfig] = None


def get_config() -> WouchConfig:
    """Return the global Wouch configuration singleton.

    The configuration is loaded on first access (lazy loading) and cached
    for subsequent calls.

    Returns:
        A cached :class:`WouchConfig` instance.
    """

    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config
