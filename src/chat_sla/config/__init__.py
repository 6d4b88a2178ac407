"""
Configuration Module
====================

Process settings (pydantic-settings, environment and .env) and the string
constants shared by the SLA module.

SLA targets and office hours are not process settings; they are loaded per
recalculation run by an SLA config provider.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path


class Settings(BaseSettings):
    """
    Engine settings read from environment variables (case-insensitive).

    Recalculation defaults apply when a request does not set its own values.
    """

    # ========== Application ==========
    app_name: str = Field(default="chat-sla-engine", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/chats",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Configuration ==========
    sla_config_source: str = Field(
        default="database",
        description="Where SLA/office-hours settings are read from: 'database' or 'yaml'"
    )
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA configuration YAML file (yaml source only)"
    )

    # ========== Recalculation ==========
    recalculation_batch_size: int = Field(
        default=500,
        description="Default number of chats fetched per recalculation batch",
        ge=1,
        le=2000
    )
    recalculation_max_concurrency: int = Field(
        default=50,
        description="Upper bound on concurrent per-chat writes inside a batch",
        ge=1
    )
    recalculation_lookback_days: int = Field(
        default=30,
        description="Default date range when neither dates nor chat id are given",
        ge=1
    )
    recalculation_max_range_days: int = Field(
        default=365,
        description="Largest date range a recalculation request may cover",
        ge=1
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("sla_config_source")
    @classmethod
    def validate_config_source(cls, v: str) -> str:
        """Ensure config source is supported."""
        allowed = {"database", "yaml"}
        if v not in allowed:
            raise ValueError(f"sla_config_source must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()


settings = get_settings()


# ========== Constants ==========

MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 2000


class MessageRole(str):
    """Author roles of chat messages."""
    CUSTOMER = "customer"
    AGENT = "agent"
    SYSTEM = "system"


class SLAMetricName(str):
    """Metrics tracked per chat."""
    PICKUP = "pickup"
    FIRST_RESPONSE = "first_response"
    AVG_RESPONSE = "avg_response"
    RESOLUTION = "resolution"


class CalculationType(str):
    """What triggered an SLA calculation, as recorded in calculation events."""
    INITIAL = "initial"
    UPDATE = "update"
    RECALCULATION = "recalculation"
    CONFIG_CHANGE = "config_change"


class SettingCategory(str):
    """Categories of rows in the system settings table."""
    SLA = "sla"
    OFFICE_HOURS = "office_hours"
    HOLIDAYS = "holidays"


# ========== Lists for validation ==========

VALID_MESSAGE_ROLES = [MessageRole.CUSTOMER, MessageRole.AGENT, MessageRole.SYSTEM]
VALID_SETTING_CATEGORIES = [
    SettingCategory.SLA, SettingCategory.OFFICE_HOURS, SettingCategory.HOLIDAYS
]
