"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="sla-engine", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to the YAML file holding default SLA policies"
    )
    engine_tick_interval: int = Field(
        default=60,
        description="Seconds between notification queue drains (0 disables the scheduler)",
        ge=0
    )
    breach_tail_size: int = Field(
        default=50,
        description="Number of recent breach records included in a health snapshot",
        ge=1
    )

    # ========== Notifications ==========
    delivery_log_limit: int = Field(
        default=50,
        description="Default page size for the delivery log",
        ge=1
    )
    digest_summary_deliveries: int = Field(
        default=10,
        description="Recent deliveries included in the digest summary",
        ge=1
    )
    due_soon_window_minutes: int = Field(
        default=60 * 24 * 3,
        description="Look-ahead window for due-soon notifications",
        ge=1
    )
    digest_grace_minutes: int = Field(
        default=5,
        description="Minutes subtracted from a digest cadence before it is due again",
        ge=0
    )
    queue_due_window_minutes: int = Field(
        default=1,
        description="Events scheduled within this many minutes of now are delivered",
        ge=0
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
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
        """Ensure environment is one of allowed values."""
        allowed = {"development", "testing", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class SLAState(str):
    """SLA target evaluation states."""
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BREACHED = "breached"
    MET = "met"


class PauseRuleType(str):
    """Predicates a pause or resume rule can test."""
    STATUS = "status"
    BLOCKED = "blocked"
    CUSTOM_FIELD = "customField"


class NotificationChannel(str):
    """Delivery channels."""
    EMAIL = "email"
    SLACK = "slack"
    TEAMS = "teams"
    IN_APP = "in_app"


class NotificationTrigger(str):
    """Kinds of notification events."""
    MENTION = "mention"
    ASSIGNMENT = "assignment"
    DUE_SOON = "due_soon"
    AUTOMATION_RUN = "automation_run"
    SLA_BREACH = "sla_breach"
    DIGEST = "digest"


class DigestCadence(str):
    """Digest send cadences."""
    DAILY = "daily"
    WEEKLY = "weekly"


class AutomationCadence(str):
    """Automation run cadences."""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class AutomationRunStatus(str):
    """Automation run lifecycle states."""
    SCHEDULED = "scheduled"
    RUNNING = "running"
    PAUSED = "paused"


# Minutes between digest sends, before the grace period is applied
DIGEST_CADENCE_MINUTES = {
    DigestCadence.DAILY: 60 * 24,
    DigestCadence.WEEKLY: 60 * 24 * 7,
}

DEFAULT_WARNING_THRESHOLD = 0.25
DEFAULT_RECIPIENT = "project_team"


# ========== Lists for validation ==========

VALID_CHANNELS = [
    NotificationChannel.EMAIL, NotificationChannel.SLACK,
    NotificationChannel.TEAMS, NotificationChannel.IN_APP
]
VALID_TRIGGERS = [
    NotificationTrigger.MENTION, NotificationTrigger.ASSIGNMENT,
    NotificationTrigger.DUE_SOON, NotificationTrigger.AUTOMATION_RUN,
    NotificationTrigger.SLA_BREACH, NotificationTrigger.DIGEST
]