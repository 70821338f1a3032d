"""
Configuration management for the recovery harness.

Every field maps to a HARNESS_-prefixed environment variable (or a .env
entry), e.g. HARNESS_MAX_TRIALS=50 or HARNESS_HEALTH_CHECK=flaky.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnvironment(str, Enum):
    DEVELOPMENT = "development"
    LAB = "lab"
    PRODUCTION = "production"


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class HealthCheckMode(str, Enum):
    """Post-recovery health predicate wired by the application factory."""

    ALWAYS_PASS = "always_pass"
    ALWAYS_FAIL = "always_fail"
    FLAKY = "flaky"


class Settings(BaseSettings):
    """
    Harness process settings.

    Default trial timings: 10 x 100ms workload, 2s recovery window,
    1s manual recovery, 1s between trials, 400 trials per campaign.
    """

    model_config = SettingsConfigDict(
        env_prefix="HARNESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    env: AppEnvironment = Field(
        default=AppEnvironment.DEVELOPMENT,
        description="Deployment environment (development enables reload)",
    )

    # Control API
    host: str = Field(default="127.0.0.1", description="Control API bind address")
    port: int = Field(default=8780, ge=1024, le=65535, description="Server port")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON formatted log lines")

    # Campaign shape
    max_trials: int = Field(
        default=400,
        ge=1,
        description="Number of trials in one campaign",
    )
    workload_steps: int = Field(
        default=10,
        ge=1,
        description="Simulated workload steps per trial",
    )
    poll_interval_s: float = Field(
        default=0.1,
        gt=0,
        le=5.0,
        description="Duration of one workload step (cancellation poll granularity)",
    )
    recovery_wait_s: float = Field(
        default=2.0,
        ge=0,
        description="Time allowed for automatic recovery after fault injection",
    )
    manual_recovery_wait_s: float = Field(
        default=1.0,
        ge=0,
        description="Time allowed for the manual recovery step",
    )
    cooldown_s: float = Field(
        default=1.0,
        ge=0,
        description="Delay between trials",
    )
    history_size: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Recent trial results kept per campaign",
    )

    # Health predicate
    health_check: HealthCheckMode = Field(
        default=HealthCheckMode.ALWAYS_PASS,
        description="Post-recovery health predicate",
    )
    health_flaky_pass: int = Field(
        default=3,
        ge=0,
        description="Passing checks per cycle for the flaky predicate",
    )
    health_flaky_of: int = Field(
        default=4,
        ge=1,
        description="Cycle length for the flaky predicate",
    )

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level

    @property
    def base_url(self) -> str:
        """Base URL of the control API."""
        return f"http://{self.host}:{self.port}"

    @property
    def trial_duration_s(self) -> float:
        """Nominal wall time of one fully automatic trial."""
        return (
            self.workload_steps * self.poll_interval_s
            + self.recovery_wait_s
            + self.cooldown_s
        )

    def public_summary(self) -> dict[str, str | int | float | bool]:
        """Settings exposed at /config."""
        return {
            "env": self.env.value,
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
            "max_trials": self.max_trials,
            "trial_duration_s": self.trial_duration_s,
            "health_check": self.health_check.value,
        }


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once from the environment."""
    return Settings()


def get_settings_dep() -> Settings:
    """FastAPI dependency; override via app.dependency_overrides in tests."""
    return get_settings()
