"""
Runtime configuration for the triage engine

Values come from TRIAGE_* environment variables (or a .env file),
falling back to the defaults below. Invalid values raise a pydantic
ValidationError (a ValueError) at startup.

    TRIAGE_RULESET_PATH            data/triage_ruleset.json
    TRIAGE_RECORDS_DIR             outputs/records
    TRIAGE_SESSION_MAX_AGE_MINUTES 60
    TRIAGE_SWEEP_INTERVAL_MINUTES  15
    TRIAGE_MAX_SUGGESTIONS         3
    TRIAGE_LOG_LEVEL               INFO
"""

from datetime import timedelta

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "TRIAGE_"


class TriageConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    ruleset_path: str = "data/triage_ruleset.json"
    records_dir: str = "outputs/records"
    session_max_age_minutes: float = Field(default=60, gt=0)
    sweep_interval_minutes: float = Field(default=15, gt=0)
    max_suggestions: int = Field(default=3, ge=1)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def session_max_age(self) -> timedelta:
        return timedelta(minutes=self.session_max_age_minutes)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(minutes=self.sweep_interval_minutes)

    @classmethod
    def from_env(cls) -> "TriageConfig":
        """Build config from the process environment"""
        return cls()
