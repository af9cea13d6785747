"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings read from the environment (and an optional .env file).

    Attributes:
        database_url: SQLAlchemy database URL
        database_echo: Echo SQL statements to the log
        plan_generation_url: URL of the serverless plan-generation function
        plan_generation_api_key: Bearer key sent to the plan-generation function
        plan_generation_timeout_seconds: Upper bound on one generation round trip
        log_level: Root log level
        log_json: Emit JSON log lines instead of plain text
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field(default="sqlite:///./buildplan.db")
    database_echo: bool = False

    plan_generation_url: str = Field(
        default="http://localhost:54321/functions/v1/generate-project-plan"
    )
    plan_generation_api_key: Optional[str] = None
    plan_generation_timeout_seconds: float = Field(default=60.0, gt=0)

    log_level: str = "INFO"
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
