"""Configuration for the Integration Fit Engine, read from the environment and .env."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

try:
    load_dotenv()
except (PermissionError, OSError):
    # .env unreadable (sandboxed runs); rely on the process environment
    pass


class Settings(BaseSettings):
    """Service settings. Only the Supabase credentials are required."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase (service role, reads only)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    COMPAT_ENGINE_ENV: Literal["dev", "test", "staging", "prod"] = Field(
        default="dev", description="Deployment environment, also selects the log level"
    )

    # Internal tooling access (X-API-Key + X-Tenant-Id)
    ADMIN_API_KEY: str | None = Field(default=None, description="Admin API key for internal tools")

    # Compatibility matrix fan-out
    COMPAT_MATRIX_MAX_CONCURRENCY: int = Field(
        default=8, ge=1, description="Max concurrent per-system fit computations"
    )
    COMPAT_SYSTEM_TIMEOUT_SECONDS: float = Field(
        default=10.0, gt=0, description="Timeout for a single system's fit computation"
    )

    # Integration graph
    GRAPH_WORKFLOW_RUN_LIMIT: int = Field(
        default=100, ge=1, description="Most recent workflow runs considered per graph build"
    )
    GRAPH_RECOMMENDATION_MIN_SCORE: int = Field(
        default=60, ge=0, le=100, description="Minimum score for recommendation nodes"
    )
    GRAPH_RECOMMENDATION_LIMIT: int = Field(
        default=10, ge=1, description="Max recommendation nodes per graph build"
    )


@lru_cache
def get_settings() -> Settings:
    """Settings singleton. Raises ValidationError when required variables are missing."""
    return Settings()
