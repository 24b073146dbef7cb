"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    OPENAI_API_KEY: str = ""

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"

    # Rate Limiting
    RATE_LIMIT_MAX_RUNS: int = 20
    RATE_LIMIT_WINDOW_SECONDS: int = 3600

    # Validation Loop
    MAX_VALIDATION_ATTEMPTS: int = 3
    REPAIR_MAX_TURNS: int = 15
    QUALITY_MAX_TURNS: int = 3
    STUCK_THRESHOLD: int = 3
    REPAIR_CONCURRENCY: int = 1
    QUALITY_RETRY_SCOPE: str = "failing_on_retry"  # or "all"

    # Toolchain
    TYPECHECK_COMMAND: str = "npx tsc --noEmit --skipLibCheck"
    LINT_COMMAND: str = "npx eslint"
    LINT_EXTENSIONS: str = ".ts,.tsx"  # empty for flat-config ESLint (no --ext)
    CHECK_TIMEOUT_SECONDS: int = 120

    # Agent Config
    REPAIR_MODEL: str = "gpt-4o"
    QUALITY_MODEL: str = "gpt-4o"
    SEARCH_HELP_MODEL: str = "gpt-4o"

    # Transcript logs
    VALIDATION_DEBUG_LOGS: bool = False
    VALIDATION_LOG_DIR: str = "validation-logs"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
