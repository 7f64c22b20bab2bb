"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (one level above rabbitask/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    API_URL: str = "http://localhost:5000/api"
    JWT_TOKEN_KEY: str = "jwt_token"  # client storage key holding the bearer token
    STATE_DB_URL: str = f"sqlite:///{_PROJECT_ROOT / 'rabbitask_state.db'}"
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    SEARCH_DEBOUNCE_MS: int = 300
    TASK_PAGE_SIZE: int = 100
    CODE_COUNTDOWN_INTERVAL_SECONDS: float = 1.0
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8100
    LOG_LEVEL: str = "INFO"


settings = Settings()
