"""Configuration settings for the application."""

from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # These will be loaded from environment variables or a .env file if not provided
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    API_PORT: int = 8000
    CORS_ORIGINS: list[str] = ["http://localhost:8000"]
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # Completion provider
    COMPLETION_CLIENT: str = "openai"  # Name registered with @register_client
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str | None = None
    DEFAULT_MODEL: str = "gpt-4o"
    REQUEST_TIMEOUT: float = 30.0  # seconds, per provider HTTP request

    # Engine
    MAX_TURNS: int = 10  # Model turns per run unless overridden per engine or per run
    RETRY_MAX_RETRIES: int = 3
    RETRY_INITIAL_DELAY: float = 1.0  # seconds
    RETRY_MAX_DELAY: float = 10.0  # seconds


settings = Settings()
