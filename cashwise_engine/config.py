"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="CASHWISE_", extra="ignore"
    )

    # Database (key-value settings store)
    database_url: str = "sqlite:///./cashwise.db"

    # External Services
    finance_api_base: str = "http://localhost:8080/api"
    finance_api_token: str | None = None
    fx_api_base: str = "https://api.frankfurter.app"
    push_webhook_url: str | None = None

    # Currency
    base_currency: str = "EUR"
    fx_markup_bps: int = 0

    # Service
    service_name: str = "cashwise-engine"
    log_level: str = "INFO"
    timezone: str = "Europe/Berlin"

    # Reminders
    reminder_horizon_days: int = 45

    # HTTP Client
    http_timeout_seconds: float = 5.0
    external_call_timeout_seconds: float = 10.0  # Upper bound for any single awaited collaborator call
    webhook_max_retries: int = 5
    webhook_backoff_base: float = 1.0  # Exponential backoff base in seconds


settings = Settings()
