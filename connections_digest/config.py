"""All settings, loaded from the .env file."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    # App
    environment: str = "development"
    app_url: str = "http://localhost:8000"
    database_url: str = "sqlite:///./connections_digest.db"
    log_level: str = "INFO"

    # Digest behavior
    digest_timezone: str = "UTC"  # zone used for "today" / "tomorrow midnight"
    scheduler_enabled: bool = True

    # Delivery relays — a medium's transport is active iff its URL is set
    email_relay_url: str = ""
    sms_relay_url: str = ""
    push_relay_url: str = ""
    relay_api_key: str = ""
    relay_timeout_seconds: float = 15.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
