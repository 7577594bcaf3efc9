"""Settings and configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Key records
    DEFAULT_TABLE: str = "secret_key"
    RECORD_CACHE_SIZE: int = 50  # per table, 0 disables

    # Storage engines
    SHOW_SQL: bool = False
    POOL_PRE_PING: bool = True
    AUTO_CREATE_TABLES: bool = False

    # Logging
    LOG_REDACTION: bool = True

    model_config = SettingsConfigDict(
        env_prefix="SQLKEEPER_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()


def get_settings() -> Settings:
    return settings
