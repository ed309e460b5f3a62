from pydantic_settings import BaseSettings, SettingsConfigDict

from .rules import DEFAULT_TIMESTAMP_FORMAT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # API
    PROJECT_NAME: str = "nfc-profiles"
    VERSION: str = "0.1.0"
    ADMIN_PREFIX: str = "/admin"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Exports
    TIMESTAMP_FORMAT: str = DEFAULT_TIMESTAMP_FORMAT

    # Batch import
    UPLOAD_MAX_MB: int = 10


settings = Settings()
