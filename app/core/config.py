"""Settings for the overlap layout service, read from the environment."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Overlap Layout Service"

    # Layout engine
    LAYER_OFFSET_UNIT: int = 26
    MAX_VISIBLE_LAYERS: int = 5
    BASE_Z_INDEX: int = 10
    MIN_EFFECTIVE_WIDTH_PERCENT: float = 20.0
    # Raise instead of warn when two tasks share a layout key
    STRICT_KEYS: bool = False

    # Day / week views
    DEFAULT_TIMEZONE: str = "UTC"
    MAX_OCCURRENCES: int = 1000

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="LAYOUT_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
