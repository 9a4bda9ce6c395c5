from functools import lru_cache
from pathlib import Path
from typing import List, Tuple, Type
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Service settings from init kwargs, WELLNESS_* env vars, .env and wellness.yaml."""

    APP_NAME: str = "Wellness Tracker API"
    TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"
    USER_HEADER: str = "X-User-Id"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    PROGRESS_LIST_LIMIT: int = 50
    USER_SEARCH_LIMIT: int = 20
    DATABASE_URL: str = f"sqlite+aiosqlite:///{PROJECT_ROOT / 'wellness.db'}"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    model_config = SettingsConfigDict(
        env_prefix="WELLNESS_",
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        yaml_file=PROJECT_ROOT / "wellness.yaml",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("TIMEZONE")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as error:
            raise ValueError(f"Unknown time zone: {value}") from error
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, dotenv_settings, YamlConfigSettingsSource(settings_cls))

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


@lru_cache
def get_settings() -> Settings:
    return Settings()
