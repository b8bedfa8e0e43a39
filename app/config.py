"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_FALLBACK_POSTER = (
    "https://m.media-amazon.com/images/M/"
    "MV5BMTc5MDE2ODcwNV5BMl5BanBnXkFtZTgwMzI2NzQ2NzM@._V1_SX300.jpg"
)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Marvel Addon", alias="APP_NAME")
    addon_version: str = Field(default="1.2.0", alias="ADDON_VERSION")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=7000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    omdb_api_key: str | None = Field(default=None, alias="OMDB_API_KEY")

    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    omdb_api_url: HttpUrl = Field(
        default="https://www.omdbapi.com", alias="OMDB_API_URL"
    )
    rpdb_api_url: HttpUrl = Field(
        default="https://api.ratingposterdb.com", alias="RPDB_API_URL"
    )

    http_timeout_seconds: float = Field(
        default=15.0, alias="HTTP_TIMEOUT", gt=0, le=120
    )
    image_check_timeout_seconds: float = Field(
        default=5.0, alias="IMAGE_CHECK_TIMEOUT", gt=0, le=30
    )
    max_concurrent_requests: int = Field(
        default=8, alias="MAX_CONCURRENT_REQUESTS", ge=1, le=100
    )
    response_cache_seconds: int = Field(
        default=1_814_400, alias="CACHE_MAX_AGE", ge=0
    )

    fallback_poster_url: str = Field(
        default=DEFAULT_FALLBACK_POSTER, alias="FALLBACK_POSTER_URL"
    )
    data_dir: Path | None = Field(default=None, alias="DATA_DIR")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_api_key", "omdb_api_key", mode="before")
    @classmethod
    def _strip_blank_keys(cls, value: object) -> object:
        """Treat blank API keys as missing."""

        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def has_metadata_credentials(self) -> bool:
        """Return whether both metadata provider keys are configured."""

        return bool(self.tmdb_api_key and self.omdb_api_key)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
