"""
Dependency injection for FastAPI.

Provides the shared source instance and configuration across routes.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from asurascans import AsuraScansSource, PreferenceStore, SourceConfig, SourcePreferences


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ASURA_",
        extra="ignore",
    )

    # Source
    base_url: str = "https://asuracomic.net"
    api_url: str = "https://gg.asuracomic.net/api"
    user_agent: Optional[str] = None

    # Storage paths
    preferences_path: str = "./data/preferences.json"

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


_source_instance: Optional[AsuraScansSource] = None


def build_source(settings: Settings) -> AsuraScansSource:
    config = SourceConfig(
        base_url=settings.base_url,
        api_url=settings.api_url,
        user_agent=settings.user_agent,
    )
    preferences = SourcePreferences(PreferenceStore(settings.preferences_path))
    return AsuraScansSource(config=config, preferences=preferences)


def get_source() -> AsuraScansSource:
    """Process-wide source, created on first use."""
    global _source_instance
    if _source_instance is None:
        _source_instance = build_source(get_settings())
    return _source_instance


async def close_source() -> None:
    global _source_instance
    if _source_instance is not None:
        await _source_instance.aclose()
        _source_instance = None
