"""Service configuration: environment-driven settings via pydantic-settings.

Every field can be overridden with a NEKO_-prefixed environment variable
(e.g. NEKO_ASSETS_ROOT=/srv/assets) or a .env file. get_settings() is
cached, one instance per process.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the asset catalog and filter service."""

    model_config = SettingsConfigDict(env_prefix="NEKO_", env_file=".env", case_sensitive=False)

    # Catalog
    assets_root: str = "assets"
    watch_enabled: bool = True

    # Diagnostics output
    gallery_dir: str = "results/gallery"

    # Observability
    log_level: str = "INFO"
    log_format: str = "text"

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
