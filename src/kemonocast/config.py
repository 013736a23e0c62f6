"""
Configuration management for kemonocast.

Provides centralized configuration using Pydantic for validation and
environment variable support. Supports kemonocast.yaml for per-deployment
settings.
"""

from pathlib import Path
from typing import Optional, Tuple, Type

from pydantic import AliasChoices, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


CONFIG_FILENAME = "kemonocast.yaml"

DB_PATH = Path("data") / "kemono.db"


def find_config_yaml(search_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Locate kemonocast.yaml.

    Searches search_dir (or the current working directory) and up to
    3 parent directories.

    Args:
        search_dir: Directory to start searching from

    Returns:
        Path to the first kemonocast.yaml found, or None
    """
    start = (search_dir or Path.cwd()).resolve()
    for parent in [start] + list(start.parents)[:3]:
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


class Config(BaseSettings):
    """
    Application configuration with environment variable support.

    Configuration can be provided via:
    1. Keyword arguments
    2. Environment variables (prefixed with KEMONOCAST_)
    3. .env file
    4. kemonocast.yaml
    5. Default values

    The listening port is also read from a plain ``PORT`` variable, which
    is what most container platforms set.

    Example:
        export KEMONOCAST_DB_PATH="/var/lib/kemonocast/kemono.db"
        export PORT=8080
    """

    model_config = SettingsConfigDict(
        env_prefix="KEMONOCAST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # HTTP server
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to"
    )
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("kemonocast_port", "port"),
        description="Port the HTTP server listens on"
    )
    cache_max_age: int = Field(
        default=300,
        ge=0,
        description="Cache-Control max-age for feed responses, in seconds"
    )

    # Storage
    db_path: Path = Field(
        default=DB_PATH,
        description="Path to SQLite database file"
    )

    # Upstream API
    api_base_url: str = Field(
        default="https://kemono.cr/api/v1",
        description="Base URL of the Kemono JSON API"
    )
    site_base_url: str = Field(
        default="https://kemono.cr",
        description="Base URL for creator pages, post pages and files"
    )
    session_cookie: Optional[str] = Field(
        default=None,
        description="Value of the Cookie header sent upstream, if any"
    )
    page_size: int = Field(
        default=50,
        gt=0,
        description="Number of posts the upstream returns per page"
    )
    page_delay: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between page requests during a backfill, in seconds"
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout for a single upstream request, in seconds"
    )
    detail_workers: int = Field(
        default=4,
        ge=1,
        description="Concurrent post detail fetches while building a feed"
    )

    # Feed
    feed_language: str = Field(
        default="en-us",
        description="Value of the channel <language> element"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG/INFO/WARNING/ERROR)"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=find_config_yaml()),
            file_secret_settings,
        )

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """
    Get the application configuration instance.

    Merges settings from environment variables, .env file,
    and kemonocast.yaml (if present).

    Returns:
        Config: Application configuration
    """
    config = Config()
    config.ensure_directories()
    return config
