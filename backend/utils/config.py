"""
Hotload Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


def _split_list(v: str | list[str]) -> list[str]:
    """Parse a comma-separated string or pass a list through."""
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return v


class HotloadSettings(BaseSettings):
    """File watching / hot reload settings."""

    model_config = SettingsConfigDict(env_prefix="HOTLOAD_")

    enabled: bool = Field(default=True, description="Enable hot file watching")
    dir: Path | None = Field(
        default=None,
        description="Root directory to watch (current directory when unset)",
    )
    filter: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Glob patterns a file must match to be watched (empty watches all)",
    )
    recursive: bool = Field(default=True, description="Watch directories recursively")
    debounce: int = Field(
        default=300,
        description="Quiet period in milliseconds before the hook fires",
    )
    ignore_patterns: Annotated[list[str], NoDecode] = Field(
        default=[
            "*.tmp",
            "*.swp",
            "*.log",
            "tmp/*",
            "vendor/*",
            ".git/*",
            "node_modules/*",
        ],
        description="Glob patterns to ignore",
    )
    git_ignore: bool = Field(default=True, description="Honor .gitignore exclusions")

    @field_validator("filter", "ignore_patterns", mode="before")
    @classmethod
    def parse_patterns(cls, v: str | list[str]) -> list[str]:
        """Parse patterns from comma-separated string or list."""
        return _split_list(v)


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"
    file_path: Path | None = Field(default=None)


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="hotload")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Sub-settings
    hotload: HotloadSettings = Field(default_factory=HotloadSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings.
    """
    return Settings()

