"""
Gitty configuration

Environment-based settings for the server, CLI and refactor planner.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from ``GITTY_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="GITTY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "Gitty"
    host: str = "127.0.0.1"
    port: int = Field(
        default=3080, validation_alias=AliasChoices("GITTY_PORT", "PORT")
    )
    debug: bool = False

    # Where the settings store keeps its JSON file
    data_dir: Path = Path.home() / ".gitty"

    history_limit: int = 100

    # Refactor planner
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITTY_GEMINI_API_KEY", "GEMINI_API_KEY"),
    )
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    planner_timeout: float = 60.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
