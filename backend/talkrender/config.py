"""
Service configuration.

Values are read from the environment (prefix TALKRENDER_) and an optional
.env file in the working directory. The external renderer location keeps its
historical variable name, R3VOC_REPO_LOCATION.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


GIGABYTE = 1024 * 1024 * 1024

DEFAULT_SCHEDULE_URL = "https://import.c3voc.de/schedule/realraum.json?showall=yes"


class Settings(BaseSettings):
    """Runtime settings for the service and the operator CLI."""

    model_config = SettingsConfigDict(
        env_prefix="TALKRENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    # External renderer
    repo_location: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("R3VOC_REPO_LOCATION", "TALKRENDER_REPO_LOCATION"),
        description="Root of the external renderer repository",
    )
    generator_project: str = Field(
        default="r3talks",
        description="Project folder inside intro-outro-generator",
    )
    asset_timeout_seconds: Optional[float] = Field(default=1800, gt=0)
    composition_timeout_seconds: Optional[float] = Field(default=4 * 3600, gt=0)
    final_extension: str = "mkv"

    # Storage
    upload_dir: Path = Path("uploads")
    cache_dir: Path = Path("cache")
    db_path: Path = Path("db.sqlite")
    max_upload_bytes: int = Field(default=5 * GIGABYTE, ge=1)

    # Schedule feed
    schedule_url: str = DEFAULT_SCHEDULE_URL
    schedule_timeout_seconds: float = Field(default=30, gt=0)
    refresh_schedule_on_startup: bool = True

    # HTTP service
    host: str = "localhost"
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = "INFO"
    cors_origins: str = ""

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse the comma-separated CORS origins, dropping empty entries."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def upload_tmp_dir(self) -> Path:
        """
        Landing directory for inbound files before placement.

        Lives beside upload_dir (uploads -> .uploads-incoming), outside every guid directory.
        """
        return self.upload_dir.parent / f".{self.upload_dir.name}-incoming"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, parsed once."""
    return Settings()
