"""Runtime configuration for bundle installation."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__


def _default_local_repository() -> str:
    return str(Path.home() / ".m2" / "repository")


class Settings(BaseSettings):
    """Configuration values mapped from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field("Bundle Support API")
    version: str = Field(__version__)
    log_level: str = Field("INFO")

    # Target Sling instance (Felix web console)
    sling_url: str = Field("http://localhost:8080/system/console")
    sling_user: str = Field("admin")
    sling_password: str = Field("admin")
    bundle_start: bool = Field(True)
    bundle_start_level: int = Field(20)
    refresh_packages: bool = Field(True)

    # Maven repositories
    local_repository: str = Field(default_factory=_default_local_repository)
    remote_repositories: List[str] = Field(
        default_factory=lambda: ["central::https://repo.maven.apache.org/maven2"]
    )
    repository_username: Optional[str] = Field(None)
    repository_password: Optional[str] = Field(None)
    repository_update_policy: str = Field("daily")
    repository_checksum_policy: str = Field("warn")
    # Policy forced onto every remote repository for explicit installs
    install_update_policy: str = Field("always")
    offline: bool = Field(False)

    http_timeout: float = Field(30.0)


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance for dependency injection."""
    return Settings()
