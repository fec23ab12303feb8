"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Field names map to upper-cased env vars (github_token -> GITHUB_TOKEN).
An optional .env file in the working directory is read as well.

Layer rule: core/ is the kernel. This module may not import from cache/ or
policies/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("orgaudit.config")


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "org-policy-auditor"


class Settings(BaseSettings):
    """Settings loaded from environment variables and .env file.

    Every field has a default so Settings() works in tests without a .env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # GitHub
    # ------------------------------------------------------------------

    # Empty string means unauthenticated (60 req/hour -- only useful for tiny orgs).
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    request_timeout: float = 30.0

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    quota_low_water_mark: int = 50
    quota_padding_seconds: int = 120

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    cache_dir: Path = _default_cache_dir()

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    governance_team_name: str = "microsoft"
    bots_team_name: str = "microsoft-bots"
    affiliation_name: str = "Microsoft"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_quota(self) -> "Settings":
        if self.quota_low_water_mark < 0:
            raise ValueError("QUOTA_LOW_WATER_MARK must not be negative.")
        if self.quota_padding_seconds < 0:
            raise ValueError("QUOTA_PADDING_SECONDS must not be negative.")
        if not self.github_token:
            logger.warning("GITHUB_TOKEN is not set. Requests will be unauthenticated and heavily rate limited.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
