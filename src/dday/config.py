"""Runtime settings resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dday.models import Role

DEFAULT_DB_FILE = "dday_clients.json"


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Where data lives, where notifications go and who is acting."""

    db_path: str = DEFAULT_DB_FILE
    webhook_url: str | None = None
    webhook_dry_run: bool = False
    role: Role = Role.ADMIN
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        env_db = os.getenv("DDAY_DB")
        env_webhook = os.getenv("DDAY_WEBHOOK_URL")
        env_role = os.getenv("DDAY_ROLE")
        env_level = os.getenv("DDAY_LOG_LEVEL")
        if env_db:
            self.db_path = env_db
        if env_webhook:
            self.webhook_url = env_webhook.rstrip("/")
        if _env_flag("DDAY_WEBHOOK_DRY_RUN"):
            self.webhook_dry_run = True
        if env_role:
            self.role = Role(env_role.strip().lower())
        if env_level:
            self.log_level = env_level.strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
