"""Application settings and logging setup."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read from PLANNER_* environment variables, falling back to a local .env.
    model_config = SettingsConfigDict(env_prefix="PLANNER_", env_file=".env", extra="ignore")

    app_name: str = "Event Planner Service"
    log_level: str = "INFO"
    mail_from: str = "Event Manager <noreply@eventmanager.com>"
    seed_sample_data: bool = True
    upcoming_task_days: int = 7


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
