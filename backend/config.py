"""Runtime settings, read from the environment and an optional ``.env`` file."""

import logging
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("backend.config")


class Settings(BaseSettings):
    PROJECT_NAME: str = "Party Hub API"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"
    # Emit one JSON object per line instead of plain text.
    LOG_JSON: bool = False

    MAX_NAME_LENGTH: int = 24
    ROOM_ID_LENGTH: int = 6
    # Attempts at committing one intent before giving up on version conflicts.
    COMMIT_RETRIES: int = 3
    # Game kinds that cannot be created right now.
    MAINTENANCE_GAMES: List[str] = []

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    settings_instance = Settings()
    logger.debug("Loaded settings for %s", settings_instance.PROJECT_NAME)
    return settings_instance


settings = get_settings()
