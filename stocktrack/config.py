from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Service settings, read from the environment or a local .env file.
    """

    ENV: str = Field(default="dev")

    # Auth
    JWT_SECRET: str = Field(default="dev-temp-secret")
    JWT_EXPIRE_MINUTES: int = Field(default=24 * 60)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    JSON_LOG: bool = Field(default=True)

    # Inventory
    LOW_STOCK_THRESHOLD: int = Field(default=5, ge=0)
    SEED_DEMO_DATA: bool = Field(default=True)

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
