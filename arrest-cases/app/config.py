from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    app_id: str = "default-app-id"
    data_dir: Path = BASE_DIR / "data"

    discord_webhook_url: str = Field(default="", repr=False)
    webhook_username: str = "Arrest Management System"
    webhook_avatar_url: str = "https://placehold.co/128x128/007bff/ffffff?text=AMS"

    gemini_api_key: str = Field(default="", repr=False)
    gemini_model: str = "gemini-2.0-flash"

    initial_auth_token: str = Field(default="", repr=False)
    session_hours: int = 24

    seed_demo_data: bool = False

    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    model_config = {
        "env_file": BASE_DIR / ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
