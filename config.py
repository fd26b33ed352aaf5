"""
config.py
Application settings (env vars with GYM_ prefix, or a local .env file).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Gym admin settings"""

    model_config = SettingsConfigDict(env_prefix="GYM_", case_sensitive=False)

    db_file: Path = Field(default=Path(__file__).with_name("gym.db"), description="SQLite database path")

    log_level: str = Field(default="INFO", description="stderr log level")
    log_file: Optional[str] = Field(default=None, description="Optional rotating log file path")

    # Dashboard windows (days)
    expiring_window_days: int = 7
    trend_days: int = 7
    active_window_days: int = 30
    recent_activity_limit: int = 8


settings = Settings()
