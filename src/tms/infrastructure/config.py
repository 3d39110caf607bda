from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TMS_", env_file=".env", extra="ignore")

    data_dir: Path = Path("data")
    log_level: str = "INFO"
    retry_attempts: int = 5
    retry_base_delay: float = 0.01
    compensation_attempts: int = 3
