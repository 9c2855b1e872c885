from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Twilight Switch Backend"
    environment: Literal["production", "development"] = "production"

    # Storage
    sqlite_path: str = Field(default="twilight.db")

    # Logging
    log_level: str = "INFO"
    log_file: str = "twilight.log"  # empty string disables the file handler

    # Defaults used when the event log is empty
    default_mode: Literal["auto", "manual"] = "auto"
    default_threshold_low: int = 100
    default_threshold_high: int = 500  # stored only, never used by the decision
    default_manual_relay_state: bool = False

    # Reporting
    page_size_default: int = 10
    page_size_max: int = 1000
    activity_scan_rows: int = 500

    # Operator gate: when set, settings/relay/history writes need this token
    api_token: Optional[str] = None

    # Node simulator
    sim_server_url: str = "http://127.0.0.1:8000"
    sim_interval_seconds: float = 5.0
    sim_timeout_seconds: float = 5.0


settings = Settings()
