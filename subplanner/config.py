from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

BUNDLED_TEMPLATES_PATH = Path(__file__).parent / "data" / "templates.csv"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./subplanner.db"
    debug: bool = True
    log_level: str = "INFO"

    # Persisted collection
    storage_key: str = "subplanner_subscriptions"
    legacy_storage_keys: list[str] = ["subscriptions"]  # Never read, only reported

    # Template catalog
    templates_url: Optional[str] = None  # Published CSV export, preferred source
    templates_path: str = str(BUNDLED_TEMPLATES_PATH)
    templates_timeout_seconds: float = 10.0

    # Scheduler settings
    enable_scheduler: bool = True
    templates_sheet_url: Optional[str] = None  # Spreadsheet to sync the bundled file from
    template_sync_hour: int = 3  # Hour in UTC to run the daily template sync

    class Config:
        env_file = ".env"


settings = Settings()
