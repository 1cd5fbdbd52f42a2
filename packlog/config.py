"""Configuration settings for packlog."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from packlog.utils import get_packlog_home


class Settings(BaseSettings):
    """Settings loaded from ``PACKLOG_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="PACKLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Local storage
    data_dir: Optional[Path] = None
    db_path: Optional[Path] = None
    store_quota_bytes: Optional[int] = None  # None = no limit beyond the disk

    # Remote replica (Supabase)
    remote_url: Optional[str] = None
    remote_key: Optional[str] = None
    remote_table: str = "bills"
    remote_page_size: int = 1000

    # App
    log_level: str = "INFO"
    auto_sync: bool = True

    def resolved_data_dir(self) -> Path:
        return (self.data_dir or get_packlog_home()).expanduser()

    def resolved_db_path(self) -> Path:
        if self.db_path is not None:
            return self.db_path.expanduser()
        return self.resolved_data_dir() / "packlog.db"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
