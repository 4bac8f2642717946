"""Application settings and configuration."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CAFE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    storage_mode: Literal["local", "cloud"] = Field(
        default="local",
        description="Ledger backend: local flat files or networked database",
    )
    database_url: str = Field(
        default="sqlite:///./cafe_credits.db",
        description="Database connection URL (cloud mode)",
    )
    db_connect_attempts: int = Field(
        default=3,
        description="Connection attempts before giving up at startup",
    )

    # Paths
    data_dir: Path = Field(
        default=Path("."),
        description="Directory holding cafe_people.csv and cafe_credits.csv (local mode)",
    )
    exports_dir: Path = Field(
        default=Path("./exports"),
        description="Directory for exported files",
    )

    # Browser
    headless: bool = Field(
        default=False,
        description="Run the probing browser without a window",
    )
    browser_channel: str | None = Field(
        default="chrome",
        description="Playwright browser channel (None for bundled Chromium)",
    )

    # Email (Resend)
    resend_api_key: str | None = Field(
        default=None,
        description="Resend API key for credit emails",
    )
    resend_from_email: str | None = Field(
        default=None,
        description="Sender address for credit emails",
    )
    resend_from_name: str = Field(
        default="Cafe Cursor",
        description="Sender display name",
    )
    event_name: str = Field(
        default="Cafe Cursor",
        description="Event name shown in emails",
    )
    community_url: str | None = Field(
        default="https://www.tenfoldvictoria.com/",
        description="Optional community link shown at the bottom of emails",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log output format",
    )

    @property
    def has_cloud_config(self) -> bool:
        """Whether cloud mode has everything it needs to send emails."""
        return bool(self.resend_api_key and self.resend_from_email)


# Global settings instance
settings = Settings()
