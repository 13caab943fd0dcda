"""Configuration objects for the clinic slots agent."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration pulled from environment variables."""

    target_url: Optional[str] = Field(
        default=None,
        validation_alias="TARGET_CLINIC_URL",
        description="Booking calendar entry point used by the API and CLI.",
    )
    clinic_label: str = Field(default="Aspit Clinic", validation_alias="CLINIC_LABEL")
    proxy_list: str = Field(
        default="",
        validation_alias="PROXY_LIST",
        description="Comma separated proxy URIs rotated round-robin.",
    )
    headless: bool = Field(default=True, validation_alias="SCRAPER_HEADLESS")
    timeout_seconds: int = Field(default=30, validation_alias="SCRAPER_TIMEOUT_SECONDS")
    click_timeout_ms: int = Field(default=2000, validation_alias="SCRAPER_CLICK_TIMEOUT_MS")

    initial_settle_ms: int = Field(default=3000, validation_alias="SCRAPER_INITIAL_SETTLE_MS")
    reload_settle_ms: int = Field(default=5000, validation_alias="SCRAPER_RELOAD_SETTLE_MS")
    click_settle_ms: int = Field(default=1500, validation_alias="SCRAPER_CLICK_SETTLE_MS")
    paging_settle_ms: int = Field(default=2000, validation_alias="SCRAPER_PAGING_SETTLE_MS")
    month_settle_ms: int = Field(default=3000, validation_alias="SCRAPER_MONTH_SETTLE_MS")
    date_settle_ms: int = Field(default=2000, validation_alias="SCRAPER_DATE_SETTLE_MS")
    scroll_settle_ms: int = Field(default=1000, validation_alias="SCRAPER_SCROLL_SETTLE_MS")
    final_settle_ms: int = Field(default=5000, validation_alias="SCRAPER_FINAL_SETTLE_MS")

    max_calendar_clicks: int = Field(default=2, validation_alias="SCRAPER_MAX_CALENDAR_CLICKS")
    max_paging_clicks: int = Field(default=2, validation_alias="SCRAPER_MAX_PAGING_CLICKS")
    max_date_clicks: int = Field(default=10, validation_alias="SCRAPER_MAX_DATE_CLICKS")
    max_button_clicks: int = Field(default=5, validation_alias="SCRAPER_MAX_BUTTON_CLICKS")

    relevant_host_list: str = Field(
        default="aspit.no,timebestilling",
        validation_alias="SCRAPER_RELEVANT_HOSTS",
        description="Comma separated host tokens whose data URLs are captured.",
    )
    include_raw_data: bool = Field(default=True, validation_alias="SCRAPER_INCLUDE_RAW_DATA")
    demo_on_launch_failure: bool = Field(
        default=False,
        validation_alias=AliasChoices("SCRAPER_DEMO_ON_LAUNCH_FAILURE", "VERCEL"),
        description="Set in hosting environments that cannot run the bundled browser.",
    )
    cache_ttl_seconds: int = Field(default=300, validation_alias="SCRAPER_CACHE_TTL_SECONDS")
    viewport_width: int = Field(default=1280, validation_alias="SCRAPER_VIEWPORT_WIDTH")
    viewport_height: int = Field(default=720, validation_alias="SCRAPER_VIEWPORT_HEIGHT")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def proxies(self) -> list[str]:
        """Configured proxies with blanks removed."""
        return [item.strip() for item in self.proxy_list.split(",") if item.strip()]

    @property
    def relevant_hosts(self) -> list[str]:
        return [item.strip() for item in self.relevant_host_list.split(",") if item.strip()]

    @property
    def navigation_timeout_ms(self) -> int:
        return self.timeout_seconds * 1000
