from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Notion Calendar Feed"
    app_version: str = "0.1.0"
    notion_api_key: str = ""
    notion_database_id: str = ""
    notion_api_version: str = "2022-06-28"
    notion_api_base_url: str = "https://api.notion.com/v1"
    notion_api_timeout_seconds: float = 10.0
    notion_title_property_id: str = "title"
    notion_page_size: int = 100
    secret_url: str = "super-secret-url-you-will-never-guess"
    calendar_name: str = "Notion Derived Calendar"
    calendar_product_id: str = "-//Notion Calendar Feed//Notion Derived Calendar//EN"
    calendar_timezone: str = "Europe/Amsterdam"
    calendar_uid_domain: str = "notion-calendar-feed.local"
    feed_cache_path: str = "/tmp/temporary_file.ics"
    refresh_interval_minutes: float = 30.0
    refresh_enabled: bool = True
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @field_validator("notion_api_key", "notion_database_id", "secret_url", mode="before")
    @classmethod
    def strip_text(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("secret_url")
    @classmethod
    def normalize_secret_url(cls, value: str) -> str:
        cleaned = value.strip("/")
        if not cleaned:
            return "super-secret-url-you-will-never-guess"
        return cleaned

    @field_validator("notion_api_timeout_seconds", mode="before")
    @classmethod
    def normalize_notion_timeout(cls, value: float | str) -> float:
        parsed_value = float(value)
        if parsed_value <= 0:
            return 10.0
        return parsed_value

    @field_validator("notion_page_size", mode="before")
    @classmethod
    def normalize_page_size(cls, value: int | str) -> int:
        parsed_value = int(value)
        # Notion caps page_size at 100.
        return min(max(parsed_value, 1), 100)

    @field_validator("refresh_interval_minutes", mode="before")
    @classmethod
    def normalize_refresh_interval(cls, value: float | str) -> float:
        parsed_value = float(value)
        if parsed_value <= 0:
            return 30.0
        return parsed_value

    @field_validator("calendar_timezone", mode="before")
    @classmethod
    def validate_calendar_timezone(cls, value: str) -> str:
        cleaned = str(value).strip()
        try:
            ZoneInfo(cleaned)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown calendar timezone: {cleaned!r}") from exc
        return cleaned

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_minutes * 60

    def has_notion_credentials(self) -> bool:
        return bool(self.notion_api_key and self.notion_database_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()
