# whenavailable/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379/0"
    base_url: str = "http://localhost:3000"

    # Email (SendGrid). Empty key disables delivery.
    sendgrid_api_key: str = ""
    sendgrid_from_email: str = "noreply@whenavailable.app"
    sendgrid_from_name: str = "WhenAvailable"

    rate_limit_max_links_per_hour: int = 10
    notifications_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def email_configured(self) -> bool:
        return bool(self.sendgrid_api_key and self.sendgrid_from_email)

    def shareable_url(self, slot_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/{slot_id}"


settings = Settings()
