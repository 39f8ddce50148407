from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "OverTaxed"
    APP_URL: str = "http://localhost:3000"

    # Shared secrets. Unset means the guarded endpoints refuse all work.
    CRON_SECRET: Optional[str] = None
    ADMIN_API_KEY: Optional[str] = None

    # Outbound email
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: str = "noreply@overtaxed.com"
    SMTP_USE_TLS: bool = True

    # Cook County Open Data (Socrata)
    COOK_COUNTY_BASE_URL: str = "https://datacatalog.cookcountyil.gov/resource"
    COOK_COUNTY_APP_TOKEN: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 15.0

    def is_email_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_PORT and self.SMTP_USER and self.SMTP_PASSWORD)

    def account_link(self) -> str:
        return f"{self.APP_URL}/account"

    def terms_link(self) -> str:
        return f"{self.APP_URL}/terms"

    def appeal_link(self, appeal_id: str) -> str:
        return f"{self.APP_URL}/appeals/{appeal_id}"

    def property_link(self, property_id: str) -> str:
        return f"{self.APP_URL}/properties/{property_id}"


settings = Settings()
