from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    APP_NAME: str = "freightfee-api"
    ENV: str = Field(default="development", validation_alias="APP_ENV")
    LOG_LEVEL: str = "INFO"

    PLATFORM_CURRENCY: str = "ETB"
    AUTO_SETTLE_ON_POD_VERIFY: bool = True
    # Ceiling applied to corridor promo percentages before discounting.
    MAX_PROMO_DISCOUNT_PCT: float = 100.0

    SESSION_SECRET_KEY: str = "change-this-session-secret"
    SESSION_COOKIE_DOMAIN: str = ""
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return (self.ENV or "").strip().lower() in {"production", "prod"}


settings = CoreSettings()


def get_allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",") if origin.strip()]
