from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SUPABASE_URL: str
    SUPABASE_KEY: str
    SUPABASE_SERVICE_KEY: str

    REDIS_URL: str = "redis://localhost:6379"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # Calendar-day comparisons (same-day returns, "today") use this zone
    BUSINESS_TIMEZONE: str = "UTC"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    DASHBOARD_CACHE_SECONDS: int = 30

    # False accepts any status value regardless of the current one
    ENFORCE_STATUS_TRANSITIONS: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
