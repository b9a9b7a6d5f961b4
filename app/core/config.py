from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./goal_engine.db"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # IANA zone used for calendar-day keys, e.g. "Europe/Madrid".
    # Empty means the process local zone.
    TIMEZONE: Optional[str] = None

    # Name of the single persisted snapshot row.
    STORE_KEY: str = "yearofhorse-store"
    DEFAULT_TOTAL_DAYS: int = 21

    # "history_average": mean daily score over logged days.
    # "days_required":   credited days / total_days.
    COMPLETION_POLICY: Literal["history_average", "days_required"] = "history_average"

    # Archive the active goal as completed once completion reaches 100%.
    AUTO_COMPLETE_GOALS: bool = False

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
