from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://cadence:cadence@db:5432/cadence"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://admin.example.com,https://example.com"
    CORS_ORIGINS: str = "*"

    # Default window for GET /recurrence/upcoming, in days around "today".
    FORECAST_HORIZON_DAYS: int = 30
    FORECAST_LOOK_BEHIND_DAYS: int = 7

    # Widest window a single expansion request may ask for.
    MAX_EXPANSION_SPAN_DAYS: int = 3660

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
