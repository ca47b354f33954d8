# src/backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",            # auto-load .env (optional; process env wins)
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ENV: str = "dev"
    APP_NAME: str = "Monopoly Admin Center"
    LOG_LEVEL: str = "INFO"
    STATIC_VERSION: str = "1"

    # Document store (SQLAlchemy async URL)
    DATABASE_URL: str = "sqlite+aiosqlite:///./monopoly_admin.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Sessions / security (cookie for SessionMiddleware)
    SESSION_SECRET: str = "dev-only-please-change"
    SESSION_SAMESITE: str = "lax"      # "lax" | "strict" | "none"
    SESSION_HTTPS_ONLY: bool = True    # True in prod (requires HTTPS)

    # Redis / Flash messaging
    REDIS_URL: str = "redis://localhost:6379/0"
    FLASH_TTL: int = 600               # seconds
    FLASH_PREFIX: str = "flashq:"

    # Admin sign-in
    JWT_SECRET: str = "change-this-in-prod"
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    COOKIE_SECURE: bool = False

    # Geocoding provider
    GOOGLE_MAPS_API_KEY: str = ""
    GEOCODE_TIMEOUT_SECONDS: float = 1.0

    # Hosted model for scan trend analysis
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"

    TIMEZONE: str = "America/Chicago"

settings = Settings()
