import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./neti.db")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "neti-admin-secret-key-change-in-production")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = "INFO"

    # Session
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    AUTH_COOKIE_NAME: str = "admin-token"

    # Event store
    EVENTS_DATA_FILE: str = "data/events.json"
    EVENTS_SNAPSHOT_ENV: str = "EVENTS_DATA"

    # Upstream backend for the news proxy
    LARAVEL_BASE_URL: str = "http://localhost:8000"
    API_TIMEOUT: float = 10.0

    DB_TEST_TIMEOUT: float = 10.0

    # Seeded super admin
    ADMIN_EMAIL: str = "admin@neti.com.ph"
    ADMIN_PASSWORD: str = "admin123"
    ADMIN_NAME: str = "NETI Super Administrator"

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"


settings = Settings()
