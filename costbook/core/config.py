from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """
    Application configuration settings.
    Loads from environment variables or .env file.
    """

    # Application
    APP_NAME: str = "Costbook API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    DATABASE_NAME: str = "costbook_db"

    # Frontend origins allowed by CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]
    PORTAL_BASE_URL: str = "http://localhost:3000"

    # Pricing defaults (percentages, 25.0 = 25%)
    DEFAULT_MARKUP_PERCENT: float = 25.0
    MIN_MARKUP_PERCENT: float = -100.0
    DEFAULT_CONTINGENCY_PERCENT: float = 10.0
    DEFAULT_TARGET_MARGIN_PERCENT: float = 20.0

    # Below this margin a quote is "marginal" rather than "acceptable"
    MARGINAL_MARGIN_PERCENT: float = 10.0

    # Listing limits
    RECENTLY_VIEWED_LIMIT: int = 10
    SYNC_HISTORY_LIMIT: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
