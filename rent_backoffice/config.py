"""Application Configuration"""

from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Rent Back Office"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # CORS (5173 = Vite default dev server)
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    ALLOWED_METHODS: str = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
    ALLOWED_HEADERS: str = "*"

    # Billing calendar (Ontario landlord)
    BILLING_TIMEZONE: str = "America/Toronto"
    N4_THRESHOLD_DAYS: int = 14
    L1_THRESHOLD_DAYS: int = 15
    LATE_REMINDER_INTERVAL_DAYS: int = 1

    # Payment links (Interac e-Transfer request)
    PAYMENT_LINK_BASE_URL: str = "https://interac.mock/request"

    # WhatsApp Cloud API
    WHATSAPP_API_BASE_URL: str = "https://graph.facebook.com"
    WHATSAPP_API_VERSION: str = "v18.0"
    WHATSAPP_PHONE_NUMBER_ID: str = ""
    WHATSAPP_ACCESS_TOKEN: str = ""
    WHATSAPP_TEMPLATE_LANGUAGE: str = "en_US"
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into a list"""
        return [origin.strip() for origin in v.split(",")]

    @field_validator("ALLOWED_METHODS")
    @classmethod
    def parse_methods(cls, v: str) -> List[str]:
        """Parse comma-separated methods into a list"""
        return [method.strip() for method in v.split(",")]

    @field_validator("L1_THRESHOLD_DAYS")
    @classmethod
    def l1_after_n4(cls, v: int, info) -> int:
        """Second-tier notice cannot precede the first tier"""
        n4 = info.data.get("N4_THRESHOLD_DAYS")
        if n4 is not None and v < n4:
            raise ValueError("L1_THRESHOLD_DAYS must be >= N4_THRESHOLD_DAYS")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT.lower() == "test"


# Global settings instance
settings = Settings()
