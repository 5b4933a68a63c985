from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from functools import lru_cache
from typing import Optional


# Secrets that must never reach production
WEAK_SECRET_KEYS = [
    "development-secret-key-change-in-production",
    "changeme",
    "secret",
    "password",
    "dev",
    "test",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/meter_ops"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # Auth (tokens are issued by the managed backend, verified here)
    SECRET_KEY: str = "development-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Order store backend: "database" (work_orders table) or "rest" (PostgREST API)
    ORDER_STORE_BACKEND: str = "database"
    ORDER_STORE_URL: Optional[str] = None
    ORDER_STORE_API_KEY: Optional[str] = None
    ORDER_STORE_TIMEOUT_SECONDS: float = 15.0

    # Order execution
    FLUSH_DELAY_SECONDS: float = 2.0
    MIN_EVIDENCE_COUNT: int = 2
    GEOLOCATION_TIMEOUT_SECONDS: float = 10.0
    LOCATION_MAX_AGE_MINUTES: int = 5
    MEDIA_BASE_URL: str = "/media"

    # Status names, resolved to ids by the order store
    STATUS_IN_EXECUTION: str = "IN EXECUTION"
    STATUS_SECOND_VISIT_PENDING: str = "SECOND VISIT PENDING"
    STATUS_CLOSED_BY_AGENT: str = "CLOSED BY AGENT"
    READ_ONLY_STATUSES: list[str] = ["CLOSED BY AGENT"]

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @model_validator(mode='after')
    def validate_production_secret(self) -> "Settings":
        """Reject weak secrets and force DEBUG off in production."""
        if self.ENVIRONMENT == "production":
            if self.SECRET_KEY in WEAK_SECRET_KEYS:
                raise ValueError("SECRET_KEY uses a known weak value")
            if len(self.SECRET_KEY) < 32:
                raise ValueError("SECRET_KEY must be at least 32 characters in production")
            self.DEBUG = False
        return self

    @model_validator(mode='after')
    def validate_order_store(self) -> "Settings":
        if self.ORDER_STORE_BACKEND not in ("database", "rest"):
            raise ValueError(f"Unknown ORDER_STORE_BACKEND '{self.ORDER_STORE_BACKEND}'")
        if self.ORDER_STORE_BACKEND == "rest" and not (self.ORDER_STORE_URL and self.ORDER_STORE_API_KEY):
            raise ValueError("ORDER_STORE_URL and ORDER_STORE_API_KEY are required for the rest backend")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def DOCS_ENABLED(self) -> bool:
        """API docs are only served outside production."""
        return not self.is_production

    @property
    def sqlalchemy_echo(self) -> bool:
        # SECURITY: echo would leak bound parameters into the logs
        return self.DEBUG and not self.is_production

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
