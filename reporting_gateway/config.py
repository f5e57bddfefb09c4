from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ALLOWED_ORIGINS = "http://localhost:5173,http://localhost:3000,http://localhost:3001"

AVAILABLE_REPORTS = ["top_products", "sales_by_category", "sales_summary"]


class Settings(BaseSettings):
    """Reporting gateway settings loaded from the environment (or .env)."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Service Configuration
    SERVICE_NAME: str = "reporting-gateway"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Backing data / identity service
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"
    AUTH_TIMEOUT_SECONDS: float = 5.0

    # Security Configuration
    ALLOWED_ORIGINS: str = DEFAULT_ALLOWED_ORIGINS
    REPORTING_API_SECRET: Optional[str] = None
    ROLE_CACHE_TTL_SECONDS: float = 60.0

    # RPC Configuration
    MAX_RPC_TIMEOUT_MS: int = 10000

    # Rate Limiting Configuration
    RATE_LIMIT_BURST: int = 10
    RATE_REFILL_INTERVAL_MS: int = 6000
    RATE_REFILL_AMOUNT: int = 1

    # Audit Configuration
    AUDIT_QUEUE_SIZE: int = 1000

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # OpenAPI Configuration
    OPENAPI_TITLE: str = "Reporting Gateway"
    OPENAPI_DESCRIPTION: str = "Authenticated gateway for sales reports"

    @property
    def allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS (CSV), falling back to the localhost defaults."""
        raw = self.ALLOWED_ORIGINS or DEFAULT_ALLOWED_ORIGINS
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        return origins or DEFAULT_ALLOWED_ORIGINS.split(",")

    @property
    def secret_enabled(self) -> bool:
        return bool(self.REPORTING_API_SECRET)


def get_settings() -> Settings:
    return Settings()


settings = get_settings()
