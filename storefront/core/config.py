"""
Centralized application configuration
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from the environment and .env"""

    # API Settings
    API_TITLE: str = "Storefront API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "JSON API for the storefront: catalog, cart, checkout and accounts"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql://localhost:5432/storefront"
    DB_CONNECT_RETRIES: int = 3
    DB_RETRY_DELAY: float = 1.0

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:3000,https://yourdomain.com" or '["http://localhost:3000"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000,http://localhost:3001"

    # Order lock: also take a PostgreSQL advisory lock (shared across workers)
    ORDER_LOCK_ADVISORY: bool = True

    # Catalog caching
    CACHE_TTL_SECONDS: int = 3600

    # Pagination
    DEFAULT_PER_PAGE: int = 6
    SEARCH_PER_PAGE: int = 20
    MAX_PER_PAGE: int = 100

    # Search: "sql" or "elasticsearch"
    SEARCH_BACKEND: str = "sql"
    ELASTICSEARCH_URL: str = "http://localhost:9200"
    ELASTICSEARCH_INDEX: str = "products"
    ELASTICSEARCH_TIMEOUT: float = 10.0

    # Authentication cookie
    API_KEY_COOKIE: str = "storefront_api_key"
    COOKIE_SECURE: bool = False

    # Verification and notifications
    PHONE_RESEND_INTERVAL_SECONDS: int = 120
    RESET_PASSWORD_WITHIN_HOURS: int = 6
    MIN_PASSWORD_LENGTH: int = 6
    DEFAULT_FROM_EMAIL: str = "no-reply@storefront.local"
    FRONTEND_URL: str = "http://localhost:3001"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        import json
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
