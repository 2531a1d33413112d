import os

from dotenv import load_dotenv

from src.shared.utils import get_logger

logger = get_logger(__name__)


load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application configuration settings."""

    # Environment
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", None)
    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))
    DB_COMMAND_TIMEOUT = int(os.getenv("DB_COMMAND_TIMEOUT", "60"))

    # Webhook authentication
    WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET", None)
    WEBHOOK_API_KEY = os.getenv("WEBHOOK_API_KEY", None)
    WEBHOOK_TIMESTAMP_TOLERANCE = int(os.getenv("WEBHOOK_TIMESTAMP_TOLERANCE", "300"))
    WEBHOOK_ENFORCE_TIMESTAMP = _env_flag("WEBHOOK_ENFORCE_TIMESTAMP", "true")
    WEBHOOK_REQUIRE_TIMESTAMP = _env_flag("WEBHOOK_REQUIRE_TIMESTAMP", "false")

    # Rate Limiting
    WEBHOOK_RATE_LIMIT = os.getenv("WEBHOOK_RATE_LIMIT", "100/minute")
    RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
    RATE_LIMIT_EXEMPT_IPS = os.getenv("RATE_LIMIT_EXEMPT_IPS", "").split(",")
    # Clean up IPs
    RATE_LIMIT_EXEMPT_IPS = [ip.strip() for ip in RATE_LIMIT_EXEMPT_IPS if ip.strip()]

    # API
    API_PREFIX = "/api"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
