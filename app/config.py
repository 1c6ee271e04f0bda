import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with common settings."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # Facility calendar - all maintenance windows are evaluated on this local day
    FACILITY_TIMEZONE = os.environ.get("FACILITY_TIMEZONE", "Asia/Kolkata")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")  # None -> stdout only

    # Background jobs (month initialization + expiry check)
    MAINTENANCE_SCHEDULER_ENABLED = os.environ.get("MAINTENANCE_SCHEDULER_ENABLED", "true").lower() == "true"
    EXPIRY_CHECK_HOUR = int(os.environ.get("EXPIRY_CHECK_HOUR", "0"))
    EXPIRY_CHECK_MINUTE = int(os.environ.get("EXPIRY_CHECK_MINUTE", "15"))

    # Telegram notifications for missed windows
    TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")
    TELEGRAM_TIMEOUT_SECONDS = 10

    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Create tables on startup (local sqlite); other environments run migrations/
    AUTO_CREATE_TABLES = os.environ.get("AUTO_CREATE_TABLES", "false").lower() == "true"


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True
    AUTO_CREATE_TABLES = os.environ.get("AUTO_CREATE_TABLES", "true").lower() == "true"


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


def get_config():
    """Config class for FLASK_ENV / ENVIRONMENT (local, sandbox or production; local if unset)."""
    from app.db_config import resolve_environment

    return {
        "local": LocalConfig,
        "sandbox": SandboxConfig,
        "production": ProductionConfig,
    }[resolve_environment()]
