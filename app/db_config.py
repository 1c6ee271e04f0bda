"""Database configuration and setup for different environments."""
import os

LOCAL_DEFAULT_URL = "sqlite:///maintenance.sqlite"

# Environment name -> env vars checked in order for the database URL
ENVIRONMENT_URL_VARS = {
    "local": ("LOCAL_DATABASE_URL",),
    "sandbox": ("SANDBOX_DATABASE_URL",),
    "production": ("PRODUCTION_DATABASE_URL", "DATABASE_URL"),
}

ENVIRONMENT_ALIASES = {
    "development": "local",
    "dev": "local",
    "staging": "sandbox",
    "stage": "sandbox",
    "prod": "production",
}


def normalize_database_url(database_url):
    """SQLAlchemy expects postgresql:// rather than the postgres:// scheme some hosts hand out."""
    if database_url and database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def get_database_engine_options():
    """Pool settings for hosted PostgreSQL (sandbox and production)."""
    from sqlalchemy.pool import QueuePool

    return {
        "pool_pre_ping": True,        # Detect and refresh dead connections before use
        "pool_recycle": 280,          # Recycle connections before the host's idle timeout
        "pool_size": 5,
        "max_overflow": 10,           # Burst headroom for the expiry job running alongside requests
        "pool_timeout": 30,
        "poolclass": QueuePool,
        "connect_args": {
            "sslmode": "require",
            "connect_timeout": 10,
            "application_name": "crane_maintenance_scheduler",
            "options": "-c statement_timeout=30000"  # 30s max per SQL statement
        },
    }


def resolve_environment(environment=None):
    """Canonical environment name; unknown names fall back to local."""
    if environment is None:
        environment = os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")
    environment = environment.lower()
    environment = ENVIRONMENT_ALIASES.get(environment, environment)
    return environment if environment in ENVIRONMENT_URL_VARS else "local"


def get_database_config(environment=None):
    """Get database configuration based on environment.

    Args:
        environment: Environment name ('local', 'sandbox', 'production')
                    If None, will be determined from ENVIRONMENT or FLASK_ENV env vars.

    Returns:
        tuple: (database_uri, engine_options). engine_options is None for local SQLite.

    Raises:
        ValueError: If a hosted environment has no database URL configured
    """
    environment = resolve_environment(environment)
    url_vars = ENVIRONMENT_URL_VARS[environment]
    database_url = next((os.environ[var] for var in url_vars if os.environ.get(var)), None)

    if environment == "local":
        return normalize_database_url(database_url or LOCAL_DEFAULT_URL), None

    if not database_url:
        raise ValueError(f"{' or '.join(url_vars)} must be set for {environment} environment")
    return normalize_database_url(database_url), get_database_engine_options()


def configure_database(app, config_overrides=None):
    """Configure database settings for the Flask app.

    Sets SQLALCHEMY_DATABASE_URI and SQLALCHEMY_ENGINE_OPTIONS on the app
    config based on the current environment. An explicit
    SQLALCHEMY_DATABASE_URI in ``config_overrides`` wins, so tests can point
    the app at an in-memory database before it is bound.

    Args:
        app: Flask application instance
        config_overrides: Optional mapping applied on top of the environment config
    """
    config_overrides = config_overrides or {}

    if config_overrides.get("SQLALCHEMY_DATABASE_URI"):
        database_uri = config_overrides["SQLALCHEMY_DATABASE_URI"]
        engine_options = config_overrides.get("SQLALCHEMY_ENGINE_OPTIONS")
    else:
        database_uri, engine_options = get_database_config(app.config.get("ENV"))

    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SQLALCHEMY_ECHO"] = False  # Set to True for SQL query debugging

    if engine_options:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options
