import os
import atexit

from flask import Flask, jsonify
from flask_cors import CORS

# database imports
from app.models import db

# scheduler imports
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from app.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def init_scheduler(app):
    """Start the background scheduler: daily maintenance run plus a heartbeat."""
    from app.maintenance.jobs import run_daily_maintenance

    if not app.config.get("MAINTENANCE_SCHEDULER_ENABLED", True):
        logger.info("Maintenance scheduler disabled by configuration")
        return None

    # --- Prevent scheduler duplication in multi-worker environments ---
    # Only run the scheduler on one instance
    if os.environ.get("WERKZEUG_RUN_MAIN") != "true" and not os.environ.get("IS_SCHEDULER_INSTANCE"):
        logger.info("Skipping scheduler startup on this worker")
        return None

    executors = {"default": ThreadPoolExecutor(3)}
    scheduler = BackgroundScheduler(executors=executors, timezone=app.config["FACILITY_TIMEZONE"])

    scheduler.add_job(
        func=run_daily_maintenance,
        args=[app],
        trigger="cron",
        hour=app.config.get("EXPIRY_CHECK_HOUR", 0),
        minute=app.config.get("EXPIRY_CHECK_MINUTE", 15),
        id="daily_maintenance",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    scheduler.add_job(
        func=lambda: logger.info("Scheduler heartbeat: alive"),
        trigger="interval",
        minutes=30,
        id="heartbeat",
        replace_existing=True,
    )

    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))

    logger.info(
        "Scheduler started",
        daily_maintenance_hour=app.config.get("EXPIRY_CHECK_HOUR", 0),
        timezone=app.config["FACILITY_TIMEZONE"],
    )
    return scheduler


def create_app(config_overrides=None):
    """
    Application factory.

    Args:
        config_overrides: Optional mapping applied on top of the environment
            config before the database is bound (tests pass TESTING and an
            in-memory SQLALCHEMY_DATABASE_URI here).
    """
    # Import config after dotenv is loaded
    from app.config import get_config
    from app.db_config import configure_database
    from app.auth.routes import auth_bp
    from app.maintenance.routes import maintenance_bp

    config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(log_level=app.config.get("LOG_LEVEL", "INFO"), log_file=app.config.get("LOG_FILE"))

    configure_database(app, config_overrides)

    logger.info(f"Starting application in {config_class.ENV} environment")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')[:50]}...")

    # Get allowed origins from environment variable
    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    db.init_app(app)

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    @app.route("/")
    def index():
        return jsonify({"status": "ok", "service": "crane-maintenance-scheduler"}), 200

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(maintenance_bp, url_prefix="/api/maintenance-schedule")

    # Global error handler to ensure CORS headers are always included
    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle all exceptions and return a JSON body"""
        logger.error("Unhandled exception", error=str(e), exc_info=True)

        if hasattr(e, 'code') and isinstance(e.code, int):
            status_code = e.code
        elif hasattr(e, 'status_code'):
            status_code = e.status_code
        else:
            status_code = 500

        response = jsonify({
            "success": False,
            "error": str(e),
            "message": "An error occurred processing your request"
        })
        response.status_code = status_code
        return response

    # Initialize scheduler safely
    if not app.config.get("TESTING"):
        try:
            init_scheduler(app)
        except Exception as e:
            logger.error("Failed to start scheduler", error=str(e))

    return app
