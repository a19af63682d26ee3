"""Initialize the Flask app and its blueprints."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .core import constants


def _env_int(name, default):
    return int(os.environ.get(name) or default)


def _env_float(name, default):
    return float(os.environ.get(name) or default)


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from env, a local file or defaults."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        TRANSACTION_MAX_ATTEMPTS=_env_int(
            "TRANSACTION_MAX_ATTEMPTS", constants.TRANSACTION_MAX_ATTEMPTS
        ),
        TRANSACTION_TIMEOUT_SECONDS=_env_float(
            "TRANSACTION_TIMEOUT_SECONDS", constants.TRANSACTION_TIMEOUT_SECONDS
        ),
        PRIORITY_RELIABILITY_WEIGHT=_env_float(
            "PRIORITY_RELIABILITY_WEIGHT", constants.PRIORITY_RELIABILITY_WEIGHT
        ),
        PRIORITY_SENIORITY_WEIGHT=_env_float(
            "PRIORITY_SENIORITY_WEIGHT", constants.PRIORITY_SENIORITY_WEIGHT
        ),
        PRIORITY_SENIORITY_SATURATION_DAYS=_env_int(
            "PRIORITY_SENIORITY_SATURATION_DAYS",
            constants.PRIORITY_SENIORITY_SATURATION_DAYS,
        ),
        PRIORITY_DEFAULT_SCORE=_env_int(
            "PRIORITY_DEFAULT_SCORE", constants.PRIORITY_DEFAULT_SCORE
        ),
        PRIORITY_HISTORY_LIMIT=_env_int(
            "PRIORITY_HISTORY_LIMIT", constants.PRIORITY_HISTORY_LIMIT
        ),
        SERIES_INSTANCE_LIMIT=_env_int(
            "SERIES_INSTANCE_LIMIT", constants.SERIES_INSTANCE_LIMIT
        ),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Register blueprints
    from . import game as game_bp

    app.register_blueprint(game_bp.bp)

    from . import series as series_bp

    app.register_blueprint(series_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return "OK", 200

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
