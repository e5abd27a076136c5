"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask

from .core.constants import (
    ACTIVITY_LOG_LIMIT,
    ALLOWED_IMAGE_TYPES,
    FILE_RETRY_DELAY,
    HTTP_TIMEOUT,
    MAX_IMAGE_BYTES,
)
from .extensions import init_profile_cache

CREDENTIALS_FILE = os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
)


def _load_credentials(app):
    """Return ``(credential, project_id)`` from env JSON, file, or defaults."""
    sources = [
        ("FIREBASE_CREDENTIALS_JSON", os.environ.get("FIREBASE_CREDENTIALS_JSON")),
    ]
    if os.path.exists(CREDENTIALS_FILE):
        with open(CREDENTIALS_FILE) as f:
            sources.append((CREDENTIALS_FILE, f.read()))

    for name, raw in sources:
        if not raw:
            continue
        try:
            cred_info = json.loads(raw)
            return credentials.Certificate(cred_info), cred_info.get("project_id")
        except ValueError as e:
            app.logger.error(f"Error loading Firebase credentials from {name}: {e}")

    try:
        return credentials.ApplicationDefault(), os.environ.get("FIREBASE_PROJECT_ID")
    except Exception as e:
        app.logger.error(f"Could not find any valid Firebase credentials: {e}")
        return None, None


def _init_firebase(app):
    """Initialize the Firebase Admin SDK once per process."""
    if firebase_admin._apps:
        return
    cred, project_id = _load_credentials(app)
    if not cred:
        return

    storage_bucket = os.environ.get("FIREBASE_STORAGE_BUCKET")
    if not storage_bucket and project_id:
        storage_bucket = f"{project_id}.firebasestorage.app"
    options = {"storageBucket": storage_bucket}
    if project_id:
        options["projectId"] = project_id
    firebase_admin.initialize_app(cred, options)


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        MAX_IMAGE_BYTES=int(os.environ.get("MAX_IMAGE_BYTES") or MAX_IMAGE_BYTES),
        ALLOWED_IMAGE_TYPES=ALLOWED_IMAGE_TYPES,
        FILE_RETRY_DELAY=float(os.environ.get("FILE_RETRY_DELAY") or FILE_RETRY_DELAY),
        HTTP_TIMEOUT=float(os.environ.get("HTTP_TIMEOUT") or HTTP_TIMEOUT),
        PROFILE_CACHE_DIR=os.environ.get("PROFILE_CACHE_DIR")
        or os.path.join(app.instance_path, "profile_cache"),
        ACTIVITY_LOG_LIMIT=ACTIVITY_LOG_LIMIT,
    )

    if test_config:
        app.config.update(test_config)

    if app.config.get("MAX_CONTENT_LENGTH") is None:
        # Two base64-encoded images plus form fields.
        app.config["MAX_CONTENT_LENGTH"] = 3 * app.config["MAX_IMAGE_BYTES"] + 1024 * 1024

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Ensure the instance folder exists
    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    init_profile_cache(app)

    from . import user as user_bp

    app.register_blueprint(user_bp.bp)

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import post as post_bp

    app.register_blueprint(post_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return "OK", 200

    return app
