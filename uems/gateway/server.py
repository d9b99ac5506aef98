"""
API gateway: combines every service blueprint into one Flask app.
This is the local entrypoint for development.
"""

import logging
import os

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from dotenv import load_dotenv

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app() -> Flask:
    """
    Application factory for creating the Flask app.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    app.url_map.strict_slashes = False
    app.config["MAX_CONTENT_LENGTH"] = int(os.getenv("MAX_UPLOAD_MB", 50)) * 1024 * 1024

    CORS(app, resources={
        r"/*": {
            "origins": [os.getenv("CLIENT_URL", "http://localhost:3000")],
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": ["Content-Type", "Authorization"],
            "supports_credentials": True
        }
    })

    # --- REGISTER BLUEPRINTS ---
    from uems.auth_service.routes import auth_bp
    from uems.events_service.routes import events_bp
    from uems.events_service.proposals import proposals_bp
    from uems.admin_service.routes import admin_bp
    from uems.notifications_service.routes import notifications_bp
    from uems.share_service.routes import share_bp
    from uems.upload_service.routes import upload_bp
    from uems.upload_service import storage
    from uems.analytics_service.routes import analytics_bp
    from uems.core.errors import register_error_handlers
    # Connects the organizer promotion receiver to `event_approved`
    import uems.auth_service.directory  # noqa: F401

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(proposals_bp, url_prefix="/api/events/proposals")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(notifications_bp, url_prefix="/api/notifications")
    app.register_blueprint(share_bp, url_prefix="/api/share")
    app.register_blueprint(upload_bp, url_prefix="/api/upload")
    app.register_blueprint(analytics_bp, url_prefix="/api/analytics")

    register_error_handlers(app)

    logging.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"success": True, "message": "UEMS API is running"}), 200

    @app.route("/api/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"success": True, "status": "ok"}), 200

    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename):
        """Serve stored event media."""
        return send_from_directory(storage.UPLOAD_FOLDER, filename)

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("GATEWAY_PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("APP_ENV", "development") != "production")
