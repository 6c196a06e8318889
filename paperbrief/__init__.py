"""
paperbrief Application Factory
"""
import logging
import os
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from paperbrief.config import config as config_by_name

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()


def create_app(config_name=None):
    app = Flask(__name__)
    config_name = config_name or os.environ.get("FLASK_ENV", "default")
    app.config.from_object(config_by_name.get(config_name, config_by_name["default"]))

    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)
    logging.getLogger("paperbrief").setLevel(level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Model settings are resolved once per process and handed to each request
    from paperbrief.services.openai_service import AISettings
    app.extensions["paperbrief.ai"] = AISettings.from_config(app.config)

    # Register blueprints
    from paperbrief.auth import auth_bp
    from paperbrief.api import api_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    @app.route("/healthz")
    def healthz():
        """Health check for load balancers and monitoring"""
        try:
            from sqlalchemy import text
            db.session.execute(text("SELECT 1"))
            db_status = "ok"
        except Exception as e:
            app.logger.warning("Health check database ping failed: %s", e)
            db_status = f"error: {e}"

        return jsonify({
            "status": "ok" if db_status == "ok" else "degraded",
            "version": app.config["APP_VERSION"],
            "database": db_status,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    @app.route("/version")
    def version():
        """Version and build info"""
        return jsonify({
            "version": app.config["APP_VERSION"],
            "build_time": app.config["BUILD_TIME"],
            "git_commit": app.config["GIT_COMMIT"],
            "model": app.config["OPENAI_MODEL"],
            "features": {
                "chunk_merge": True,
                "scanned_pdf_fallback": True,
                "image_upload": True,
            }
        })

    with app.app_context():
        from sqlalchemy import inspect

        # Only create tables if they don't exist (safe for existing DB)
        inspector = inspect(db.engine)
        if not inspector.get_table_names():
            app.logger.info("No tables found, creating...")
            db.create_all()

    return app
