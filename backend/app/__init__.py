"""Flask application factory."""

import json
import os
from flask import Flask
from flask_cors import CORS

from services.kv_store import JsonFileStore, MemoryStore

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "config", "dashboard-config.json"
)

DEFAULT_SETTINGS = {
    "storePath": None,
    "defaultTeamSize": None,
    "workingDaysDefault": 10,
    "historyBatchSize": 5,
    "maxRetries": 2,
    "requestTimeout": 30
}


def load_dashboard_config(app):
    """Load dashboard settings from the config file, falling back to defaults."""
    settings = dict(DEFAULT_SETTINGS)
    config_path = os.environ.get("SPRINT_DASHBOARD_CONFIG", DEFAULT_CONFIG_PATH)

    if os.path.exists(config_path):
        try:
            with open(config_path, "r") as f:
                settings.update(json.load(f))
                app.logger.info(f"Loaded dashboard config from {config_path}")
        except (json.JSONDecodeError, IOError) as e:
            app.logger.warning(f"Failed to load dashboard config: {e}")
    else:
        app.logger.info("No dashboard-config.json found, using defaults")

    return settings


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    settings = load_dashboard_config(app)
    if test_config:
        settings.update(test_config.get("DASHBOARD_SETTINGS", {}))
        app.config.update({k: v for k, v in test_config.items() if k != "DASHBOARD_SETTINGS"})
    app.config["DASHBOARD_SETTINGS"] = settings

    if "DASHBOARD_STORE" not in app.config:
        store_path = settings.get("storePath")
        if store_path:
            app.config["DASHBOARD_STORE"] = JsonFileStore(store_path)
        else:
            app.logger.info("No storePath configured, baselines are kept in memory")
            app.config["DASHBOARD_STORE"] = MemoryStore()

    # Enable CORS for frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": ["http://localhost:5173", "http://127.0.0.1:5173"],
            "methods": ["GET", "POST", "DELETE", "OPTIONS"],
            "allow_headers": [
                "Content-Type",
                "X-Jira-Token", "X-Jira-Email", "X-Jira-Server"
            ]
        }
    })

    # Register blueprints
    from app.api import boards, config, metrics
    app.register_blueprint(boards.bp)
    app.register_blueprint(metrics.bp)
    app.register_blueprint(config.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
