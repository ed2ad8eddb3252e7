"""
app.py — Flask entry point for the farm stock application.

Initializes the Flask app, configures logging, registers all route
blueprints, calls init_db() on startup and translates application errors
into JSON notifications.

Run: python app.py → localhost:5000
"""

import logging
import os
import sqlite3

from flask import Flask, jsonify, request
from flask_wtf.csrf import CSRFProtect, CSRFError

from database import init_db
from errors import FarmError, StoreError
from logging_config import configure_logging
from routes.inventory import inventory_bp
from routes.plots import plots_bp
from routes.schedules import schedules_bp
from routes.export import export_bp
from routes.settings import settings_bp
from utils.context import header_user_id

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.secret_key = os.environ.get('SECRET_KEY', 'farm-stock-local-app-secret-key')
    # CSRF is checked per request in check_csrf below
    app.config['WTF_CSRF_CHECK_DEFAULT'] = False

    if test_config:
        app.config.update(test_config)

    configure_logging(to_files=not app.config.get('TESTING', False))

    csrf = CSRFProtect(app)

    # Initialize database
    with app.app_context():
        init_db()

    for blueprint in (inventory_bp, plots_bp, schedules_bp, export_bp, settings_bp):
        app.register_blueprint(blueprint)

    @app.before_request
    def check_csrf():
        """
        Session-cookie callers must send the CSRF token (X-CSRFToken header,
        token from GET /settings/). A browser cannot attach the X-User-Id
        header cross-site, so header-authenticated calls skip the check.
        """
        if not app.config.get('WTF_CSRF_ENABLED', True):
            return
        if request.method not in app.config.get('WTF_CSRF_METHODS', ('POST', 'PUT', 'PATCH', 'DELETE')):
            return
        if header_user_id():
            return
        csrf.protect()

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        logger.warning("CSRF check failed: %s", error.description)
        return jsonify({'error': 'csrf', 'message': error.description, 'item': None}), 400

    @app.errorhandler(FarmError)
    def handle_farm_error(error):
        """Every user-facing failure becomes a dismissible notification payload."""
        if isinstance(error, StoreError):
            logger.error("Store error: %s", error.message)
        else:
            logger.warning("%s: %s", error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(sqlite3.Error)
    def handle_store_error(error):
        logger.exception("Database call failed")
        store_error = StoreError("Something went wrong saving your data. Please try again.")
        return jsonify(store_error.to_dict()), store_error.status_code

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    return app


if __name__ == '__main__':
    app = create_app()
    # Debug mode: enabled by default for development (auto-reload on file changes)
    # Set FLASK_DEBUG=0 to disable for production
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
