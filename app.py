"""
Baraka Loyalty - Flask Backend Application
Main entry point
"""
import logging
import os
from pathlib import Path

from flask import Flask, request
from dotenv import load_dotenv

# Load environment variables
# Always load `.env` next to this file (if it exists) regardless of the
# current working directory.
#
# IMPORTANT for production: do NOT override real environment variables
# injected by the host.
_is_production = os.getenv('FLASK_ENV', 'development') == 'production'
_dotenv_path = Path(__file__).resolve().parent / '.env'
if _dotenv_path.exists():
    load_dotenv(dotenv_path=_dotenv_path, override=(not _is_production))

# Import extensions and routes
from extensions import init_extensions, db
from config.settings import get_config
from routes import register_blueprints
from services import init_services
from phone_maintenance import phones_cli
from utils.responses import error_body, success_response


def _configure_logging(app):
    level = logging.getLevelName(str(app.config.get('LOG_LEVEL', 'INFO')).upper())
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    # Service modules log under their own names.
    logging.getLogger('services').setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
        )


def create_app(config_class=None, sms=None):
    """Application factory pattern

    ``sms`` overrides the configured SMS dispatcher (used by tests).
    """
    app = Flask(__name__)

    # Disable strict slashes to prevent 308 redirects
    app.url_map.strict_slashes = False

    # Load configuration
    if config_class is None:
        config_class = get_config()

    app.config.from_object(config_class)
    _configure_logging(app)

    # Initialize extensions and services
    init_extensions(app)
    init_services(app, sms=sms)

    # Register blueprints and CLI
    register_blueprints(app)
    app.cli.add_command(phones_cli)

    # Health check endpoint
    @app.route('/api/health', methods=['GET'])
    def health_check():
        return success_response(
            message=f"{app.config['APP_NAME']} is running",
            version=app.config['APP_VERSION'],
        )

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return error_body('not_found'), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        app.logger.info("Method not allowed: %s %s", request.method, request.path)
        return error_body('method_not_allowed'), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_body('service_unavailable'), 500

    return app


if __name__ == '__main__':
    # Development server
    app = create_app()
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('DEBUG', 'False').lower() == 'true'

    if os.getenv('CREATE_TABLES_ON_STARTUP', 'true').lower() in {'1', 'true', 'yes', 'on'}:
        with app.app_context():
            db.create_all()

    app.logger.info("%s listening on http://localhost:%s (debug=%s)", app.config['APP_NAME'], port, debug)
    app.run(host='0.0.0.0', port=port, debug=debug, use_reloader=False)
