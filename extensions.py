"""
Flask extensions initialization
"""
from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_migrate import Migrate

from utils.responses import error_body

# Initialize extensions
db = SQLAlchemy()
jwt = JWTManager()
cors = CORS()
migrate = Migrate()


def init_extensions(app):
    """Initialize all Flask extensions"""
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', '*')}},
        allow_headers=["Content-Type", "Authorization", "Accept-Language"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    migrate.init_app(app, db)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        current_app.logger.info("Session token expired for sub=%s", jwt_payload.get('sub'))
        return error_body('session_expired'), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        current_app.logger.info("Invalid session token: %s", error)
        return error_body('session_invalid'), 401

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_body('unauthorized'), 401

    return app
