"""
API Routes package
"""
from .auth import auth_bp
from .otp import otp_bp
from .customer_phone import customer_phone_bp

__all__ = [
    'auth_bp',
    'otp_bp',
    'customer_phone_bp',
]


def register_blueprints(app):
    """Register all API blueprints"""
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(otp_bp, url_prefix='/api/auth/otp')
    app.register_blueprint(customer_phone_bp, url_prefix='/api/customer/phone')

    return app
