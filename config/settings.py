"""
Application settings and configuration
"""
import os
from datetime import timedelta
from dotenv import load_dotenv

from config.database import get_sqlalchemy_database_uri

_is_production = os.getenv('FLASK_ENV', 'development') == 'production'
load_dotenv(override=(not _is_production))


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or '').strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'baraka-loyalty-secret-key')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'baraka-jwt-secret-key')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=12)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    SQLALCHEMY_DATABASE_URI = get_sqlalchemy_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS Settings
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Phone verification
    OTP_TTL_SECONDS = _env_int('OTP_TTL_SECONDS', 10 * 60)
    RESET_TOKEN_TTL_SECONDS = _env_int('RESET_TOKEN_TTL_SECONDS', 5 * 60)
    PHONE_DEFAULT_COUNTRY_CODE = (os.getenv('PHONE_DEFAULT_COUNTRY_CODE') or '39').strip().lstrip('+')
    PHONE_MAX_NATIONAL_DIGITS = _env_int('PHONE_MAX_NATIONAL_DIGITS', 10)
    PASSWORD_MIN_LENGTH = 6

    # SMS delivery: 'twilio' or 'console'
    SMS_PROVIDER = (os.getenv('SMS_PROVIDER') or 'twilio').strip().lower()
    TWILIO_ACCOUNT_SID = os.getenv('TWILIO_ACCOUNT_SID', '')
    TWILIO_AUTH_TOKEN = os.getenv('TWILIO_AUTH_TOKEN', '')
    TWILIO_PHONE_NUMBER = os.getenv('TWILIO_PHONE_NUMBER') or os.getenv('TWILIO_SMS_NUMBER', '')
    OTP_MESSAGE_TEMPLATE = os.getenv(
        'OTP_MESSAGE_TEMPLATE',
        'Il tuo codice di verifica Baraka è: {code}',
    )
    PHONE_CHANGE_MESSAGE_TEMPLATE = os.getenv(
        'PHONE_CHANGE_MESSAGE_TEMPLATE',
        'Il tuo codice di verifica per cambiare numero su Baraka è: {code}',
    )

    # Localized error copy
    SUPPORTED_LOCALES = ('en', 'it', 'fr', 'es', 'ar')
    DEFAULT_LOCALE = os.getenv('DEFAULT_LOCALE', 'it')

    # Application Settings
    APP_NAME = 'Baraka Loyalty API'
    APP_VERSION = '1.0.0'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'False').lower() == 'true'
    SMS_PROVIDER = (os.getenv('SMS_PROVIDER') or 'console').strip().lower()
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SQLALCHEMY_ECHO = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SMS_PROVIDER = 'console'
    SECRET_KEY = 'testing-secret-key'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    LOG_LEVEL = 'WARNING'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on environment"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
