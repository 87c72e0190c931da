import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


class Config:
    # Secret key for Flask and for signing access tokens
    SECRET_KEY: str = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JWT_SECRET_KEY: str = os.environ.get('JWT_SECRET') or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES: timedelta = timedelta(
        days=int(os.environ.get('JWT_EXPIRES_DAYS') or 7)
    )
    JWT_TOKEN_LOCATION = ['headers']
    JWT_HEADER_TYPE: str = 'Bearer'

    # Database configuration
    DATABASE_PATH: str = os.environ.get('DATABASE_PATH') or os.path.join(
        os.path.dirname(os.path.dirname(__file__)), 'data', 'library.db'
    )

    # Server
    PORT: int = int(os.environ.get('PORT') or 5000)
    LOG_LEVEL: str = os.environ.get('LOG_LEVEL') or 'INFO'
    JSON_SORT_KEYS: bool = False
    # Comma separated origins allowed to call /api/* from a browser
    CORS_ORIGINS = [
        origin.strip() for origin in (os.environ.get('CORS_ORIGINS') or '*').split(',')
    ]

    # Library system business rules
    BORROW_DURATION_DAYS: int = 14  # 14 days
    RENEWAL_EXTENSION_DAYS: int = 14  # Renewal restarts the 14 day window
    DUE_SOON_DAYS: int = 7  # Window for the due-soon list
    OVERDUE_WARNING_DAYS: int = 3  # Window for the dashboard "due soon" counter
    PASSWORD_MIN_LENGTH: int = 8
    RECENT_BOOKS_LIMIT: int = 5


class TestingConfig(Config):
    TESTING: bool = True
    SECRET_KEY: str = 'test-secret-key-with-enough-length-for-hs256'
    JWT_SECRET_KEY: str = SECRET_KEY
