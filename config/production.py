"""Production configuration."""
import os

from .base import BaseConfig

class ProductionConfig(BaseConfig):
    """Production configuration class."""

    # Basic Flask config
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY')  # Must be set in production

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    SQLALCHEMY_ECHO = False

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "50/hour"

    # Events are consumed by `flask dispatch-notifications --watch`
    NOTIFICATIONS_INLINE = os.getenv('NOTIFICATIONS_INLINE', 'false').lower() == 'true'

    # Enhanced security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # File Upload
    MAX_CONTENT_LENGTH = 8 * 1024 * 1024  # 8MB in production

    # Logging
    LOG_LEVEL = 'INFO'
