"""Development configuration."""
import os

from .base import BaseConfig

class DevelopmentConfig(BaseConfig):
    """Development configuration class."""

    # Basic Flask config
    DEBUG = True
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DEV_DATABASE_URL', 'sqlite:///campus_timetable_dev.db')
    SQLALCHEMY_ECHO = False

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'jwt-secret-key-change-in-production')

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'

    # Logging
    LOG_LEVEL = 'DEBUG'
