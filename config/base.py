"""Settings shared by every environment."""
import os
from datetime import timedelta

class BaseConfig:
    """Base configuration class."""

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT Configuration
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Timetable
    INSTITUTION_TIMEZONE = os.getenv('INSTITUTION_TIMEZONE', 'UTC')
    ATTENDANCE_GRACE_MINUTES = int(os.getenv('ATTENDANCE_GRACE_MINUTES', 30))

    # Events / notifications
    REDIS_URL = os.getenv('REDIS_URL')
    EVENT_QUEUE_NAME = os.getenv('EVENT_QUEUE_NAME', 'campus_timetable:events')
    NOTIFICATIONS_INLINE = True

    # File Upload
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    ALLOWED_EXTENSIONS = {'xlsx', 'xls'}

    LOG_LEVEL = 'INFO'
