import os
from pathlib import Path


class Config:
    # Base directory
    BASE_DIR = Path(__file__).parent.parent

    # Secret key for session management
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f'sqlite:///{BASE_DIR / "instance" / "pillbox.db"}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Error alerting (Slack incoming webhook)
    SLACK_WEBHOOK_URL = os.environ.get('SLACK_WEBHOOK_URL')
    SLACK_TIMEOUT = 5

    # Pill configuration
    PILL_LIMIT = int(os.environ.get('PILL_LIMIT', 5))
    PILL_NAME_MAX_LENGTH = 10
    PILL_COLORS = ['1', '2', '3', '4', '5']


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SLACK_WEBHOOK_URL = None
    LOG_LEVEL = 'WARNING'
