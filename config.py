"""
Application configuration.
This module defines the configuration settings for the Flask application, including database connection, secret key,
upload storage and report settings. It uses environment variables for sensitive information and defaults for
development. In production, make sure to set the appropriate environment variables and secure the secret key.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'filedesk.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF protection for forms
    WTF_CSRF_ENABLED = True

    # Blob storage root (uploaded files + metadata sidecars)
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", str(BASE_DIR / "uploads"))

    # 50 MB per file; the request limit leaves room for the form fields
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", 50 * 1024 * 1024))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 1024 * 1024

    # Password reset links expire after one hour
    PASSWORD_RESET_MAX_AGE = int(os.environ.get("PASSWORD_RESET_MAX_AGE", 3600))

    # Report header/footer profile kept on the client (signed session cookie)
    REPORT_CONFIG_SESSION_KEY = "dairyReportConfig"

    # Seconds between keep-alive comments on the live records stream
    STREAM_HEARTBEAT_SECONDS = int(os.environ.get("STREAM_HEARTBEAT_SECONDS", 15))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    # Optional rotating log file (e.g. logs/filedesk.log)
    LOG_FILE = os.environ.get("LOG_FILE")

    # App UI name (used in templates)
    APP_NAME = "File Desk"


class TestingConfig(Config):
    """Configuration used by the test-suite."""

    TESTING = True
    SECRET_KEY = "testing-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    STREAM_HEARTBEAT_SECONDS = 1
    LOG_LEVEL = "DEBUG"
