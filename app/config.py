import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'smart_bookmarks.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "1") == "1"
    CHANGE_FEED_RETENTION_HOURS = int(
        os.environ.get("CHANGE_FEED_RETENTION_HOURS", "168")
    )
    CHANGE_FEED_PAGE_LIMIT = int(os.environ.get("CHANGE_FEED_PAGE_LIMIT", "200"))
    DASHBOARD_POLL_SECONDS = float(os.environ.get("DASHBOARD_POLL_SECONDS", "3"))
    DASHBOARD_DEDUPE_INSERTS = os.environ.get("DASHBOARD_DEDUPE_INSERTS", "0") == "1"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SCHEDULER_ENABLED = False
