# backend/pos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar days for sale numbering and report ranges are taken in this zone
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE", "UTC")

    # Bounded retries when two sales race for the same sale number
    SALE_NUMBER_RETRY_ATTEMPTS = int(os.environ.get("SALE_NUMBER_RETRY_ATTEMPTS", "3"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    # bcrypt cost factor; tests lower it to keep fixtures fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
