import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to this file as courtslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "courtslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity is verified upstream; the gateway forwards the principal in these headers
    PRINCIPAL_HEADER = os.getenv("PRINCIPAL_HEADER", "X-Student-Id")
    ROLE_HEADER = os.getenv("ROLE_HEADER", "X-Principal-Role")

    # Cancelling a paid booking flips it to REFUNDED (False: stays PAID until an admin refund)
    REFUND_ON_CANCEL = os.getenv("REFUND_ON_CANCEL", "true").lower() == "true"

    # Admin booking list cap
    BOOKING_LIST_LIMIT = int(os.getenv("BOOKING_LIST_LIMIT", "200"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    # Concurrent test threads wait on SQLite's write lock instead of failing fast
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30, "check_same_thread": False}}
    LOG_LEVEL = "DEBUG"
