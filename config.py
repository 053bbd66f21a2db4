# config.py

import os


def _flag(name, default):
    return (os.getenv(name, default) or "").strip().lower() in {"1", "true", "yes", "y"}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-dev-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    # ---- Escape room deployment ----
    # Deadline is 1 PM Denver time on delivery day (MST is UTC-7 in December)
    ESCAPE_DEADLINE = os.getenv("ESCAPE_DEADLINE", "2025-12-27T13:00:00-07:00")
    ESCAPE_TZ = os.getenv("ESCAPE_TZ", "America/Denver")

    ESCAPE_OPERATOR_ID = os.getenv("ESCAPE_OPERATOR_ID", "Ezra")
    ESCAPE_SESSION_KEY = os.getenv("ESCAPE_SESSION_KEY", "RCP-2025-XMAS-COURIER")

    ESCAPE_PHASE1_ANSWER = os.getenv("ESCAPE_PHASE1_ANSWER", "B")
    ESCAPE_PHASE2_ANSWER = os.getenv("ESCAPE_PHASE2_ANSWER", "spawn")
    ESCAPE_PHASE3A_ANSWER = os.getenv("ESCAPE_PHASE3A_ANSWER", "B")
    ESCAPE_PHASE3B_ANSWER = os.getenv("ESCAPE_PHASE3B_ANSWER", "byte")
    ESCAPE_PHASE3C_ANSWER = os.getenv("ESCAPE_PHASE3C_ANSWER", "A")

    ESCAPE_WORLD_LINK = os.getenv("ESCAPE_WORLD_LINK", "https://example.com/redstone-courier-world.zip")
    ESCAPE_BINDING_CODE = os.getenv("ESCAPE_BINDING_CODE", "OBSIDIAN-FLUX-7742")

    # Shards are case-sensitive: 1Z + 09X43G03 + 08186005
    ESCAPE_SHARD_A = os.getenv("ESCAPE_SHARD_A", "1Z")
    ESCAPE_SHARD_B = os.getenv("ESCAPE_SHARD_B", "09X43G03")
    ESCAPE_SHARD_C = os.getenv("ESCAPE_SHARD_C", "08186005")
    ESCAPE_ORDERING_ANSWER = os.getenv("ESCAPE_ORDERING_ANSWER", "C")
    ESCAPE_TRACKING_NUMBER = os.getenv("ESCAPE_TRACKING_NUMBER", "1Z09X43G0308186005")

    ESCAPE_STORAGE_KEY = os.getenv("ESCAPE_STORAGE_KEY", "rcp_state")
    ESCAPE_ADMIN_RESET_ENABLED = _flag("ESCAPE_ADMIN_RESET_ENABLED", "true")
    ESCAPE_CLOCK_TICK = _flag("ESCAPE_CLOCK_TICK", "true")

    @staticmethod
    def init_app(app):
        pass


class DevelopmentConfig(Config):
    DEBUG = True
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DEV_DATABASE_URL",
        "sqlite:///escape.db"  # keep relative and portable
    )


class ProductionConfig(Config):
    DEBUG = False

    @classmethod
    def get_database_uri(cls):
        uri = os.getenv("DATABASE_URL", "sqlite:///escape.db")
        if uri.startswith("postgres://"):
            uri = uri.replace("postgres://", "postgresql://", 1)
        return uri

    SQLALCHEMY_DATABASE_URI = get_database_uri.__func__(None)


class TestingConfig(Config):
    TESTING = True
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    ESCAPE_CLOCK_TICK = False


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig
}
