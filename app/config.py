import os

from dotenv import dotenv_values


def _engine_options(url: str) -> dict:
    """
    Bound every remote call: pool checkout, connect, and (on Postgres) statement time.
    """
    opts = {
        "pool_pre_ping": True,
        "pool_timeout": int(os.environ.get("DB_POOL_TIMEOUT", "10")),
    }
    connect_args = {}
    if url.startswith(("postgresql", "postgres")):
        connect_args["connect_timeout"] = int(os.environ.get("DB_CONNECT_TIMEOUT", "5"))
        stmt_ms = int(os.environ.get("DB_STATEMENT_TIMEOUT_MS", "15000"))
        connect_args["options"] = f"-c statement_timeout={stmt_ms}"
    elif url.startswith("sqlite"):
        connect_args["timeout"] = int(os.environ.get("DB_CONNECT_TIMEOUT", "5"))
        # sqlite memory engines use a static pool without pool_timeout
        opts.pop("pool_timeout")
    if connect_args:
        opts["connect_args"] = connect_args
    return opts


class BaseConfig:
    # Secrets (env in prod; dev/test may use defaults)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-not-secure")
    WTF_CSRF_SECRET_KEY = SECRET_KEY
    WTF_CSRF_TIME_LIMIT = None

    # Database (env in prod; dev/test may use default)
    _ENV_FALLBACK = dotenv_values(".env")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or _ENV_FALLBACK.get("DATABASE_URL") or "sqlite:///clube.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)

    # Logging / misc
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    JSON_SORT_KEYS = False

    # Cookies: secure-by-default
    SESSION_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Flask-Limiter default: off globally; prefer per-route limits
    RATELIMIT_DEFAULT = None

    # --- Feedback viewer ---
    FEEDBACK_SESSIONS_PER_PAGE = int(os.getenv("FEEDBACK_SESSIONS_PER_PAGE", "10"))

    # --- Identity ---
    # Class path of the IdentityProvider used by /auth; swap for the hosted provider adapter.
    IDENTITY_PROVIDER = os.getenv("IDENTITY_PROVIDER", "app.services.identity:LocalIdentityProvider")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    # No dev fallback; create_app() refuses to start without it
    SECRET_KEY = os.environ.get("SECRET_KEY")
    WTF_CSRF_SECRET_KEY = SECRET_KEY
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False


_ENV_MAP = {
    "development": DevelopmentConfig,
    "staging": ProductionConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
