import os
from flask import Flask, jsonify, request
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=True)


from .config import get_config
from .extensions import db, migrate, csrf, login_manager, limiter
from .security import init_security
from .observability import init_logging, init_sentry
from .services.errors import Conflict, RemoteUnavailable, ServiceError
from .services.identity import init_identity


def create_app(config_object=None):
    app = Flask(__name__)

    # ---- Rate limiting storage ----
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        # Hard fail in stage/prod so we never silently run without RL storage
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")
    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)

    # Config: clean, explicit, class-based
    app.config.from_object(config_object or get_config())

    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        # Enforce hard requirements at startup (not at import time)
        _require("SECRET_KEY")
        _require("DATABASE_URL")

    # --- Observability & Security ---
    init_logging(app)
    init_sentry(app)
    if app_env in ("staging", "production"):
        init_security(app)

    # Init extensions
    from . import models  # noqa: F401  (register every table on db.metadata)
    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)
    init_identity(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"ok": False, "error": "unauthorized", "message": "Login required."}), 401

    # Blueprints
    from .blueprints.auth import bp as auth_bp
    from .blueprints.admin import bp as admin_bp

    # JSON API driven by the SPA session; forms-style CSRF tokens do not apply
    csrf.exempt(auth_bp)
    csrf.exempt(admin_bp)

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    @limiter.exempt
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    # ---- Error handlers: every error path rolls back and answers JSON ----
    @app.errorhandler(ServiceError)
    def handle_service_error(e: ServiceError):
        db.session.rollback()
        if e.status_code >= 500:
            app.logger.warning("%s %s -> %s: %s", request.method, request.path, e.status_code, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        app.logger.warning("%s %s violated a constraint: %s", request.method, request.path, e.orig)
        err = Conflict("The change conflicts with existing data.")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(OperationalError)
    @app.errorhandler(DBAPIError)
    def handle_db_unavailable(e):
        db.session.rollback()
        app.logger.exception("%s %s failed at the database", request.method, request.path)
        err = RemoteUnavailable()
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(404)
    def not_found(e):
        return {"ok": False, "error": "not_found", "message": "Not Found"}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"ok": False, "error": "method_not_allowed", "message": "Method Not Allowed"}, 405

    # 429 Too Many Requests with Retry-After
    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        payload = {"ok": False, "error": "rate_limited", "message": "Too many requests"}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
            payload["retry_after"] = int(retry_after)
        return (payload, 429, headers)

    @app.errorhandler(500)
    def server_error(e):
        db.session.rollback()
        return {"ok": False, "error": "server_error", "message": "Internal Server Error"}, 500

    # CLI commands (ops-grade utilities)
    from .cli import register_cli
    register_cli(app)

    return app
