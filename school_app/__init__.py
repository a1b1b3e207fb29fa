import os

from flask import Flask, current_app, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.errors import RateLimitExceeded
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

# Global extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def _rate_key():
    ip = (request.headers.get("X-Forwarded-For") or request.remote_addr or "local")
    return f"{ip}|{request.path}"


limiter = Limiter(key_func=_rate_key)
cache = Cache()


def create_app(test_config=None):
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-key")

    # Auth sessions: opaque token in an HttpOnly cookie, idle timeout in seconds
    app.config["SESSION_IDLE_TIMEOUT"] = int(os.environ.get("SESSION_IDLE_TIMEOUT", "1800"))
    app.config["AUTH_COOKIE_NAME"] = "sid"
    app.config["AUTH_COOKIE_SECURE"] = (os.environ.get("AUTH_COOKIE_SECURE", "false").lower() == "true")
    app.config["PASSWORD_HASH_METHOD"] = None
    app.config["LOGIN_RATE_LIMIT"] = "5 per minute"

    # "database" (SQLAlchemy) or "memory" (process-local, for demos and tests)
    app.config["STORAGE_BACKEND"] = os.environ.get("STORAGE_BACKEND", "database")
    app.config["SEED_DEMO_DATA"] = (os.environ.get("SEED_DEMO_DATA", "false").lower() == "true")

    REDIS_URL = os.environ.get("REDIS_URL")
    if REDIS_URL:
        app.config["CACHE_TYPE"] = "RedisCache"
        app.config["CACHE_REDIS_URL"] = REDIS_URL
        app.config["RATELIMIT_STORAGE_URI"] = REDIS_URL
    else:
        app.config["CACHE_TYPE"] = "SimpleCache"
        app.config["CACHE_THRESHOLD"] = 10000

    # Database configuration: use DATABASE_URL if provided, else sqlite file
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        db_path = os.path.join(os.path.dirname(__file__), "..", "school.db")
        database_url = f"sqlite:///{os.path.abspath(db_path)}"

    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    app.config.setdefault("RATELIMIT_STORAGE_URI", "memory://")
    if test_config:
        app.config.update(test_config)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cache.init_app(app)
    login_manager.init_app(app)

    # Import models so they are registered with SQLAlchemy
    from . import models  # noqa: F401
    from .auth import services as auth_services
    from .errors import SchoolError, Unauthenticated
    from .sessions import SessionManager, get_session_manager
    from .storage import create_storage, get_storage
    from .api_utils import api_error

    app.extensions["storage"] = create_storage(app.config["STORAGE_BACKEND"])
    app.extensions["session_manager"] = SessionManager(cache, idle_timeout=app.config["SESSION_IDLE_TIMEOUT"])

    @login_manager.request_loader
    def load_user_from_request(req):
        token = req.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
        if not token:
            return None
        try:
            return auth_services.current_user(get_storage(), get_session_manager(), token)
        except Unauthenticated:
            return None

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        return api_error(Unauthenticated.code, Unauthenticated.message, 401)

    # Blueprints
    from .auth import auth_bp
    app.register_blueprint(auth_bp)

    from .main import main_bp
    app.register_blueprint(main_bp)

    from .admin import admin_bp
    app.register_blueprint(admin_bp)

    from .student import student_bp
    app.register_blueprint(student_bp)

    @app.errorhandler(SchoolError)
    def handle_school_error(e):
        return api_error(e.code, e.message, e.status, details=e.details)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(e):
        return api_error("rate_limited", "Too many requests", 429)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return api_error(str(e.code), e.description or "", e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return api_error("internal_error", "Something went wrong. Please try again.", 500)

    with app.app_context():
        if app.config["STORAGE_BACKEND"] == "database":
            db.create_all()
        if app.config["SEED_DEMO_DATA"]:
            from .seed import seed_defaults
            seed_defaults(get_storage())

    return app
