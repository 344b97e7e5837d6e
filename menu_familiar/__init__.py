# menu_familiar/__init__.py

import os
import logging
import time
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, request
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Carga variables de entorno (.env)
load_dotenv()

# Extensiones compartidas
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(key_func=get_remote_address)

DEFAULT_SESSION_SECRET = "menu-familiar-secret-key-change-in-production"


def _is_production() -> bool:
    return os.getenv("FLASK_ENV", "").lower() == "production"


def _require_secret_key(testing: bool) -> str:
    """Lee SECRET_KEY de entorno y exige mínimo 32 bytes fuera de tests."""
    secret = os.getenv("SECRET_KEY") or os.getenv("SESSION_SECRET", "")
    if testing:
        return secret or "test-secret-key-" + "x" * 32
    if not secret or len(secret) < 32 or secret == DEFAULT_SESSION_SECRET:
        # Seguridad primero: no dejamos arrancar sin clave sólida
        raise RuntimeError(
            "SECRET_KEY no configurado o demasiado corto. "
            "Añade una clave segura de al menos 32 caracteres al .env"
        )
    return secret


def _database_uri(instance_path: str) -> str:
    uri = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL")
    if not uri:
        return f"sqlite:///{os.path.join(instance_path, 'menu_familiar.db')}"
    # Heroku/Render siguen entregando el esquema antiguo
    if uri.startswith("postgres://"):
        uri = "postgresql://" + uri[len("postgres://"):]
    return uri


def _engine_options(uri: str) -> dict:
    if uri.startswith("sqlite"):
        return {}
    return {
        "pool_size": 10,
        "max_overflow": 0,
        "pool_timeout": 10,
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }


def _configure_logging(app: Flask) -> None:
    """Logging simple y consistente."""
    level = logging.DEBUG if app.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def _register_request_logging(app: Flask) -> None:
    @app.before_request
    def _start_timer():
        request.environ["menu_familiar.start"] = time.perf_counter()

    @app.after_request
    def _log_api_request(response):
        if request.path.startswith("/api"):
            start = request.environ.get("menu_familiar.start", time.perf_counter())
            duration_ms = (time.perf_counter() - start) * 1000
            app.logger.info(
                "%s %s %s in %dms", request.method, request.path, response.status_code, duration_ms
            )
        return response


def create_app(config: dict | None = None) -> Flask:
    """Factory principal de la aplicación."""
    app = Flask(__name__, instance_relative_config=True)
    config = dict(config or {})

    # Asegura carpeta instance/
    os.makedirs(app.instance_path, exist_ok=True)

    testing = bool(config.get("TESTING"))
    production = _is_production()
    db_uri = config.get("SQLALCHEMY_DATABASE_URI") or _database_uri(app.instance_path)

    # -----------------------------
    # Config base (segura por defecto)
    # -----------------------------
    app.config.from_mapping(
        SECRET_KEY=config.get("SECRET_KEY") or _require_secret_key(testing),
        SQLALCHEMY_DATABASE_URI=db_uri,
        SQLALCHEMY_ENGINE_OPTIONS=_engine_options(db_uri),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        JSON_SORT_KEYS=False,
        # Cookies y sesión seguras
        SESSION_COOKIE_NAME="menu.sid",
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Strict" if production else "Lax",
        SESSION_COOKIE_SECURE=production,
        SESSION_REFRESH_EACH_REQUEST=True,
        PERMANENT_SESSION_LIFETIME=timedelta(days=7),
        PREFERRED_URL_SCHEME="https",
        MAX_CONTENT_LENGTH=10 * 1024 * 1024,  # 10 MB por petición (avatares en base64)
        # Rate limiting: memory:// por proceso; redis://... para varias instancias
        RATELIMIT_STORAGE_URI=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
        RATELIMIT_STRATEGY="fixed-window",
        RATELIMIT_HEADERS_ENABLED=True,
        RATELIMIT_ENABLED=os.getenv("RATELIMIT_ENABLED", "true").lower() != "false",
    )
    app.config.update(config)

    # Inicializa extensiones
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    from menu_familiar.services.sessions import SqlSessionInterface
    app.session_interface = SqlSessionInterface()

    _configure_logging(app)
    _register_request_logging(app)

    # ---------------------------------------------------------
    # MODELOS (importar para que Flask-Migrate los detecte)
    # ---------------------------------------------------------
    from menu_familiar import models  # noqa: F401

    # ---------------------------------------------------------
    # BLUEPRINTS
    # ---------------------------------------------------------
    from menu_familiar.routes.health import health_bp
    from menu_familiar.routes.auth import auth_bp
    from menu_familiar.routes.recipes import recipes_bp
    from menu_familiar.routes.meal_plans import meal_plans_bp
    from menu_familiar.routes.comments import comments_bp
    from menu_familiar.routes.families import families_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(recipes_bp)
    app.register_blueprint(meal_plans_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(families_bp)

    # ---------------------------------------------------------
    # CLI (seed, sesiones)
    # ---------------------------------------------------------
    from menu_familiar.cli import register_cli
    register_cli(app)

    # ---------------------------------------------------------
    # Manejo de errores JSON
    # ---------------------------------------------------------
    from menu_familiar.errors import register_error_handlers
    register_error_handlers(app)

    if testing:
        app.logger.debug("[init] app creada en modo test (%s)", db_uri)
    else:
        app.logger.info("[init] Menú Familiar listo (entorno=%s)", os.getenv("FLASK_ENV", "development"))

    return app
