# menu_familiar/routes/health.py
import os
import resource
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from menu_familiar import db, limiter

health_bp = Blueprint("health", __name__)

_STARTED = time.monotonic()

APP_SHELL = """<!doctype html>
<html lang="es">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Menú Familiar</title>
  </head>
  <body>
    <div id="root"></div>
  </body>
</html>
"""


def check_database() -> dict:
    """SELECT 1 contra la base de datos; nunca lanza."""
    start = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Health check: base de datos inaccesible: %s", exc)
        return {"healthy": False, "error": exc.__class__.__name__}
    return {"healthy": True, "latencyMs": round((time.perf_counter() - start) * 1000, 2)}


def _memory_mb() -> dict:
    # ru_maxrss viene en KB en Linux
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {"maxRssMb": round(usage.ru_maxrss / 1024)}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uptime() -> float:
    return round(time.monotonic() - _STARTED, 3)


@health_bp.route("/", methods=["GET"])
@limiter.exempt
def root():
    # Los navegadores reciben la app; el balanceador, JSON
    accept = request.accept_mimetypes
    if accept["text/html"] > accept["application/json"]:
        return APP_SHELL, 200, {"Content-Type": "text/html; charset=utf-8"}

    database = check_database()
    if not database["healthy"]:
        return jsonify({
            "status": "unhealthy",
            "message": "Database connection failed",
            "database": database,
            "timestamp": _timestamp(),
            "environment": os.getenv("FLASK_ENV", "development"),
        }), 503
    return jsonify({
        "status": "ok",
        "message": "Menu Familiar API is running",
        "database": database,
        "uptime": _uptime(),
        "timestamp": _timestamp(),
        "environment": os.getenv("FLASK_ENV", "development"),
    })


@health_bp.route("/health", methods=["GET"])
@health_bp.route("/api/health-check", methods=["GET"])
@limiter.exempt
def health():
    database = check_database()
    return jsonify({
        "status": "healthy" if database["healthy"] else "unhealthy",
        "database": database,
        "uptime": _uptime(),
        "memory": _memory_mb(),
        "timestamp": _timestamp(),
    }), 200 if database["healthy"] else 503
