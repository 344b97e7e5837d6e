# menu_familiar/errors.py
"""
Excepciones de dominio y su traducción a respuestas JSON.

Las rutas y la capa de datos lanzan ``AppError`` (o una subclase); el handler
registrado en ``create_app`` la convierte en ``{"message", "error", ...}`` con
el código HTTP correspondiente. Los mensajes son siempre en castellano.
"""

from flask import jsonify, request
from werkzeug.exceptions import HTTPException


class AppError(Exception):
    status = 400
    error = "BAD_REQUEST"
    message = "Solicitud inválida"

    def __init__(self, message=None, error=None, status=None, **extra):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if error:
            self.error = error
        if status:
            self.status = status
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"message": self.message, "error": self.error}
        body.update(self.extra)
        return body


class ValidationFailed(AppError):
    status = 400
    error = "VALIDATION_ERROR"

    def __init__(self, message, errors):
        super().__init__(message)
        self.errors = errors

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.error, "errors": self.errors}


class NotFound(AppError):
    status = 404
    error = "NOT_FOUND"
    message = "Recurso no encontrado"


class Conflict(AppError):
    status = 409
    error = "CONFLICT"
    message = "Conflicto con el estado actual"


class Forbidden(AppError):
    status = 403
    error = "FORBIDDEN"
    message = "Acceso denegado"


class InvalidCredentials(AppError):
    status = 401
    error = "INVALID_CREDENTIALS"
    message = "Email o contraseña incorrectos"


class AccountLocked(InvalidCredentials):
    error = "ACCOUNT_LOCKED"
    message = "Cuenta bloqueada temporalmente debido a demasiados intentos fallidos."


class RecipeInUseError(AppError):
    status = 400
    error = "RECIPE_IN_USE"
    message = (
        "No se puede eliminar la receta porque está asignada a uno o más días de la semana. "
        "Primero elimine la receta de la planificación semanal."
    )


def register_error_handlers(app):
    from menu_familiar import db

    @app.errorhandler(AppError)
    def _app_error(err: AppError):
        return jsonify(err.to_dict()), err.status

    @app.errorhandler(429)
    def _rate_limited(err):
        # Flask-Limiter deja el mensaje localizado en description
        from menu_familiar.services.access import rate_limit_error_code
        return jsonify(message=err.description, error=rate_limit_error_code(err)), 429

    @app.errorhandler(HTTPException)
    def _http_errors(err: HTTPException):
        # Si la petición es JSON o de la API, devolvemos JSON consistente
        if request.is_json or request.path.startswith("/api/"):
            code = err.code or 500
            return jsonify(error=(err.name or "http_error").upper().replace(" ", "_"),
                           message=err.description), code
        return err

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        db.session.rollback()
        app.logger.exception("Error no controlado en %s %s", request.method, request.path)
        return jsonify(message="Error interno del servidor", error="INTERNAL_SERVER_ERROR"), 500
