# menu_familiar/services/access.py
"""
Decoradores de identidad, rol y acceso familiar, más los límites de peticiones.

Orden típico en una vista::

    @bp.route(...)
    @auth_rate_limit            # opcional
    @require_role(Role.CREATOR)
    def vista(): ...
"""

import logging
from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from menu_familiar import limiter, login_manager
from menu_familiar.models.user import Role
from menu_familiar.services.storage import storage

log = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "No autorizado. Por favor inicie sesión."


def _unauthorized_response():
    return jsonify(message=UNAUTHORIZED_MESSAGE, error="UNAUTHORIZED"), 401


@login_manager.unauthorized_handler
def _unauthorized():
    return _unauthorized_response()


# Alias con el nombre del dominio
is_authenticated = login_required


def require_role(*roles):
    """401 sin sesión; 403 con {required, current} si el rol no coincide."""
    allowed = tuple(Role(r).value for r in roles)

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return _unauthorized_response()
            if current_user.role not in allowed:
                required = allowed[0] if len(allowed) == 1 else list(allowed)
                return jsonify(
                    message=f"Permisos insuficientes. Se requiere rol de {' o '.join(allowed)}.",
                    error="INSUFFICIENT_PERMISSIONS",
                    required=required,
                    current=current_user.role,
                ), 403
            return view(*args, **kwargs)
        return wrapped
    return decorator


require_creator_role = require_role(Role.CREATOR)
require_commentator_role = require_role(Role.COMMENTATOR)


def _target_family_id(kwargs):
    """Familia objetivo: ruta, luego cuerpo JSON, luego query string."""
    body = request.get_json(silent=True) if request.is_json else None
    raw = (
        kwargs.get("family_id")
        or (body.get("familyId") if isinstance(body, dict) else None)
        or request.args.get("familyId")
    )
    return None if raw in (None, "") else str(raw)


def _user_belongs(family_id: str) -> bool:
    return any(str(f.id) == family_id for f in storage.get_user_families(current_user.id))


def require_family_access(view):
    """Solo deja pasar si la familia pedida está entre las del usuario."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return _unauthorized_response()
        family_id = _target_family_id(kwargs)
        if family_id is not None and not _user_belongs(family_id):
            log.warning("Acceso denegado: usuario %s a familia %s", current_user.id, family_id)
            return jsonify(
                message="Acceso denegado. No tienes permisos para acceder a esta familia.",
                error="FAMILY_ACCESS_DENIED",
            ), 403
        return view(*args, **kwargs)
    return wrapped


def require_family_edit_access(view):
    """Como require_family_access pero además exige rol creator."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return _unauthorized_response()
        if current_user.role != Role.CREATOR:
            return jsonify(
                message="Solo los creadores pueden modificar datos familiares.",
                error="CREATOR_REQUIRED",
            ), 403
        family_id = _target_family_id(kwargs)
        if family_id is not None and not _user_belongs(family_id):
            log.warning("Edición denegada: usuario %s sobre familia %s", current_user.id, family_id)
            return jsonify(
                message="No tienes permisos para modificar esta familia.",
                error="FAMILY_EDIT_DENIED",
            ), 403
        return view(*args, **kwargs)
    return wrapped


def current_scope() -> dict:
    """Ámbito del usuario actual para la capa de datos."""
    return {"user_id": current_user.id, "family_id": current_user.family_id}


# ---------------------------------------------------------------------------
# Límites de peticiones (ventana fija, por IP)
# ---------------------------------------------------------------------------
AUTH_LIMIT = "5 per 15 minutes"
API_LIMIT = "100 per minute"
FAMILY_CODE_LIMIT = "5 per hour"
COMMENTATOR_LIMIT = "20 per 5 minutes"


def _not_commentator() -> bool:
    return not (current_user.is_authenticated and current_user.role == Role.COMMENTATOR)


auth_rate_limit = limiter.shared_limit(
    AUTH_LIMIT,
    scope="auth",
    error_message="Demasiados intentos de autenticación. Por favor espere 15 minutos.",
)

api_rate_limit = limiter.limit(
    API_LIMIT,
    error_message="Demasiadas solicitudes. Por favor intente de nuevo más tarde.",
)

family_code_rate_limit = limiter.shared_limit(
    FAMILY_CODE_LIMIT,
    scope="family-code",
    error_message=(
        "Límite de generación de códigos alcanzado. "
        "Por favor espere 1 hora antes de generar nuevos códigos."
    ),
)

commentator_rate_limit = limiter.shared_limit(
    COMMENTATOR_LIMIT,
    scope="commentator",
    exempt_when=_not_commentator,
    override_defaults=False,
    error_message="Has realizado muchas acciones seguidas. Por favor espera 5 minutos.",
)

# Código de error por ámbito compartido; el resto responde TOO_MANY_REQUESTS
LIMIT_ERROR_CODES = {"commentator": "TOO_MANY_ACTIONS"}


def rate_limit_error_code(err) -> str:
    scope = getattr(getattr(err, "limit", None), "scope", None)
    if isinstance(scope, str):
        return LIMIT_ERROR_CODES.get(scope, "TOO_MANY_REQUESTS")
    return "TOO_MANY_REQUESTS"
