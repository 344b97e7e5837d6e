# menu_familiar/routes/auth.py
import logging

from flask import Blueprint, jsonify, session
from flask_login import current_user, login_user, logout_user

from menu_familiar.errors import AppError, Conflict
from menu_familiar.schemas import (
    AccountDeletion,
    AvatarIn,
    ChangePassword,
    LoginIn,
    ProfileUpdate,
    RegisterIn,
    parse_body,
)
from menu_familiar.services.access import api_rate_limit, auth_rate_limit, is_authenticated
from menu_familiar.services.credentials import hash_password, password_matches, verify_credentials
from menu_familiar.services.storage import storage

log = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _start_session(user):
    """Sesión nueva (id regenerado) y persistente para `user`."""
    session.regenerate()
    session.permanent = True
    login_user(user)


def _end_session():
    logout_user()
    session.clear()


def _profile(user) -> dict:
    families = storage.get_user_families(user.id)
    family = families[0] if families else None
    data = user.to_dict()
    data.pop("loginAttempts", None)
    data.pop("lastLoginAttempt", None)
    data.update({
        "familyId": family.id if family else None,
        "familyName": family.nombre if family else None,
        "familyInviteCode": family.codigo_invitacion if family else None,
    })
    return data


# =========================
# Registro / login / logout
# =========================
@auth_bp.route("/register", methods=["POST"])
@auth_rate_limit
def register():
    data = parse_body(RegisterIn, "Datos de registro inválidos")

    if storage.get_user_by_email(data.email):
        raise Conflict("El email ya está registrado", error="EMAIL_ALREADY_EXISTS")

    user = storage.create_user(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role,
    )
    _start_session(user)
    log.info("Usuario %s registrado (%s)", user.id, user.role)
    return jsonify({
        "message": "Usuario creado y sesión iniciada exitosamente",
        "user": user.to_dict(),
    }), 201


@auth_bp.route("/login", methods=["POST"])
@auth_rate_limit
def login():
    data = parse_body(LoginIn, "Datos de inicio de sesión inválidos")
    user = verify_credentials(data.email, data.password)
    _start_session(user)
    log.info("Login correcto usuario=%s", user.id)
    return jsonify({"message": "Sesión iniciada exitosamente", "user": user.summary()})


@auth_bp.route("/logout", methods=["POST"])
@is_authenticated
def logout():
    log.info("Logout usuario=%s", current_user.id)
    _end_session()
    return jsonify({"message": "Sesión cerrada exitosamente"})


@auth_bp.route("/me", methods=["GET"])
@is_authenticated
def me():
    user = current_user
    return jsonify({"user": {
        **user.summary(),
        "familyId": user.family_id,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }})


@auth_bp.route("/status", methods=["GET"])
def status():
    if current_user.is_authenticated:
        return jsonify({"authenticated": True, "user": current_user.summary()})
    return jsonify({"authenticated": False, "user": None})


# =========================
# Perfil
# =========================
@auth_bp.route("/profile", methods=["GET"])
@is_authenticated
@api_rate_limit
def get_profile():
    return jsonify({"user": _profile(current_user)}), 200, NO_CACHE


@auth_bp.route("/profile", methods=["PUT"])
@is_authenticated
@api_rate_limit
def update_profile():
    data = parse_body(ProfileUpdate, "Datos de perfil inválidos")
    user = current_user._get_current_object()

    if data.email != user.email:
        other = storage.get_user_by_email(data.email)
        if other is not None and other.id != user.id:
            raise Conflict("El email ya está en uso por otro usuario", error="EMAIL_ALREADY_EXISTS")

    changes = {"name": data.name, "email": data.email}
    if "avatar" in data.model_fields_set:
        changes["avatar"] = data.avatar
    if data.notification_preferences is not None:
        changes["notification_preferences"] = data.notification_preferences.model_dump(by_alias=True)

    storage.update_user(user, changes)
    return jsonify({"message": "Perfil actualizado exitosamente", "user": _profile(user)}), 200, NO_CACHE


@auth_bp.route("/change-password", methods=["POST"])
@is_authenticated
@auth_rate_limit
def change_password():
    data = parse_body(ChangePassword, "Datos de cambio de contraseña inválidos")
    user = current_user._get_current_object()

    if not password_matches(user, data.current_password):
        raise AppError("La contraseña actual es incorrecta", error="INVALID_CURRENT_PASSWORD", status=401)
    if password_matches(user, data.new_password):
        raise AppError("La nueva contraseña debe ser diferente a la actual", error="SAME_PASSWORD")

    storage.update_user(user, {
        "password": hash_password(data.new_password),
        "login_attempts": 0,
        "last_login_attempt": None,
    })
    log.info("Contraseña cambiada usuario=%s", user.id)
    return jsonify({"message": "Contraseña cambiada exitosamente"})


@auth_bp.route("/avatar", methods=["POST"])
@is_authenticated
@api_rate_limit
def update_avatar():
    data = parse_body(AvatarIn, "Datos de avatar inválidos")
    user = storage.update_user(current_user._get_current_object(), {"avatar": data.avatar})
    return jsonify({"message": "Avatar actualizado exitosamente", "avatar": user.avatar})


@auth_bp.route("/account", methods=["DELETE"])
@is_authenticated
@auth_rate_limit
def delete_account():
    data = parse_body(AccountDeletion, "Datos de eliminación de cuenta inválidos")
    user = current_user._get_current_object()

    if not password_matches(user, data.password):
        raise AppError("Contraseña incorrecta", error="INVALID_PASSWORD", status=401)

    user_id = user.id
    _end_session()
    storage.delete_user(user)
    log.info("Cuenta %s eliminada", user_id)
    return jsonify({"message": "Cuenta eliminada exitosamente"})
