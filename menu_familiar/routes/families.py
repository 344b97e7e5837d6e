# menu_familiar/routes/families.py
import logging

from flask import Blueprint, jsonify
from flask_login import current_user

from menu_familiar.errors import AppError, Forbidden, NotFound
from menu_familiar.schemas import FamilyIn, JoinFamilyIn, parse_body
from menu_familiar.services.access import (
    api_rate_limit,
    family_code_rate_limit,
    is_authenticated,
    require_creator_role,
    require_family_access,
    require_family_edit_access,
)
from menu_familiar.services.storage import storage
from menu_familiar.utils.codigos import es_codigo_valido, normalizar_codigo

log = logging.getLogger(__name__)

families_bp = Blueprint("families", __name__, url_prefix="/api/families")
api_rate_limit(families_bp)


def _family_or_404(family_id):
    family = storage.get_family_by_id(family_id)
    if family is None:
        raise NotFound("Familia no encontrada", error="FAMILY_NOT_FOUND")
    return family


def _family_payload(family) -> dict:
    data = family.to_dict()
    data["members"] = [m.to_dict() for m in storage.get_family_members(family.id)]
    return data


# =========================
# Alta y unión
# =========================
@families_bp.route("", methods=["POST"])
@require_creator_role
@family_code_rate_limit
def create_family():
    data = parse_body(FamilyIn, "Datos de familia inválidos")
    family = storage.create_family(data.nombre, current_user._get_current_object())
    return jsonify({
        "message": "Familia creada exitosamente",
        "family": _family_payload(family),
    }), 201


@families_bp.route("/join", methods=["POST"])
@is_authenticated
def join_family():
    data = parse_body(JoinFamilyIn, "Datos de unión inválidos")
    code = normalizar_codigo(data.codigo_invitacion)
    if not es_codigo_valido(code):
        raise AppError("Formato de código inválido. Debe ser XXX-XXX", error="INVALID_CODE_FORMAT")

    family = storage.get_family_by_invite_code(code)
    if family is None:
        log.warning("Código de invitación desconocido usado por usuario %s", current_user.id)
        raise NotFound("Código de invitación no válido", error="FAMILY_NOT_FOUND")

    storage.add_user_to_family(current_user.id, family.id)
    log.info("Usuario %s se une a familia %s", current_user.id, family.id)
    return jsonify({
        "message": f"Te has unido a la familia {family.nombre}",
        "family": _family_payload(family),
    })


# =========================
# Consulta
# =========================
@families_bp.route("/<int:family_id>", methods=["GET"])
@require_family_access
def get_family(family_id):
    return jsonify(_family_payload(_family_or_404(family_id)))


@families_bp.route("/<int:family_id>/members", methods=["GET"])
@require_family_access
def list_members(family_id):
    _family_or_404(family_id)
    return jsonify([m.to_dict() for m in storage.get_family_members(family_id)])


# =========================
# Miembros
# =========================
@families_bp.route("/<int:family_id>/members/<int:user_id>", methods=["DELETE"])
@require_family_edit_access
def remove_member(family_id, user_id):
    family = _family_or_404(family_id)
    if user_id == family.created_by:
        raise AppError("No se puede eliminar al administrador de la familia", error="CANNOT_REMOVE_ADMIN")
    if user_id == current_user.id:
        raise AppError("Para salir de la familia usa la opción de abandonar", error="USE_LEAVE")
    if not storage.remove_user_from_family(user_id, family_id):
        raise NotFound("El usuario no pertenece a esta familia", error="MEMBER_NOT_FOUND")
    log.info("Usuario %s eliminado de familia %s por %s", user_id, family_id, current_user.id)
    return jsonify({"message": "Miembro eliminado exitosamente"})


@families_bp.route("/<int:family_id>/leave", methods=["POST"])
@require_family_access
def leave_family(family_id):
    family = _family_or_404(family_id)
    members = storage.get_family_members(family_id)
    if family.created_by == current_user.id and len(members) > 1:
        raise AppError(
            "El administrador no puede abandonar la familia mientras tenga otros miembros",
            error="ADMIN_CANNOT_LEAVE",
        )

    storage.remove_user_from_family(current_user.id, family_id)
    if not storage.get_family_members(family_id):
        storage.delete_family(family_id)
        return jsonify({"message": "Has abandonado la familia. La familia se eliminó al quedar vacía"})
    return jsonify({"message": "Has abandonado la familia"})


# =========================
# Código de invitación y baja
# =========================
@families_bp.route("/<int:family_id>/regenerate-code", methods=["POST"])
@require_family_edit_access
@family_code_rate_limit
def regenerate_code(family_id):
    family = storage.regenerate_invite_code(family_id)
    if family is None:
        raise NotFound("Familia no encontrada", error="FAMILY_NOT_FOUND")
    log.info("Código de familia %s regenerado por %s", family_id, current_user.id)
    return jsonify({
        "message": "Código de invitación regenerado",
        "codigoInvitacion": family.codigo_invitacion,
    })


@families_bp.route("/<int:family_id>", methods=["DELETE"])
@require_family_edit_access
def delete_family(family_id):
    family = _family_or_404(family_id)
    if family.created_by != current_user.id:
        raise Forbidden("Solo el administrador puede eliminar la familia", error="FAMILY_ADMIN_REQUIRED")
    storage.delete_family(family_id)
    return jsonify({"message": "Familia eliminada exitosamente"})
