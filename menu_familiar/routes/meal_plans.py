# menu_familiar/routes/meal_plans.py
import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

from menu_familiar.errors import AppError, NotFound
from menu_familiar.models.meal_plan import TIPOS_COMIDA
from menu_familiar.models.user import Role
from menu_familiar.schemas import CommentIn, MealPlanIn, MealPlanUpdate, parse_body
from menu_familiar.services.access import (
    api_rate_limit,
    commentator_rate_limit,
    current_scope,
    is_authenticated,
    require_creator_role,
    require_role,
)
from menu_familiar.services.storage import storage
from menu_familiar.utils.fechas import inicio_semana, parse_fecha

log = logging.getLogger(__name__)

meal_plans_bp = Blueprint("meal_plans", __name__, url_prefix="/api/meal-plans")
api_rate_limit(meal_plans_bp)


def _date_arg(name):
    """Fecha opcional de la query string; 400 si viene mal formada."""
    raw = request.args.get(name)
    if not raw:
        return None
    value = parse_fecha(raw)
    if value is None:
        raise AppError(f"Parámetro {name} inválido (formato YYYY-MM-DD)", error="INVALID_DATE")
    return value


def _meal_plan_or_404(meal_plan_id):
    meal_plan = storage.get_meal_plan_by_id(meal_plan_id, **current_scope())
    if meal_plan is None:
        raise NotFound("Plan de comida no encontrado", error="MEAL_PLAN_NOT_FOUND")
    return meal_plan


# =========================
# Planificación semanal
# =========================
@meal_plans_bp.route("", methods=["GET"])
@is_authenticated
def list_meal_plans():
    scope = current_scope()
    start = _date_arg("startDate")
    day = _date_arg("date")
    tipo = request.args.get("tipoComida")

    if start:
        plans = storage.get_meal_plans_for_week(start, **scope)
    elif day and tipo:
        if tipo not in TIPOS_COMIDA:
            raise AppError("tipoComida inválido", error="INVALID_MEAL_TYPE")
        plan = storage.get_meal_plan_by_date_and_type(day, tipo, **scope)
        plans = [plan] if plan else []
    elif day:
        plans = storage.get_meal_plan_by_date(day, **scope)
    else:
        # Por defecto, la semana actual (lunes a domingo)
        plans = storage.get_meal_plans_for_week(inicio_semana(), **scope)

    return jsonify([mp.to_dict() for mp in plans])


@meal_plans_bp.route("/week", methods=["GET"])
@is_authenticated
def week():
    start = inicio_semana(_date_arg("startDate"))
    plans = storage.get_meal_plans_for_week(start, **current_scope())
    return jsonify({
        "startDate": start.isoformat(),
        "mealPlans": [mp.to_dict() for mp in plans],
    })


@meal_plans_bp.route("/<int:meal_plan_id>", methods=["GET"])
@is_authenticated
def get_meal_plan(meal_plan_id):
    return jsonify(_meal_plan_or_404(meal_plan_id).to_dict())


@meal_plans_bp.route("", methods=["POST"])
@require_creator_role
def create_meal_plan():
    data = parse_body(MealPlanIn, "Datos del plan de comida inválidos").to_columns()
    data.update(
        user_id=current_user.id,
        created_by=current_user.id,
        family_id=current_user.family_id,
    )
    meal_plan = storage.create_meal_plan(data)
    log.info("Plan %s (%s %s) creado por usuario %s",
             meal_plan.id, meal_plan.fecha, meal_plan.tipo_comida, current_user.id)
    return jsonify(meal_plan.to_dict()), 201


@meal_plans_bp.route("/<int:meal_plan_id>", methods=["PUT"])
@require_creator_role
def update_meal_plan(meal_plan_id):
    data = parse_body(MealPlanUpdate, "Datos del plan de comida inválidos").to_columns()
    meal_plan = storage.update_meal_plan(meal_plan_id, data, **current_scope())
    if meal_plan is None:
        raise NotFound("Plan de comida no encontrado", error="MEAL_PLAN_NOT_FOUND")
    return jsonify(meal_plan.to_dict())


@meal_plans_bp.route("/<int:meal_plan_id>", methods=["DELETE"])
@require_creator_role
def delete_meal_plan(meal_plan_id):
    if not storage.delete_meal_plan(meal_plan_id, **current_scope()):
        raise NotFound("Plan de comida no encontrado", error="MEAL_PLAN_NOT_FOUND")
    return jsonify({"message": "Plan de comida eliminado exitosamente"})


# =========================
# Comentarios de una comida
# =========================
@meal_plans_bp.route("/<int:meal_plan_id>/comments", methods=["GET"])
@is_authenticated
def list_comments(meal_plan_id):
    meal_plan = _meal_plan_or_404(meal_plan_id)
    comments = storage.get_meal_comments(meal_plan.id, **current_scope())
    return jsonify([c.to_dict() for c in comments])


@meal_plans_bp.route("/<int:meal_plan_id>/comments", methods=["POST"])
@require_role(Role.CREATOR, Role.COMMENTATOR)
@commentator_rate_limit
def add_comment(meal_plan_id):
    meal_plan = _meal_plan_or_404(meal_plan_id)
    data = parse_body(CommentIn, "Datos del comentario inválidos")
    comment = storage.add_meal_comment(
        meal_plan.id, current_user.id, current_user.family_id, data.comment, data.emoji
    )
    return jsonify(comment.to_dict()), 201


@meal_plans_bp.route("/<int:meal_plan_id>/comments/<int:comment_id>", methods=["DELETE"])
@is_authenticated
def delete_comment(meal_plan_id, comment_id):
    meal_plan = _meal_plan_or_404(meal_plan_id)
    deleted = storage.delete_meal_comment(
        comment_id, current_user.id, current_user.family_id, meal_plan_id=meal_plan.id
    )
    if not deleted:
        raise NotFound("Comentario no encontrado", error="COMMENT_NOT_FOUND")
    return jsonify({"message": "Comentario eliminado exitosamente"})
