# menu_familiar/routes/recipes.py
import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

from menu_familiar.errors import NotFound
from menu_familiar.models.user import Role
from menu_familiar.schemas import RatingIn, RecipeIn, RecipeUpdate, parse_body
from menu_familiar.services.access import (
    api_rate_limit,
    commentator_rate_limit,
    current_scope,
    is_authenticated,
    require_creator_role,
    require_role,
)
from menu_familiar.services.storage import storage

log = logging.getLogger(__name__)

recipes_bp = Blueprint("recipes", __name__, url_prefix="/api/recipes")
api_rate_limit(recipes_bp)


def _recipe_or_404(recipe_id):
    recipe = storage.get_recipe_by_id(recipe_id, **current_scope())
    if recipe is None:
        raise NotFound("Receta no encontrada", error="RECIPE_NOT_FOUND")
    return recipe


def _truthy(value) -> bool:
    return (value or "").lower() in ("1", "true", "yes", "si", "sí")


# =========================
# Catálogo
# =========================
@recipes_bp.route("", methods=["GET"])
@is_authenticated
def list_recipes():
    scope = current_scope()
    category = (request.args.get("category") or "").strip()
    search = (request.args.get("search") or "").strip()

    if _truthy(request.args.get("favorites")):
        recipes = storage.get_favorite_recipes(**scope)
    elif category:
        recipes = storage.get_recipes_by_category(category, **scope)
    elif search:
        recipes = storage.search_recipes(search, **scope)
    else:
        recipes = storage.get_all_recipes(**scope)

    # Los filtros se combinan
    if category:
        recipes = [r for r in recipes if r.categoria == category]
    if search:
        recipes = [r for r in recipes if r.matches(search)]

    return jsonify([r.to_dict() for r in recipes])


# Va antes de /<int:recipe_id> para que no la tape
@recipes_bp.route("/my-ratings", methods=["GET"])
@is_authenticated
def my_ratings():
    rows = storage.get_rated_recipes_for_user(
        current_user.id, current_user.family_id, request.args.get("search")
    )
    out = []
    for recipe, rating in rows:
        data = recipe.to_dict()
        data["userRating"] = {
            "rating": rating.rating,
            "comment": rating.comment,
            "updatedAt": rating.updated_at.isoformat() if rating.updated_at else None,
        }
        out.append(data)
    return jsonify(out)


@recipes_bp.route("/<int:recipe_id>", methods=["GET"])
@is_authenticated
def get_recipe(recipe_id):
    return jsonify(_recipe_or_404(recipe_id).to_dict())


@recipes_bp.route("", methods=["POST"])
@require_creator_role
def create_recipe():
    data = parse_body(RecipeIn, "Datos de receta inválidos").to_columns()
    data.update(
        user_id=current_user.id,
        created_by=current_user.id,
        family_id=current_user.family_id,
    )
    recipe = storage.create_recipe(data)
    log.info("Receta %s creada por usuario %s", recipe.id, current_user.id)
    return jsonify(recipe.to_dict()), 201


@recipes_bp.route("/<int:recipe_id>", methods=["PUT"])
@require_creator_role
def update_recipe(recipe_id):
    data = parse_body(RecipeUpdate, "Datos de receta inválidos").to_columns()
    recipe = storage.update_recipe(recipe_id, data, **current_scope())
    if recipe is None:
        raise NotFound("Receta no encontrada", error="RECIPE_NOT_FOUND")
    return jsonify(recipe.to_dict())


@recipes_bp.route("/<int:recipe_id>", methods=["DELETE"])
@require_creator_role
def delete_recipe(recipe_id):
    # RecipeInUseError (400) sale de la capa de datos
    if not storage.delete_recipe(recipe_id, **current_scope()):
        raise NotFound("Receta no encontrada", error="RECIPE_NOT_FOUND")
    log.info("Receta %s eliminada por usuario %s", recipe_id, current_user.id)
    return jsonify({"message": "Receta eliminada exitosamente"})


# =========================
# Calificaciones
# =========================
@recipes_bp.route("/<int:recipe_id>/rating", methods=["POST"])
@require_role(Role.CREATOR, Role.COMMENTATOR)
@commentator_rate_limit
def rate_recipe(recipe_id):
    recipe = _recipe_or_404(recipe_id)
    data = parse_body(RatingIn, "Datos de calificación inválidos")
    rating = storage.set_recipe_rating(
        recipe.id, current_user.id, current_user.family_id, data.rating, data.comment
    )
    summary = storage.get_recipe_rating_summary(recipe.id, **current_scope())
    return jsonify({
        "message": "Calificación guardada exitosamente",
        "rating": rating.to_dict(),
        "averageRating": summary["average"],
        "totalRatings": summary["count"],
    })


@recipes_bp.route("/<int:recipe_id>/ratings", methods=["GET"])
@is_authenticated
def recipe_ratings(recipe_id):
    recipe = _recipe_or_404(recipe_id)
    scope = current_scope()
    ratings = storage.get_recipe_ratings(recipe.id, **scope)
    summary = storage.get_recipe_rating_summary(recipe.id, **scope)
    own = storage.get_user_recipe_rating(recipe.id, current_user.id)
    return jsonify({
        "ratings": [r.to_dict() for r in ratings],
        "averageRating": summary["average"],
        "totalRatings": summary["count"],
        "userRating": own.to_dict() if own else None,
    })
