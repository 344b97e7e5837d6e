# menu_familiar/routes/comments.py
from flask import Blueprint, jsonify, request

from menu_familiar.services.access import api_rate_limit, current_scope, is_authenticated
from menu_familiar.services.storage import storage

comments_bp = Blueprint("comments", __name__, url_prefix="/api/comments")
api_rate_limit(comments_bp)

MAX_FEED = 100


@comments_bp.route("/family", methods=["GET"])
@is_authenticated
def family_feed():
    """Últimos comentarios de la familia, con la comida y receta a la que se refieren."""
    limit = request.args.get("limit", default=20, type=int)
    limit = max(1, min(limit, MAX_FEED))
    comments = storage.get_family_comments(limit=limit, **current_scope())
    return jsonify([c.to_dict(with_context=True) for c in comments])
