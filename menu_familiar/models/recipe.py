# menu_familiar/models/recipe.py

from sqlalchemy import CheckConstraint, UniqueConstraint
from menu_familiar import db
from menu_familiar.utils.fechas import utcnow


class Recipe(db.Model):
    __tablename__ = "recipes"

    id          = db.Column(db.Integer, primary_key=True)
    nombre      = db.Column(db.String(200), nullable=False)
    descripcion = db.Column(db.Text, nullable=True)
    imagen      = db.Column(db.Text, nullable=True)  # URL o base64
    enlace_externo = db.Column(db.String(500), nullable=True)
    categoria   = db.Column(db.String(50), nullable=False)  # "Plato Principal", "Postre", "Merienda"...

    calificacion_ninos = db.Column(db.Integer, nullable=False, default=0)  # 0-5 estrellas
    ingredientes       = db.Column(db.JSON, nullable=True)  # lista de strings
    instrucciones      = db.Column(db.Text, nullable=True)
    tiempo_preparacion = db.Column(db.Integer, nullable=True)  # minutos
    porciones          = db.Column(db.Integer, nullable=True)
    es_favorita        = db.Column(db.Boolean, nullable=False, default=False)

    # Ámbito: familia (preferente) o usuario
    user_id    = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    family_id  = db.Column(db.Integer, db.ForeignKey("families.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("calificacion_ninos BETWEEN 0 AND 5", name="ck_recipes_calificacion"),
    )

    user       = db.relationship("User", back_populates="recipes", foreign_keys=[user_id])
    family     = db.relationship("Family", back_populates="recipes")
    meal_plans = db.relationship("MealPlan", back_populates="recipe")
    ratings    = db.relationship("RecipeRating", back_populates="recipe", cascade="all")

    # Campos que el cliente puede escribir (atributo -> clave JSON)
    EDITABLE = {
        "nombre": "nombre",
        "descripcion": "descripcion",
        "imagen": "imagen",
        "enlace_externo": "enlaceExterno",
        "categoria": "categoria",
        "calificacion_ninos": "calificacionNinos",
        "ingredientes": "ingredientes",
        "instrucciones": "instrucciones",
        "tiempo_preparacion": "tiempoPreparacion",
        "porciones": "porciones",
        "es_favorita": "esFavorita",
    }

    def update_from_dict(self, data: dict):
        """Actualiza solo campos permitidos; nunca toca el ámbito (user/family)."""
        for attr in self.EDITABLE:
            if attr in data:
                setattr(self, attr, data[attr])

    def matches(self, term: str) -> bool:
        """Búsqueda libre en nombre, descripción, categoría e ingredientes."""
        term = term.lower()
        return (
            term in (self.nombre or "").lower()
            or term in (self.descripcion or "").lower()
            or term in (self.categoria or "").lower()
            or any(term in (ing or "").lower() for ing in (self.ingredientes or []))
        )

    def to_dict(self) -> dict:
        out = {"id": self.id}
        for attr, key in self.EDITABLE.items():
            out[key] = getattr(self, attr)
        out["ingredientes"] = list(self.ingredientes or [])
        out.update({
            "userId": self.user_id,
            "createdBy": self.created_by,
            "familyId": self.family_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        })
        return out

    def __repr__(self) -> str:
        return f"<Recipe {self.id} {self.nombre!r} family={self.family_id}>"


class RecipeRating(db.Model):
    __tablename__ = "recipe_ratings"

    id        = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id   = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    family_id = db.Column(db.Integer, db.ForeignKey("families.id", ondelete="CASCADE"), nullable=True, index=True)
    rating    = db.Column(db.Integer, nullable=False)
    comment   = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # Una calificación por (receta, usuario): el upsert se apoya en esto
        UniqueConstraint("recipe_id", "user_id", name="uq_recipe_ratings_recipe_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_recipe_ratings_rating"),
    )

    recipe = db.relationship("Recipe", back_populates="ratings")
    user   = db.relationship("User", back_populates="ratings")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipeId": self.recipe_id,
            "userId": self.user_id,
            "familyId": self.family_id,
            "rating": self.rating,
            "comment": self.comment,
            "user": {"id": self.user.id, "name": self.user.name, "avatar": self.user.avatar} if self.user else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<RecipeRating recipe={self.recipe_id} user={self.user_id} rating={self.rating}>"
