# menu_familiar/models/meal_plan.py

from sqlalchemy import CheckConstraint
from menu_familiar import db
from menu_familiar.utils.fechas import utcnow

TIPOS_COMIDA = ("almuerzo", "cena")


class MealPlan(db.Model):
    __tablename__ = "meal_plans"

    id          = db.Column(db.Integer, primary_key=True)
    fecha       = db.Column(db.Date, nullable=False, index=True)
    receta_id   = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=True, index=True)
    tipo_comida = db.Column(db.String(20), nullable=False, default="almuerzo")
    notas       = db.Column(db.Text, nullable=True)

    user_id    = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    family_id  = db.Column(db.Integer, db.ForeignKey("families.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("tipo_comida IN ('almuerzo','cena')", name="ck_meal_plans_tipo"),
        db.Index("ix_meal_plans_family_fecha", "family_id", "fecha"),
    )

    recipe   = db.relationship("Recipe", back_populates="meal_plans")
    user     = db.relationship("User", back_populates="meal_plans", foreign_keys=[user_id])
    family   = db.relationship("Family", back_populates="meal_plans")
    comments = db.relationship("MealComment", back_populates="meal_plan", cascade="all",
                               order_by="MealComment.created_at")

    EDITABLE = {
        "fecha": "fecha",
        "receta_id": "recetaId",
        "tipo_comida": "tipoComida",
        "notas": "notas",
    }

    def update_from_dict(self, data: dict):
        for attr in self.EDITABLE:
            if attr in data:
                setattr(self, attr, data[attr])

    def to_dict(self, with_recipe: bool = True) -> dict:
        out = {
            "id": self.id,
            "fecha": self.fecha.isoformat(),
            "recetaId": self.receta_id,
            "tipoComida": self.tipo_comida,
            "notas": self.notas,
            "userId": self.user_id,
            "createdBy": self.created_by,
            "familyId": self.family_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if with_recipe:
            r = self.recipe
            out["recipe"] = {"id": r.id, "nombre": r.nombre, "imagen": r.imagen, "categoria": r.categoria} if r else None
        return out

    def __repr__(self) -> str:
        return f"<MealPlan {self.id} {self.fecha} {self.tipo_comida} receta={self.receta_id}>"


class MealComment(db.Model):
    __tablename__ = "meal_comments"

    id           = db.Column(db.Integer, primary_key=True)
    meal_plan_id = db.Column(db.Integer, db.ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id      = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    family_id    = db.Column(db.Integer, db.ForeignKey("families.id", ondelete="CASCADE"), nullable=True, index=True)
    comment      = db.Column(db.Text, nullable=False)
    emoji        = db.Column(db.String(16), nullable=True)
    created_at   = db.Column(db.DateTime, nullable=False, default=utcnow)

    meal_plan = db.relationship("MealPlan", back_populates="comments")
    user      = db.relationship("User", back_populates="comments")

    def to_dict(self, with_context: bool = False) -> dict:
        out = {
            "id": self.id,
            "mealPlanId": self.meal_plan_id,
            "userId": self.user_id,
            "familyId": self.family_id,
            "comment": self.comment,
            "emoji": self.emoji,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "user": {"id": self.user.id, "name": self.user.name, "avatar": self.user.avatar},
        }
        if with_context:
            # Para el feed familiar: a qué comida y receta se refiere
            mp = self.meal_plan
            out["mealPlan"] = {"id": mp.id, "fecha": mp.fecha.isoformat(), "tipoComida": mp.tipo_comida}
            out["recipe"] = {"id": mp.recipe.id, "nombre": mp.recipe.nombre} if mp.recipe else None
        return out

    def __repr__(self) -> str:
        return f"<MealComment {self.id} meal={self.meal_plan_id} user={self.user_id}>"
