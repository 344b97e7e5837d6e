# menu_familiar/models/user.py

import enum

from sqlalchemy import CheckConstraint
from flask_login import UserMixin
from menu_familiar import db, login_manager
from menu_familiar.utils.fechas import utcnow


class Role(str, enum.Enum):
    """Roles cerrados de la app; comparables directamente con el string guardado."""
    CREATOR = "creator"
    COMMENTATOR = "commentator"
    ADMIN = "admin"


ROLES = tuple(r.value for r in Role)


def _default_notification_preferences():
    return {"email": True, "recipes": True, "mealPlans": True}


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id       = db.Column(db.Integer, primary_key=True)
    name     = db.Column(db.String(100), nullable=False)
    email    = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    role     = db.Column(db.String(20), nullable=False, default=Role.CREATOR.value)
    avatar   = db.Column(db.Text, nullable=True)

    # Puntero desnormalizado a la única familia (ver FamilyMember.user_id único)
    family_id = db.Column(db.Integer, db.ForeignKey("families.id", ondelete="SET NULL"), nullable=True)

    notification_preferences = db.Column(db.JSON, default=_default_notification_preferences)

    # Bloqueo por intentos fallidos
    login_attempts     = db.Column(db.Integer, nullable=False, default=0)
    last_login_attempt = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("role IN ('creator','commentator','admin')", name="ck_users_role"),
    )

    # Relaciones: recetas y planes familiares sobreviven a la cuenta (user_id -> NULL)
    recipes    = db.relationship("Recipe", back_populates="user", foreign_keys="Recipe.user_id")
    meal_plans = db.relationship("MealPlan", back_populates="user", foreign_keys="MealPlan.user_id")
    ratings    = db.relationship("RecipeRating", back_populates="user", cascade="all")
    comments   = db.relationship("MealComment", back_populates="user", cascade="all")
    membership = db.relationship("FamilyMember", back_populates="user", uselist=False,
                                 cascade="all")
    family     = db.relationship("Family", foreign_keys=[family_id])

    @property
    def is_creator(self) -> bool:
        return self.role == Role.CREATOR

    @property
    def is_commentator(self) -> bool:
        return self.role == Role.COMMENTATOR

    def preferences(self) -> dict:
        prefs = _default_notification_preferences()
        prefs.update(self.notification_preferences or {})
        return prefs

    def summary(self) -> dict:
        """Lo mínimo que devuelven login y /status."""
        return {"id": self.id, "email": self.email, "name": self.name, "role": self.role}

    def to_dict(self) -> dict:
        # Nunca incluye el hash de la contraseña
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar": self.avatar,
            "role": self.role,
            "familyId": self.family_id,
            "notificationPreferences": self.preferences(),
            "loginAttempts": self.login_attempts,
            "lastLoginAttempt": self.last_login_attempt.isoformat() if self.last_login_attempt else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} {self.role}>"


# Loader para Flask-Login
@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))
