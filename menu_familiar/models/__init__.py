"""
Modelos de la base de datos.

Importar este paquete registra todas las tablas en ``db.metadata`` (lo usan
``db.create_all`` y Flask-Migrate).
"""

from .user import User, Role, ROLES
from .family import Family, FamilyMember
from .recipe import Recipe, RecipeRating
from .meal_plan import MealPlan, MealComment, TIPOS_COMIDA
from .session import UserSession

__all__ = [
    "User",
    "Role",
    "ROLES",
    "Family",
    "FamilyMember",
    "Recipe",
    "RecipeRating",
    "MealPlan",
    "MealComment",
    "TIPOS_COMIDA",
    "UserSession",
]
