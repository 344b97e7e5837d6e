# menu_familiar/services/mem_storage.py
"""
Almacenamiento en memoria para recetas y planes (pruebas rápidas, scripts).

AVISO: NO aplica ámbito. Los parámetros ``user_id``/``family_id`` se aceptan
para tener la misma firma que ``DatabaseStorage`` pero se ignoran: cualquiera
ve y modifica todo. Nunca se usa como respaldo en producción; la app solo
conoce ``services.storage.storage``.
"""

from __future__ import annotations

from datetime import date

from menu_familiar.errors import RecipeInUseError
from menu_familiar.utils.fechas import rango_semana

_RECIPE_DEFAULTS = {
    "descripcion": None,
    "imagen": None,
    "enlace_externo": None,
    "calificacion_ninos": 0,
    "ingredientes": None,
    "instrucciones": None,
    "tiempo_preparacion": None,
    "porciones": None,
    "es_favorita": False,
    "user_id": None,
    "created_by": None,
    "family_id": None,
}

_MEAL_PLAN_DEFAULTS = {
    "receta_id": None,
    "tipo_comida": "almuerzo",
    "notas": None,
    "user_id": None,
    "created_by": None,
    "family_id": None,
}


def _matches(recipe: dict, term: str) -> bool:
    term = term.lower()
    return (
        term in (recipe["nombre"] or "").lower()
        or term in (recipe["descripcion"] or "").lower()
        or term in (recipe["categoria"] or "").lower()
        or any(term in ing.lower() for ing in recipe["ingredientes"] or [])
    )


class MemStorage:
    def __init__(self):
        self.recipes: dict[int, dict] = {}
        self.meal_plans: dict[int, dict] = {}
        self._next_recipe_id = 1
        self._next_meal_plan_id = 1

    # Recetas
    def get_all_recipes(self, user_id=None, family_id=None) -> list[dict]:
        return list(self.recipes.values())

    def get_recipe_by_id(self, recipe_id, user_id=None, family_id=None) -> dict | None:
        return self.recipes.get(recipe_id)

    def get_recipes_by_category(self, categoria, user_id=None, family_id=None) -> list[dict]:
        return [r for r in self.recipes.values() if r["categoria"] == categoria]

    def get_favorite_recipes(self, user_id=None, family_id=None) -> list[dict]:
        return [r for r in self.recipes.values() if r["es_favorita"]]

    def search_recipes(self, term, user_id=None, family_id=None) -> list[dict]:
        term = (term or "").strip()
        if not term:
            return self.get_all_recipes()
        return [r for r in self.recipes.values() if _matches(r, term)]

    def create_recipe(self, data: dict) -> dict:
        recipe = {**_RECIPE_DEFAULTS, **data, "id": self._next_recipe_id}
        self._next_recipe_id += 1
        self.recipes[recipe["id"]] = recipe
        return recipe

    def update_recipe(self, recipe_id, data: dict, user_id=None, family_id=None) -> dict | None:
        recipe = self.recipes.get(recipe_id)
        if recipe is None:
            return None
        recipe.update({k: v for k, v in data.items() if k != "id"})
        return recipe

    def is_recipe_used_in_meal_plans(self, recipe_id, user_id=None, family_id=None) -> bool:
        return any(mp["receta_id"] == recipe_id for mp in self.meal_plans.values())

    def delete_recipe(self, recipe_id, user_id=None, family_id=None) -> bool:
        if recipe_id not in self.recipes:
            return False
        if self.is_recipe_used_in_meal_plans(recipe_id):
            raise RecipeInUseError()
        del self.recipes[recipe_id]
        return True

    # Planes
    def get_meal_plans_for_week(self, start: date, user_id=None, family_id=None) -> list[dict]:
        first, last = rango_semana(start)
        return sorted(
            (mp for mp in self.meal_plans.values() if first <= mp["fecha"] <= last),
            key=lambda mp: (mp["fecha"], mp["tipo_comida"]),
        )

    def get_meal_plan_by_date(self, fecha: date, user_id=None, family_id=None) -> list[dict]:
        return [mp for mp in self.meal_plans.values() if mp["fecha"] == fecha]

    def get_meal_plan_by_date_and_type(self, fecha: date, tipo_comida, user_id=None, family_id=None) -> dict | None:
        return next(
            (mp for mp in self.meal_plans.values() if mp["fecha"] == fecha and mp["tipo_comida"] == tipo_comida),
            None,
        )

    def get_meal_plan_by_id(self, meal_plan_id, user_id=None, family_id=None) -> dict | None:
        return self.meal_plans.get(meal_plan_id)

    def create_meal_plan(self, data: dict) -> dict:
        meal_plan = {**_MEAL_PLAN_DEFAULTS, **data, "id": self._next_meal_plan_id}
        self._next_meal_plan_id += 1
        self.meal_plans[meal_plan["id"]] = meal_plan
        return meal_plan

    def update_meal_plan(self, meal_plan_id, data: dict, user_id=None, family_id=None) -> dict | None:
        meal_plan = self.meal_plans.get(meal_plan_id)
        if meal_plan is None:
            return None
        meal_plan.update({k: v for k, v in data.items() if k != "id"})
        return meal_plan

    def delete_meal_plan(self, meal_plan_id, user_id=None, family_id=None) -> bool:
        return self.meal_plans.pop(meal_plan_id, None) is not None
