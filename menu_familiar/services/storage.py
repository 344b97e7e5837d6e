# menu_familiar/services/storage.py
"""
Capa de acceso a datos con ámbito familiar.

Es el único sitio que toca la base de datos para recetas, planes, notas,
comentarios y familias. Casi todos los métodos aceptan ``user_id`` y/o
``family_id`` opcionales y añaden ese predicado (AND) a la consulta:

  - ``family_id`` tiene preferencia si vienen los dos;
  - solo con ``user_id`` se ven las filas personales (sin familia) del
    usuario, nunca las que dejó en una familia de la que ya no es miembro;
  - sin ninguno la consulta no se filtra (uso interno, CLI).

"No existe" y "existe pero es de otra familia" son indistinguibles para quien
llama: ambos devuelven ``None`` / ``False``.

Los pasos comprobar-y-actuar (borrar receta en uso, upsert de nota, crear
familia + primer miembro) van en una única transacción; la receta se bloquea
con ``SELECT ... FOR UPDATE`` allí donde el motor lo soporta.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from menu_familiar import db
from menu_familiar.errors import Conflict, NotFound, RecipeInUseError
from menu_familiar.models import (
    Family,
    FamilyMember,
    MealComment,
    MealPlan,
    Recipe,
    RecipeRating,
    User,
)
from menu_familiar.utils.codigos import generar_codigo_invitacion, normalizar_codigo
from menu_familiar.utils.fechas import rango_semana

log = logging.getLogger(__name__)

CODE_ATTEMPTS = 5


def _scoped(query, model, user_id=None, family_id=None):
    """AND del ámbito sobre `query`; family_id gana a user_id."""
    if family_id is not None:
        return query.filter(model.family_id == family_id)
    if user_id is not None:
        return query.filter(model.user_id == user_id, model.family_id.is_(None))
    return query


class DatabaseStorage:

    # ------------------------------------------------------------------ #
    # Recetas
    # ------------------------------------------------------------------ #
    def get_all_recipes(self, user_id=None, family_id=None) -> list[Recipe]:
        return _scoped(Recipe.query, Recipe, user_id, family_id).order_by(Recipe.id).all()

    def get_recipe_by_id(self, recipe_id, user_id=None, family_id=None) -> Recipe | None:
        q = Recipe.query.filter(Recipe.id == recipe_id)
        return _scoped(q, Recipe, user_id, family_id).first()

    def get_recipes_by_category(self, categoria, user_id=None, family_id=None) -> list[Recipe]:
        q = Recipe.query.filter(Recipe.categoria == categoria)
        return _scoped(q, Recipe, user_id, family_id).order_by(Recipe.id).all()

    def get_favorite_recipes(self, user_id=None, family_id=None) -> list[Recipe]:
        q = Recipe.query.filter(Recipe.es_favorita.is_(True))
        return _scoped(q, Recipe, user_id, family_id).order_by(Recipe.id).all()

    def search_recipes(self, term, user_id=None, family_id=None) -> list[Recipe]:
        """Nombre, descripción, categoría o ingredientes; sin distinguir mayúsculas."""
        term = (term or "").strip()
        recipes = self.get_all_recipes(user_id, family_id)
        if not term:
            return recipes
        # Los ingredientes son JSON: se filtra en Python sobre el catálogo ya acotado
        return [r for r in recipes if r.matches(term)]

    def create_recipe(self, data: dict) -> Recipe:
        """Inserta tal cual: quien llama ya puso user_id/created_by/family_id."""
        recipe = Recipe(**data)
        db.session.add(recipe)
        db.session.commit()
        return recipe

    def update_recipe(self, recipe_id, data: dict, user_id=None, family_id=None) -> Recipe | None:
        recipe = self.get_recipe_by_id(recipe_id, user_id, family_id)
        if recipe is None:
            return None
        recipe.update_from_dict(data)
        db.session.commit()
        return recipe

    def is_recipe_used_in_meal_plans(self, recipe_id, user_id=None, family_id=None) -> bool:
        q = MealPlan.query.filter(MealPlan.receta_id == recipe_id)
        return db.session.query(_scoped(q, MealPlan, user_id, family_id).exists()).scalar()

    def delete_recipe(self, recipe_id, user_id=None, family_id=None) -> bool:
        """
        Borra si la receta existe en el ámbito. Lanza RecipeInUseError si algún
        plan la usa; comprobación y borrado comparten transacción.
        """
        q = _scoped(Recipe.query.filter(Recipe.id == recipe_id), Recipe, user_id, family_id)
        recipe = q.with_for_update().first()
        if recipe is None:
            db.session.rollback()
            return False
        # Cualquier referencia bloquea el borrado, esté o no en el ámbito
        if self.is_recipe_used_in_meal_plans(recipe.id):
            db.session.rollback()
            raise RecipeInUseError()
        db.session.delete(recipe)
        db.session.commit()
        return True

    def _lock_recipe_in_scope(self, recipe_id, user_id=None, family_id=None) -> Recipe:
        q = _scoped(Recipe.query.filter(Recipe.id == recipe_id), Recipe, user_id, family_id)
        recipe = q.with_for_update().first()
        if recipe is None:
            db.session.rollback()
            raise NotFound("Receta no encontrada", error="RECIPE_NOT_FOUND")
        return recipe

    # ------------------------------------------------------------------ #
    # Planes de comidas
    # ------------------------------------------------------------------ #
    def get_meal_plans_for_week(self, start: date, user_id=None, family_id=None) -> list[MealPlan]:
        first, last = rango_semana(start)
        q = MealPlan.query.filter(MealPlan.fecha >= first, MealPlan.fecha <= last)
        return _scoped(q, MealPlan, user_id, family_id).order_by(MealPlan.fecha, MealPlan.tipo_comida).all()

    def get_meal_plan_by_date(self, fecha: date, user_id=None, family_id=None) -> list[MealPlan]:
        q = MealPlan.query.filter(MealPlan.fecha == fecha)
        return _scoped(q, MealPlan, user_id, family_id).order_by(MealPlan.tipo_comida).all()

    def get_meal_plan_by_date_and_type(self, fecha: date, tipo_comida, user_id=None, family_id=None) -> MealPlan | None:
        q = MealPlan.query.filter(MealPlan.fecha == fecha, MealPlan.tipo_comida == tipo_comida)
        return _scoped(q, MealPlan, user_id, family_id).first()

    def get_meal_plan_by_id(self, meal_plan_id, user_id=None, family_id=None) -> MealPlan | None:
        q = MealPlan.query.filter(MealPlan.id == meal_plan_id)
        return _scoped(q, MealPlan, user_id, family_id).first()

    def create_meal_plan(self, data: dict) -> MealPlan:
        """La receta (si viene) debe ser visible en el mismo ámbito que el plan."""
        if data.get("receta_id") is not None:
            self._lock_recipe_in_scope(data["receta_id"], data.get("user_id"), data.get("family_id"))
        meal_plan = MealPlan(**data)
        db.session.add(meal_plan)
        db.session.commit()
        return meal_plan

    def update_meal_plan(self, meal_plan_id, data: dict, user_id=None, family_id=None) -> MealPlan | None:
        meal_plan = self.get_meal_plan_by_id(meal_plan_id, user_id, family_id)
        if meal_plan is None:
            return None
        if data.get("receta_id") is not None and data["receta_id"] != meal_plan.receta_id:
            self._lock_recipe_in_scope(data["receta_id"], meal_plan.user_id, meal_plan.family_id)
        meal_plan.update_from_dict(data)
        db.session.commit()
        return meal_plan

    def delete_meal_plan(self, meal_plan_id, user_id=None, family_id=None) -> bool:
        meal_plan = self.get_meal_plan_by_id(meal_plan_id, user_id, family_id)
        if meal_plan is None:
            return False
        db.session.delete(meal_plan)
        db.session.commit()
        return True

    # ------------------------------------------------------------------ #
    # Calificaciones
    # ------------------------------------------------------------------ #
    def get_user_recipe_rating(self, recipe_id, user_id) -> RecipeRating | None:
        return RecipeRating.query.filter_by(recipe_id=recipe_id, user_id=user_id).first()

    def set_recipe_rating(self, recipe_id, user_id, family_id, rating, comment=None) -> RecipeRating:
        """
        Upsert por (receta, usuario). Si dos peticiones insertan a la vez, la
        restricción única hace fallar a una y esta reintenta como actualización.
        """
        existing = self.get_user_recipe_rating(recipe_id, user_id)
        if existing is None:
            existing = RecipeRating(recipe_id=recipe_id, user_id=user_id, family_id=family_id,
                                    rating=rating, comment=comment)
            db.session.add(existing)
            try:
                db.session.commit()
                return existing
            except IntegrityError:
                db.session.rollback()
                log.info("Nota concurrente para receta=%s usuario=%s; se actualiza", recipe_id, user_id)
                existing = self.get_user_recipe_rating(recipe_id, user_id)
                if existing is None:
                    raise

        existing.rating = rating
        existing.comment = comment
        existing.family_id = family_id
        db.session.commit()
        return existing

    def get_recipe_ratings(self, recipe_id, user_id=None, family_id=None) -> list[RecipeRating]:
        q = RecipeRating.query.filter(RecipeRating.recipe_id == recipe_id)
        return _scoped(q, RecipeRating, user_id, family_id).order_by(RecipeRating.updated_at.desc()).all()

    def get_recipe_rating_summary(self, recipe_id, user_id=None, family_id=None) -> dict:
        q = db.session.query(func.avg(RecipeRating.rating), func.count(RecipeRating.id)).filter(
            RecipeRating.recipe_id == recipe_id
        )
        average, total = _scoped(q, RecipeRating, user_id, family_id).one()
        return {"average": round(float(average), 1) if average is not None else 0.0, "count": int(total or 0)}

    def get_rated_recipes_for_user(self, user_id, family_id=None, search=None) -> list[tuple[Recipe, RecipeRating]]:
        q = (
            db.session.query(Recipe, RecipeRating)
            .join(RecipeRating, RecipeRating.recipe_id == Recipe.id)
            .filter(RecipeRating.user_id == user_id)
        )
        rows = _scoped(q, Recipe, user_id, family_id).order_by(RecipeRating.updated_at.desc()).all()
        if search and search.strip():
            rows = [(r, rr) for r, rr in rows if r.matches(search.strip())]
        return rows

    # ------------------------------------------------------------------ #
    # Comentarios de comidas
    # ------------------------------------------------------------------ #
    def get_meal_comments(self, meal_plan_id, user_id=None, family_id=None) -> list[MealComment]:
        q = MealComment.query.filter(MealComment.meal_plan_id == meal_plan_id)
        return _scoped(q, MealComment, user_id, family_id).order_by(MealComment.created_at).all()

    def add_meal_comment(self, meal_plan_id, user_id, family_id, comment, emoji=None) -> MealComment:
        row = MealComment(meal_plan_id=meal_plan_id, user_id=user_id, family_id=family_id,
                          comment=comment, emoji=emoji)
        db.session.add(row)
        db.session.commit()
        return row

    def delete_meal_comment(self, comment_id, user_id, family_id=None, meal_plan_id=None) -> bool:
        """Solo el autor puede borrar su comentario."""
        q = MealComment.query.filter(MealComment.id == comment_id, MealComment.user_id == user_id)
        if meal_plan_id is not None:
            q = q.filter(MealComment.meal_plan_id == meal_plan_id)
        row = _scoped(q, MealComment, user_id, family_id).first()
        if row is None:
            return False
        db.session.delete(row)
        db.session.commit()
        return True

    def get_family_comments(self, user_id=None, family_id=None, limit=20) -> list[MealComment]:
        q = _scoped(MealComment.query, MealComment, user_id, family_id)
        return q.order_by(MealComment.created_at.desc(), MealComment.id.desc()).limit(limit).all()

    # ------------------------------------------------------------------ #
    # Familias
    # ------------------------------------------------------------------ #
    def _unused_code(self) -> str:
        for _ in range(CODE_ATTEMPTS):
            code = generar_codigo_invitacion()
            if not Family.query.filter_by(codigo_invitacion=code).first():
                return code
        raise Conflict("No se pudo generar un código de invitación único. Intente de nuevo.",
                       error="INVITE_CODE_CONFLICT")

    def get_family_by_id(self, family_id) -> Family | None:
        return db.session.get(Family, family_id)

    def get_family_by_invite_code(self, code) -> Family | None:
        return Family.query.filter_by(codigo_invitacion=normalizar_codigo(code)).first()

    def get_user_families(self, user_id) -> list[Family]:
        return (
            Family.query.join(FamilyMember, FamilyMember.family_id == Family.id)
            .filter(FamilyMember.user_id == user_id)
            .all()
        )

    def get_family_members(self, family_id) -> list[FamilyMember]:
        return (
            FamilyMember.query.filter_by(family_id=family_id)
            .order_by(FamilyMember.joined_at, FamilyMember.id)
            .all()
        )

    def is_user_in_family(self, user_id, family_id) -> bool:
        return db.session.query(
            FamilyMember.query.filter_by(user_id=user_id, family_id=family_id).exists()
        ).scalar()

    def _adopt_unscoped_rows(self, user_id, family_id):
        """Lo creado antes de tener familia pasa a la familia al entrar."""
        for model in (Recipe, MealPlan, RecipeRating, MealComment):
            model.query.filter(model.user_id == user_id, model.family_id.is_(None)).update(
                {model.family_id: family_id}, synchronize_session=False
            )

    def create_family(self, nombre, user: User) -> Family:
        """Crea la familia y mete a `user` como primer miembro (y administrador)."""
        if FamilyMember.query.filter_by(user_id=user.id).first():
            raise Conflict("Ya perteneces a una familia", error="ALREADY_IN_FAMILY")

        for attempt in range(CODE_ATTEMPTS):
            family = Family(nombre=nombre, codigo_invitacion=self._unused_code(), created_by=user.id)
            db.session.add(family)
            try:
                db.session.flush()
                db.session.add(FamilyMember(family_id=family.id, user_id=user.id))
                user.family_id = family.id
                self._adopt_unscoped_rows(user.id, family.id)
                db.session.commit()
                log.info("Familia %s creada por usuario %s", family.id, user.id)
                return family
            except IntegrityError:
                db.session.rollback()
                if FamilyMember.query.filter_by(user_id=user.id).first():
                    raise Conflict("Ya perteneces a una familia", error="ALREADY_IN_FAMILY")
                log.warning("Colisión de código de invitación (intento %s)", attempt + 1)
        raise Conflict("No se pudo generar un código de invitación único. Intente de nuevo.",
                       error="INVITE_CODE_CONFLICT")

    def add_user_to_family(self, user_id, family_id) -> FamilyMember:
        if FamilyMember.query.filter_by(user_id=user_id).first():
            raise Conflict("Ya perteneces a una familia", error="ALREADY_IN_FAMILY")
        member = FamilyMember(family_id=family_id, user_id=user_id)
        db.session.add(member)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise Conflict("Ya perteneces a una familia", error="ALREADY_IN_FAMILY")
        user = db.session.get(User, user_id)
        user.family_id = family_id
        self._adopt_unscoped_rows(user_id, family_id)
        db.session.commit()
        return member

    def remove_user_from_family(self, user_id, family_id) -> bool:
        member = FamilyMember.query.filter_by(user_id=user_id, family_id=family_id).first()
        if member is None:
            return False
        db.session.delete(member)
        user = db.session.get(User, user_id)
        if user is not None and user.family_id == family_id:
            user.family_id = None
        db.session.commit()
        return True

    def regenerate_invite_code(self, family_id) -> Family | None:
        family = self.get_family_by_id(family_id)
        if family is None:
            return None
        family.codigo_invitacion = self._unused_code()
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise Conflict("El código generado ya existe. Intente de nuevo.", error="INVITE_CODE_CONFLICT")
        return family

    def delete_family(self, family_id) -> bool:
        """Borra la familia con sus miembros, recetas y planes."""
        family = self.get_family_by_id(family_id)
        if family is None:
            return False
        User.query.filter(User.family_id == family_id).update({User.family_id: None}, synchronize_session=False)
        db.session.delete(family)
        db.session.commit()
        log.info("Familia %s eliminada", family_id)
        return True

    # ------------------------------------------------------------------ #
    # Usuarios
    # ------------------------------------------------------------------ #
    def get_user_by_id(self, user_id) -> User | None:
        return db.session.get(User, user_id)

    def get_user_by_email(self, email) -> User | None:
        return User.query.filter_by(email=(email or "").strip().lower()).first()

    def create_user(self, name, email, password_hash, role) -> User:
        user = User(name=name, email=email.strip().lower(), password=password_hash, role=role)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise Conflict("El email ya está registrado", error="EMAIL_ALREADY_EXISTS")
        return user

    def update_user(self, user: User, data: dict) -> User:
        for attr in ("name", "email", "avatar", "notification_preferences", "password",
                     "login_attempts", "last_login_attempt"):
            if attr in data:
                setattr(user, attr, data[attr])
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise Conflict("El email ya está en uso por otro usuario", error="EMAIL_ALREADY_EXISTS")
        return user

    def delete_user(self, user: User):
        """
        Borra la cuenta con sus notas, comentarios y filas personales (sin
        familia). Las recetas y planes familiares se quedan en la familia sin
        dueño: otros miembros pueden tenerlos planificados o comentados.
        """
        family_id = user.family_id

        # Personales: primero planes (y sus comentarios), luego recetas
        for plan in MealPlan.query.filter(MealPlan.user_id == user.id, MealPlan.family_id.is_(None)):
            db.session.delete(plan)
        db.session.flush()
        for recipe in Recipe.query.filter(Recipe.user_id == user.id, Recipe.family_id.is_(None)):
            db.session.delete(recipe)
        db.session.flush()

        for model in (Recipe, MealPlan):
            model.query.filter(model.user_id == user.id).update(
                {model.user_id: None}, synchronize_session=False
            )
            model.query.filter(model.created_by == user.id).update(
                {model.created_by: None}, synchronize_session=False
            )
        Family.query.filter(Family.created_by == user.id).update(
            {Family.created_by: None}, synchronize_session=False
        )
        db.session.expire(user, ["recipes", "meal_plans"])
        db.session.delete(user)
        db.session.flush()
        # Si era el último miembro, la familia queda vacía y se elimina
        if family_id is not None and not FamilyMember.query.filter_by(family_id=family_id).first():
            family = self.get_family_by_id(family_id)
            if family is not None:
                db.session.delete(family)
        db.session.commit()


storage = DatabaseStorage()
