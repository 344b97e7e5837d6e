# menu_familiar/schemas.py
"""
Validación de cuerpos JSON con pydantic.

Los campos se declaran en snake_case (los nombres de las columnas) y se leen
en camelCase (``alias_generator=to_camel``), así ``model_dump`` devuelve
directamente un dict apto para ``Recipe(**data)`` o ``update_from_dict``.
"""

import re
from datetime import date
from typing import Annotated, Literal, Optional

from flask import request
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

from menu_familiar.errors import ValidationFailed

# Mensajes en castellano para los errores genéricos de pydantic
_MENSAJES = {
    "missing": "Campo obligatorio",
    "string_type": "Debe ser un texto",
    "int_type": "Debe ser un número entero",
    "int_parsing": "Debe ser un número entero",
    "bool_type": "Debe ser verdadero o falso",
    "bool_parsing": "Debe ser verdadero o falso",
    "date_type": "Fecha inválida (YYYY-MM-DD)",
    "date_from_datetime_parsing": "Fecha inválida (YYYY-MM-DD)",
    "date_parsing": "Fecha inválida (YYYY-MM-DD)",
    "list_type": "Debe ser una lista",
    "literal_error": "Valor no permitido",
    "string_too_short": "Texto demasiado corto",
    "string_too_long": "Texto demasiado largo",
    "greater_than_equal": "Valor demasiado pequeño",
    "less_than_equal": "Valor demasiado grande",
    "value_error": "Valor inválido",
    "extra_forbidden": "Campo no permitido",
    "model_type": "Se esperaba un objeto JSON",
}


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


def _field_errors(exc: ValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"])
        if err["type"] == "value_error":
            # Mensaje propio del validador: pydantic antepone "Value error, "
            message = str(err.get("ctx", {}).get("error") or err["msg"])
        else:
            message = _MENSAJES.get(err["type"], err["msg"])
        errors.append({"field": field, "message": message})
    return errors


def parse_body(schema, message: str):
    """Valida el JSON de la petición actual contra `schema` o lanza ValidationFailed (400)."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(message, _field_errors(exc)) from exc


# ---------------------------------------------------------------------------
# Cuenta de usuario
# ---------------------------------------------------------------------------
def _check_password_policy(value: str) -> str:
    if len(value) < 8:
        raise ValueError("La contraseña debe tener al menos 8 caracteres")
    if not re.search(r"[a-z]", value):
        raise ValueError("La contraseña debe contener al menos una letra minúscula")
    if not re.search(r"[A-Z]", value):
        raise ValueError("La contraseña debe contener al menos una letra mayúscula")
    if not re.search(r"\d", value):
        raise ValueError("La contraseña debe contener al menos un número")
    return value


def _check_avatar(value: Optional[str]) -> Optional[str]:
    if value in (None, ""):
        return None
    if value.startswith(("http://", "https://", "data:image/")):
        return value
    raise ValueError("El avatar debe ser una URL válida o una imagen en base64")


Password = Annotated[str, AfterValidator(_check_password_policy)]
Avatar = Annotated[Optional[str], AfterValidator(_check_avatar)]


class RegisterIn(_Schema):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: Password
    role: Literal["creator", "commentator"] = "creator"

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v):
        return v.lower()


class LoginIn(_Schema):
    email: EmailStr
    password: str = Field(min_length=1)


class NotificationPreferences(_Schema):
    email: bool = True
    recipes: bool = True
    meal_plans: bool = True


class ProfileUpdate(_Schema):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    avatar: Avatar = None
    notification_preferences: Optional[NotificationPreferences] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v):
        return v.lower()


class ChangePassword(_Schema):
    current_password: str = Field(min_length=1)
    new_password: Password
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def _passwords_match(cls, v, info: ValidationInfo):
        if v != info.data.get("new_password"):
            raise ValueError("Las contraseñas no coinciden")
        return v


class AvatarIn(_Schema):
    avatar: Annotated[str, Field(min_length=1), AfterValidator(_check_avatar)]


class AccountDeletion(_Schema):
    password: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Recetas y planes
# ---------------------------------------------------------------------------
# Columnas NOT NULL: en una actualización parcial un null explícito se ignora
_RECIPE_REQUIRED = ("nombre", "categoria", "calificacion_ninos", "es_favorita")
_MEAL_PLAN_REQUIRED = ("fecha", "tipo_comida")


class RecipeUpdate(_Schema):
    nombre: Optional[str] = Field(default=None, min_length=1, max_length=200)
    descripcion: Optional[str] = None
    imagen: Optional[str] = None
    enlace_externo: Optional[str] = None
    categoria: Optional[str] = Field(default=None, min_length=1, max_length=100)
    calificacion_ninos: Optional[int] = Field(default=None, ge=0, le=5)
    ingredientes: Optional[list[str]] = None
    instrucciones: Optional[str] = None
    tiempo_preparacion: Optional[int] = Field(default=None, ge=0)
    porciones: Optional[int] = Field(default=None, ge=1)
    es_favorita: Optional[bool] = None

    @field_validator("es_favorita", mode="before")
    @classmethod
    def _flag(cls, v):
        # Los clientes antiguos mandan 0/1
        if v in (0, 1):
            return bool(v)
        return v

    def to_columns(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k not in _RECIPE_REQUIRED}


class RecipeIn(RecipeUpdate):
    nombre: str = Field(min_length=1, max_length=200)
    categoria: str = Field(min_length=1, max_length=100)
    calificacion_ninos: int = Field(default=0, ge=0, le=5)
    es_favorita: bool = False

    def to_columns(self) -> dict:
        return self.model_dump()


class MealPlanUpdate(_Schema):
    fecha: Optional[date] = None
    receta_id: Optional[int] = None
    tipo_comida: Optional[Literal["almuerzo", "cena"]] = None
    notas: Optional[str] = None

    def to_columns(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k not in _MEAL_PLAN_REQUIRED}


class MealPlanIn(MealPlanUpdate):
    fecha: date
    tipo_comida: Literal["almuerzo", "cena"] = "almuerzo"

    def to_columns(self) -> dict:
        return self.model_dump()


class RatingIn(_Schema):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=500)


class CommentIn(_Schema):
    comment: str = Field(min_length=1, max_length=500)
    emoji: Optional[str] = Field(default=None, max_length=16)


# ---------------------------------------------------------------------------
# Familias
# ---------------------------------------------------------------------------
class FamilyIn(_Schema):
    nombre: str = Field(min_length=2, max_length=50)


class JoinFamilyIn(_Schema):
    codigo_invitacion: str = Field(min_length=1)
