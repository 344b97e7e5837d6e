# menu_familiar/cli/seed.py
from datetime import timedelta

import click
from flask.cli import AppGroup

from menu_familiar.models.user import Role
from menu_familiar.services.credentials import hash_password
from menu_familiar.services.storage import storage
from menu_familiar.utils.fechas import inicio_semana

seed_group = AppGroup("seed", help="Comandos de seed (datos iniciales)")

DEMO_CREATOR = {"name": "Mamá Demo", "email": "demo@menufamiliar.app", "role": Role.CREATOR.value}
DEMO_COMMENTATOR = {"name": "Peque Demo", "email": "peque@menufamiliar.app", "role": Role.COMMENTATOR.value}
DEMO_FAMILY = "Familia Demo"

# ---- Recetas de ejemplo ----
DEMO_RECIPES = [
    {"nombre": "Pasta con tomate", "categoria": "Plato Principal", "calificacion_ninos": 5,
     "descripcion": "Macarrones con salsa de tomate casera",
     "ingredientes": ["macarrones", "tomate triturado", "cebolla", "aceite de oliva", "queso rallado"],
     "instrucciones": "Cocer la pasta, sofreír la cebolla, añadir el tomate y mezclar.",
     "tiempo_preparacion": 25, "porciones": 4, "es_favorita": True},
    {"nombre": "Tortilla de patatas", "categoria": "Plato Principal", "calificacion_ninos": 4,
     "ingredientes": ["patatas", "huevos", "cebolla", "aceite de oliva", "sal"],
     "instrucciones": "Freír patata y cebolla, cuajar con el huevo batido.",
     "tiempo_preparacion": 40, "porciones": 4, "es_favorita": True},
    {"nombre": "Lentejas estofadas", "categoria": "Plato Principal", "calificacion_ninos": 3,
     "ingredientes": ["lentejas", "zanahoria", "pimiento", "chorizo", "laurel"],
     "tiempo_preparacion": 60, "porciones": 6},
    {"nombre": "Crema de calabacín", "categoria": "Entrante", "calificacion_ninos": 2,
     "ingredientes": ["calabacín", "patata", "quesitos", "caldo de verduras"],
     "tiempo_preparacion": 30, "porciones": 4},
    {"nombre": "Arroz con leche", "categoria": "Postre", "calificacion_ninos": 5,
     "ingredientes": ["arroz", "leche entera", "azúcar", "canela", "piel de limón"],
     "tiempo_preparacion": 50, "porciones": 6},
]


def _get_or_create_user(data, password):
    user = storage.get_user_by_email(data["email"])
    if user:
        click.echo(f"'{data['email']}' ya existe, no se creó.")
        return user, False
    user = storage.create_user(data["name"], data["email"], hash_password(password), data["role"])
    return user, True


@seed_group.command("demo")
@click.option("--password", default="MenuDemo2024", show_default=True,
              help="Contraseña para los usuarios demo.")
def seed_demo(password):
    """
    Crea una familia demo lista para probar:
    - Un creador y un comentarista en la misma familia.
    - Unas cuantas recetas y los almuerzos/cenas de la semana actual.
    Idempotente por email: si el creador ya existe, no duplica datos.
    """
    creator, created = _get_or_create_user(DEMO_CREATOR, password)
    if not created:
        click.secho("Datos demo ya presentes. Nada que hacer.", fg="yellow")
        return

    family = storage.create_family(DEMO_FAMILY, creator)
    kid, kid_created = _get_or_create_user(DEMO_COMMENTATOR, password)
    if kid_created:
        storage.add_user_to_family(kid.id, family.id)

    scope = {"user_id": creator.id, "created_by": creator.id, "family_id": family.id}
    recipes = [storage.create_recipe({**r, **scope}) for r in DEMO_RECIPES]
    mains = [r for r in recipes if r.categoria == "Plato Principal"]

    monday = inicio_semana()
    plans = 0
    for offset in range(7):
        day = monday + timedelta(days=offset)
        for i, tipo in enumerate(("almuerzo", "cena")):
            recipe = mains[(offset * 2 + i) % len(mains)]
            storage.create_meal_plan({"fecha": day, "receta_id": recipe.id, "tipo_comida": tipo, **scope})
            plans += 1

    if kid_created:
        storage.set_recipe_rating(recipes[0].id, kid.id, family.id, 5, "¡Mi favorita!")

    click.secho(
        f"Hecho. Familia '{family.nombre}' (código {family.codigo_invitacion}), "
        f"{len(recipes)} recetas, {plans} comidas planificadas.",
        fg="green",
    )
    click.secho(f"Login: {DEMO_CREATOR['email']} / {password}", fg="cyan")
