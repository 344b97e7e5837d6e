# tests/test_meal_plans.py
from datetime import date, timedelta

from conftest import create_family, create_recipe, register
from menu_familiar.utils.fechas import inicio_semana


def _plan(client, fecha, receta_id=None, tipo="almuerzo", notas=None):
    resp = client.post("/api/meal-plans", json={
        "fecha": fecha, "recetaId": receta_id, "tipoComida": tipo, "notas": notas,
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_create_and_get(client):
    register(client)
    recipe = create_recipe(client)
    plan = _plan(client, "2024-05-06", recipe["id"], "cena", notas="Con ensalada")

    data = client.get(f"/api/meal-plans/{plan['id']}").get_json()
    assert data["fecha"] == "2024-05-06"
    assert data["tipoComida"] == "cena"
    assert data["notas"] == "Con ensalada"
    assert data["recipe"]["nombre"] == "Pasta"


def test_invalid_meal_type(client):
    register(client)
    resp = client.post("/api/meal-plans", json={"fecha": "2024-05-06", "tipoComida": "desayuno"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Datos del plan de comida inválidos"


def test_invalid_date(client):
    register(client)
    resp = client.post("/api/meal-plans", json={"fecha": "06/05/2024"})
    assert resp.status_code == 400
    assert resp.get_json()["errors"][0]["field"] == "fecha"


def test_week_listing_is_inclusive(client):
    register(client)
    recipe = create_recipe(client)
    _plan(client, "2024-05-05", recipe["id"])     # domingo anterior
    _plan(client, "2024-05-06", recipe["id"])     # lunes
    _plan(client, "2024-05-12", recipe["id"], "cena")  # domingo
    _plan(client, "2024-05-13", recipe["id"])     # lunes siguiente

    week = client.get("/api/meal-plans?startDate=2024-05-06").get_json()
    assert [p["fecha"] for p in week] == ["2024-05-06", "2024-05-12"]

    week = client.get("/api/meal-plans/week?startDate=2024-05-08").get_json()
    assert week["startDate"] == "2024-05-06"
    assert len(week["mealPlans"]) == 2


def test_default_is_current_week(client):
    register(client)
    monday = inicio_semana()
    _plan(client, monday.isoformat())
    _plan(client, (monday + timedelta(days=7)).isoformat())

    plans = client.get("/api/meal-plans").get_json()
    assert [p["fecha"] for p in plans] == [monday.isoformat()]


def test_filter_by_date_and_type(client):
    register(client)
    _plan(client, "2024-05-06", tipo="almuerzo")
    _plan(client, "2024-05-06", tipo="cena")

    assert len(client.get("/api/meal-plans?date=2024-05-06").get_json()) == 2
    only = client.get("/api/meal-plans?date=2024-05-06&tipoComida=cena").get_json()
    assert [p["tipoComida"] for p in only] == ["cena"]
    assert client.get("/api/meal-plans?date=2024-13-40").status_code == 400


def test_update_and_delete(client):
    register(client)
    plan = _plan(client, "2024-05-06")
    recipe = create_recipe(client)

    resp = client.put(f"/api/meal-plans/{plan['id']}", json={"recetaId": recipe["id"], "notas": "Sobras"})
    assert resp.status_code == 200
    assert resp.get_json()["recetaId"] == recipe["id"]
    assert resp.get_json()["fecha"] == "2024-05-06"

    assert client.delete(f"/api/meal-plans/{plan['id']}").status_code == 200
    assert client.get(f"/api/meal-plans/{plan['id']}").status_code == 404


def test_cannot_plan_with_foreign_recipe(client, other_client):
    register(client)
    create_family(client)
    recipe = create_recipe(client)

    register(other_client, email="pedro@otra.es", name="Pedro")
    create_family(other_client, "Los Pérez")
    resp = other_client.post("/api/meal-plans", json={"fecha": "2024-05-06", "recetaId": recipe["id"]})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "RECIPE_NOT_FOUND"


def test_commentator_cannot_plan(client):
    register(client, role="commentator")
    resp = client.post("/api/meal-plans", json={"fecha": date.today().isoformat()})
    assert resp.status_code == 403


def test_comments_flow(client, other_client):
    register(client)
    family = create_family(client)
    plan = _plan(client, "2024-05-06", create_recipe(client)["id"])

    register(other_client, email="peque@familia.es", name="Peque", role="commentator")
    other_client.post("/api/families/join", json={"codigoInvitacion": family["codigoInvitacion"]})

    resp = other_client.post(f"/api/meal-plans/{plan['id']}/comments", json={"comment": "¡Qué rico!", "emoji": "😋"})
    assert resp.status_code == 201
    comment = resp.get_json()
    assert comment["user"]["name"] == "Peque"

    listed = client.get(f"/api/meal-plans/{plan['id']}/comments").get_json()
    assert [c["comment"] for c in listed] == ["¡Qué rico!"]

    # Solo el autor puede borrarlo
    assert client.delete(f"/api/meal-plans/{plan['id']}/comments/{comment['id']}").status_code == 404
    assert other_client.delete(f"/api/meal-plans/{plan['id']}/comments/{comment['id']}").status_code == 200
    assert client.get(f"/api/meal-plans/{plan['id']}/comments").get_json() == []


def test_empty_comment_rejected(client):
    register(client)
    plan = _plan(client, "2024-05-06")
    resp = client.post(f"/api/meal-plans/{plan['id']}/comments", json={"comment": "   "})
    assert resp.status_code == 400


def test_family_comment_feed(client):
    register(client)
    create_family(client)
    recipe = create_recipe(client)
    plan = _plan(client, "2024-05-06", recipe["id"])
    for i in range(3):
        client.post(f"/api/meal-plans/{plan['id']}/comments", json={"comment": f"Comentario {i}"})

    feed = client.get("/api/comments/family?limit=2").get_json()
    assert len(feed) == 2
    assert feed[0]["comment"] == "Comentario 2"
    assert feed[0]["recipe"]["nombre"] == "Pasta"
    assert feed[0]["mealPlan"]["fecha"] == "2024-05-06"
