# tests/test_recipes.py

from conftest import create_family, create_recipe, register


def test_unauthenticated_list_is_rejected(client):
    resp = client.get("/api/recipes")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "UNAUTHORIZED"


def test_create_and_fetch_round_trip(client):
    register(client)
    recipe = create_recipe(client, descripcion="Rápida", tiempoPreparacion=20, porciones=4)

    resp = client.get(f"/api/recipes/{recipe['id']}")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["nombre"] == "Pasta"
    assert data["categoria"] == "Plato Principal"
    assert data["ingredientes"] == ["macarrones", "tomate"]
    assert data["calificacionNinos"] == 4
    assert data["tiempoPreparacion"] == 20
    assert data["esFavorita"] is False
    assert data["createdBy"] == data["userId"]


def test_create_requires_nombre_and_categoria(client):
    register(client)
    resp = client.post("/api/recipes", json={"descripcion": "Sin nombre"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "Datos de receta inválidos"
    assert {e["field"] for e in body["errors"]} == {"nombre", "categoria"}


def test_kids_rating_out_of_range(client):
    register(client)
    resp = client.post("/api/recipes", json={"nombre": "X", "categoria": "Postre", "calificacionNinos": 7})
    assert resp.status_code == 400


def test_commentator_cannot_create(client):
    register(client, role="commentator")
    resp = client.post("/api/recipes", json={"nombre": "Pasta", "categoria": "Plato Principal"})
    assert resp.status_code == 403
    body = resp.get_json()
    assert body["error"] == "INSUFFICIENT_PERMISSIONS"
    assert body["required"] == "creator"
    assert body["current"] == "commentator"


def test_update_and_delete(client):
    register(client)
    recipe = create_recipe(client)

    resp = client.put(f"/api/recipes/{recipe['id']}", json={"esFavorita": True, "nombre": "Pasta boloñesa"})
    assert resp.status_code == 200
    assert resp.get_json()["esFavorita"] is True
    assert resp.get_json()["nombre"] == "Pasta boloñesa"
    assert resp.get_json()["categoria"] == "Plato Principal"

    resp = client.delete(f"/api/recipes/{recipe['id']}")
    assert resp.status_code == 200
    assert client.get(f"/api/recipes/{recipe['id']}").status_code == 404
    assert client.delete(f"/api/recipes/{recipe['id']}").status_code == 404


def test_filters(client):
    register(client)
    create_recipe(client, nombre="Pasta", esFavorita=True)
    create_recipe(client, nombre="Flan", categoria="Postre", ingredientes=["huevos", "leche"])
    create_recipe(client, nombre="Sopa", categoria="Entrante", ingredientes=["fideos"])

    favs = client.get("/api/recipes?favorites=true").get_json()
    assert [r["nombre"] for r in favs] == ["Pasta"]

    postres = client.get("/api/recipes?category=Postre").get_json()
    assert [r["nombre"] for r in postres] == ["Flan"]

    # Busca también en ingredientes, sin distinguir mayúsculas
    leche = client.get("/api/recipes?search=LECHE").get_json()
    assert [r["nombre"] for r in leche] == ["Flan"]

    combined = client.get("/api/recipes?category=Postre&search=fideos").get_json()
    assert combined == []


def test_recipe_in_use_cannot_be_deleted(client):
    register(client)
    recipe = create_recipe(client)
    plan = client.post("/api/meal-plans", json={
        "fecha": "2024-05-06", "recetaId": recipe["id"], "tipoComida": "almuerzo",
    })
    assert plan.status_code == 201

    resp = client.delete(f"/api/recipes/{recipe['id']}")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "RECIPE_IN_USE"
    assert body["message"].startswith("No se puede eliminar la receta")

    # Nada se ha borrado
    assert client.get(f"/api/recipes/{recipe['id']}").status_code == 200
    assert client.get(f"/api/meal-plans/{plan.get_json()['id']}").status_code == 200


def test_cross_family_isolation(client, other_client):
    register(client)
    create_family(client, "Los García")
    recipe = create_recipe(client)

    register(other_client, email="pedro@otra.es", name="Pedro")
    create_family(other_client, "Los Pérez")

    assert other_client.get("/api/recipes").get_json() == []
    assert other_client.get(f"/api/recipes/{recipe['id']}").status_code == 404
    assert other_client.put(f"/api/recipes/{recipe['id']}", json={"nombre": "Robada"}).status_code == 404
    assert other_client.delete(f"/api/recipes/{recipe['id']}").status_code == 404
    assert other_client.post(f"/api/recipes/{recipe['id']}/rating", json={"rating": 1}).status_code == 404

    # La receta sigue intacta para su familia
    assert client.get(f"/api/recipes/{recipe['id']}").get_json()["nombre"] == "Pasta"


def test_family_members_share_recipes(client, other_client):
    register(client)
    family = create_family(client)
    recipe = create_recipe(client)

    register(other_client, email="hijo@familia.es", name="Hijo", role="commentator")
    other_client.post("/api/families/join", json={"codigoInvitacion": family["codigoInvitacion"]})

    listed = other_client.get("/api/recipes").get_json()
    assert [r["id"] for r in listed] == [recipe["id"]]


def test_rating_upsert_is_idempotent(client):
    register(client)
    recipe = create_recipe(client)

    first = client.post(f"/api/recipes/{recipe['id']}/rating", json={"rating": 3})
    assert first.status_code == 200
    second = client.post(f"/api/recipes/{recipe['id']}/rating", json={"rating": 4, "comment": "Mejor"})
    assert second.status_code == 200
    assert second.get_json()["rating"]["id"] == first.get_json()["rating"]["id"]

    data = client.get(f"/api/recipes/{recipe['id']}/ratings").get_json()
    assert data["totalRatings"] == 1
    assert data["averageRating"] == 4.0
    assert data["userRating"]["comment"] == "Mejor"


def test_rating_validation(client):
    register(client)
    recipe = create_recipe(client)
    resp = client.post(f"/api/recipes/{recipe['id']}/rating", json={"rating": 6})
    assert resp.status_code == 400
    assert resp.get_json()["errors"][0]["field"] == "rating"


def test_pasta_rated_five_by_kid(client, other_client):
    register(client)
    family = create_family(client)
    pasta = create_recipe(client, nombre="Pasta")

    register(other_client, email="peque@familia.es", name="Peque", role="commentator")
    joined = other_client.post("/api/families/join", json={"codigoInvitacion": family["codigoInvitacion"]})
    assert joined.status_code == 200

    resp = other_client.post(f"/api/recipes/{pasta['id']}/rating", json={"rating": 5})
    assert resp.status_code == 200
    assert resp.get_json()["averageRating"] == 5.0

    ratings = client.get(f"/api/recipes/{pasta['id']}/ratings").get_json()
    assert ratings["averageRating"] == 5.0
    assert ratings["totalRatings"] == 1
    assert ratings["userRating"] is None
    assert ratings["ratings"][0]["user"]["name"] == "Peque"


def test_my_ratings(client):
    register(client)
    pasta = create_recipe(client, nombre="Pasta")
    flan = create_recipe(client, nombre="Flan", categoria="Postre")
    client.post(f"/api/recipes/{pasta['id']}/rating", json={"rating": 5})
    client.post(f"/api/recipes/{flan['id']}/rating", json={"rating": 2})

    mine = client.get("/api/recipes/my-ratings").get_json()
    assert {r["nombre"]: r["userRating"]["rating"] for r in mine} == {"Pasta": 5, "Flan": 2}

    searched = client.get("/api/recipes/my-ratings?search=flan").get_json()
    assert [r["nombre"] for r in searched] == ["Flan"]
