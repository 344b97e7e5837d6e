# tests/test_auth.py

from conftest import PASSWORD, create_family, create_recipe, login, register


def test_register_creates_user_and_session(client):
    user = register(client)
    assert user["email"] == "ana@familia.es"
    assert user["role"] == "creator"
    assert "password" not in user

    resp = client.get("/api/auth/me")
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == user["id"]


def test_register_defaults_to_creator_and_lowercases_email(client):
    resp = client.post("/api/auth/register", json={
        "name": "Luis", "email": "LUIS@Familia.es", "password": PASSWORD,
    })
    assert resp.status_code == 201
    data = resp.get_json()["user"]
    assert data["role"] == "creator"
    assert data["email"] == "luis@familia.es"


def test_register_duplicate_email(client, other_client):
    register(client)
    resp = other_client.post("/api/auth/register", json={
        "name": "Otra", "email": "ANA@familia.es", "password": PASSWORD,
    })
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "EMAIL_ALREADY_EXISTS"


def test_register_weak_password(client):
    resp = client.post("/api/auth/register", json={
        "name": "Ana", "email": "ana@familia.es", "password": "corta",
    })
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "Datos de registro inválidos"
    assert body["errors"][0]["field"] == "password"


def test_register_rejects_unknown_role(client):
    resp = client.post("/api/auth/register", json={
        "name": "Ana", "email": "ana@familia.es", "password": PASSWORD, "role": "admin",
    })
    assert resp.status_code == 400
    assert any(e["field"] == "role" for e in resp.get_json()["errors"])


def test_login_returns_summary(client, other_client):
    register(client)
    resp = login(other_client)
    assert resp.status_code == 200
    user = resp.get_json()["user"]
    assert set(user) == {"id", "email", "name", "role"}


def test_login_wrong_password(client, other_client):
    register(client)
    resp = login(other_client, password="Incorrecta1")
    assert resp.status_code == 401
    body = resp.get_json()
    assert body["error"] == "INVALID_CREDENTIALS"
    assert body["attemptsLeft"] == 4


def test_login_unknown_email(client):
    resp = login(client, email="nadie@familia.es")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Email o contraseña incorrectos"


def test_status_and_logout(client):
    assert client.get("/api/auth/status").get_json() == {"authenticated": False, "user": None}

    register(client)
    status = client.get("/api/auth/status").get_json()
    assert status["authenticated"] is True

    resp = client.post("/api/auth/logout")
    assert resp.status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_me_requires_session(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "UNAUTHORIZED"


def test_profile_get_has_no_cache_headers(client):
    register(client)
    resp = client.get("/api/auth/profile")
    assert resp.status_code == 200
    assert "no-store" in resp.headers["Cache-Control"]
    user = resp.get_json()["user"]
    assert user["familyId"] is None
    assert user["notificationPreferences"] == {"email": True, "recipes": True, "mealPlans": True}


def test_profile_update(client):
    register(client)
    resp = client.put("/api/auth/profile", json={
        "name": "Ana María",
        "email": "anamaria@familia.es",
        "notificationPreferences": {"email": False, "recipes": True, "mealPlans": False},
    })
    assert resp.status_code == 200
    user = resp.get_json()["user"]
    assert user["name"] == "Ana María"
    assert user["email"] == "anamaria@familia.es"
    assert user["notificationPreferences"]["mealPlans"] is False


def test_profile_update_email_taken(client, other_client):
    register(client)
    register(other_client, email="luis@familia.es", name="Luis")
    resp = other_client.put("/api/auth/profile", json={"name": "Luis", "email": "ana@familia.es"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "EMAIL_ALREADY_EXISTS"


def test_change_password(client, other_client):
    register(client)
    resp = client.post("/api/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": "NuevaClave9",
        "confirmPassword": "NuevaClave9",
    })
    assert resp.status_code == 200
    assert login(other_client).status_code == 401
    assert login(other_client, password="NuevaClave9").status_code == 200


def test_change_password_rules(client):
    register(client)
    wrong = client.post("/api/auth/change-password", json={
        "currentPassword": "Otra12345", "newPassword": "NuevaClave9", "confirmPassword": "NuevaClave9",
    })
    assert wrong.status_code == 401
    assert wrong.get_json()["error"] == "INVALID_CURRENT_PASSWORD"

    same = client.post("/api/auth/change-password", json={
        "currentPassword": PASSWORD, "newPassword": PASSWORD, "confirmPassword": PASSWORD,
    })
    assert same.status_code == 400
    assert same.get_json()["error"] == "SAME_PASSWORD"

    mismatch = client.post("/api/auth/change-password", json={
        "currentPassword": PASSWORD, "newPassword": "NuevaClave9", "confirmPassword": "NuevaClave8",
    })
    assert mismatch.status_code == 400
    assert mismatch.get_json()["errors"][0]["field"] == "confirmPassword"


def test_avatar_accepts_url_and_data_uri(client):
    register(client)
    resp = client.post("/api/auth/avatar", json={"avatar": "https://img.familia.es/ana.png"})
    assert resp.status_code == 200
    assert resp.get_json()["avatar"] == "https://img.familia.es/ana.png"

    resp = client.post("/api/auth/avatar", json={"avatar": "data:image/png;base64,iVBORw0KGgo="})
    assert resp.status_code == 200

    resp = client.post("/api/auth/avatar", json={"avatar": "ftp://raro"})
    assert resp.status_code == 400


def test_delete_account(client, other_client):
    register(client)
    client.post("/api/recipes", json={"nombre": "Sopa", "categoria": "Entrante"})

    bad = client.delete("/api/auth/account", json={"password": "Mala12345"})
    assert bad.status_code == 401
    assert bad.get_json()["error"] == "INVALID_PASSWORD"

    resp = client.delete("/api/auth/account", json={"password": PASSWORD})
    assert resp.status_code == 200
    assert client.get("/api/auth/me").status_code == 401
    assert login(other_client).status_code == 401


def test_delete_account_keeps_plans_of_other_members(client, other_client):
    register(client)
    family = create_family(client)
    register(other_client, email="luis@familia.es", name="Luis")
    other_client.post("/api/families/join", json={"codigoInvitacion": family["codigoInvitacion"]})
    recipe = create_recipe(other_client, nombre="Lentejas")

    plan = client.post("/api/meal-plans", json={"fecha": "2025-06-02", "recetaId": recipe["id"]})
    assert plan.status_code == 201

    resp = other_client.delete("/api/auth/account", json={"password": PASSWORD})
    assert resp.status_code == 200

    plans = client.get("/api/meal-plans?startDate=2025-06-02").get_json()
    assert [p["id"] for p in plans] == [plan.get_json()["id"]]
    assert plans[0]["recipe"]["nombre"] == "Lentejas"
    assert client.get(f"/api/recipes/{recipe['id']}").get_json()["userId"] is None
