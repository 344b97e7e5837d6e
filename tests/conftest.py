# tests/conftest.py
import pytest

from menu_familiar import create_app, db

PASSWORD = "Secreta123"


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "clave-de-pruebas-" + "x" * 32,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "RATELIMIT_ENABLED": False,
    })
    # Sin contexto abierto durante las peticiones: cada request tiene el suyo
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def other_client(app):
    return app.test_client()


def register(client, email="ana@familia.es", name="Ana", role="creator", password=PASSWORD):
    resp = client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": password,
        "role": role,
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["user"]


def login(client, email="ana@familia.es", password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def create_family(client, nombre="Los García"):
    resp = client.post("/api/families", json={"nombre": nombre})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["family"]


def create_recipe(client, **overrides):
    payload = {
        "nombre": "Pasta",
        "categoria": "Plato Principal",
        "ingredientes": ["macarrones", "tomate"],
        "calificacionNinos": 4,
    }
    payload.update(overrides)
    resp = client.post("/api/recipes", json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()
