# tests/test_sessions_cli.py
from datetime import timedelta

from conftest import PASSWORD, login, register
from menu_familiar import db
from menu_familiar.models import Family, MealPlan, Recipe, User, UserSession
from menu_familiar.utils.fechas import utcnow


def _session_count(app):
    with app.app_context():
        return db.session.query(UserSession).count()


def test_anonymous_requests_do_not_store_sessions(app, client):
    client.get("/api/auth/status")
    assert _session_count(app) == 0


def test_login_stores_session_and_logout_removes_it(app, client, other_client):
    register(client)
    assert _session_count(app) == 1

    login(other_client)
    assert _session_count(app) == 2

    client.post("/api/auth/logout")
    assert _session_count(app) == 1
    assert other_client.get("/api/auth/me").status_code == 200


def test_cookie_is_signed_session_id(app, client):
    resp = client.post("/api/auth/register", json={
        "name": "Ana", "email": "ana@familia.es", "password": PASSWORD,
    })
    cookie = resp.headers["Set-Cookie"]
    assert cookie.startswith("menu.sid=")
    assert "HttpOnly" in cookie
    with app.app_context():
        row = db.session.query(UserSession).one()
        assert cookie.split(";")[0].split("=", 1)[1].startswith(row.sid + ".")
        assert row.expire > utcnow() + timedelta(days=6)


def test_tampered_cookie_is_ignored(app, client):
    register(client)
    intruder = app.test_client()
    intruder.set_cookie("menu.sid", "inventado.firma")
    assert intruder.get("/api/auth/me").status_code == 401


def test_login_regenerates_session_id(app, client):
    register(client)
    with app.app_context():
        before = db.session.query(UserSession.sid).scalar()
    # Login encima de una sesión viva: nuevo id y la fila anterior desaparece
    assert login(client).status_code == 200
    with app.app_context():
        sids = [s for (s,) in db.session.query(UserSession.sid).all()]
    assert len(sids) == 1
    assert sids[0] != before


def test_prune_command(app):
    with app.app_context():
        db.session.add(UserSession(sid="caducada", sess={}, expire=utcnow() - timedelta(minutes=1)))
        db.session.add(UserSession(sid="vigente", sess={}, expire=utcnow() + timedelta(days=1)))
        db.session.commit()

    result = app.test_cli_runner().invoke(args=["sessions", "prune"])
    assert result.exit_code == 0
    assert "1" in result.output

    with app.app_context():
        assert [s.sid for s in UserSession.query.all()] == ["vigente"]


def test_seed_demo_is_idempotent(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed", "demo"])
    assert result.exit_code == 0, result.output
    assert "Hecho" in result.output

    with app.app_context():
        assert User.query.count() == 2
        assert Family.query.count() == 1
        assert MealPlan.query.count() == 14
        family = Family.query.one()
        assert {u.family_id for u in User.query.all()} == {family.id}
        assert {r.family_id for r in Recipe.query.all()} == {family.id}

    again = runner.invoke(args=["seed", "demo"])
    assert again.exit_code == 0
    assert "Nada que hacer" in again.output
    with app.app_context():
        assert User.query.count() == 2
