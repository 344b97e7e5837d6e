# menu_familiar/services/sessions.py
"""
Sesiones de servidor guardadas en la tabla ``user_sessions``.

La cookie (``menu.sid``) solo contiene el identificador de sesión firmado con
SECRET_KEY; los datos viven en la base de datos, así sobreviven a reinicios y
se comparten entre instancias. La caducidad es deslizante: cada petición con
sesión renueva ``expire`` (PERMANENT_SESSION_LIFETIME, 7 días).
"""

import logging
import secrets

from flask.sessions import SessionInterface, SessionMixin
from itsdangerous import BadSignature, Signer
from werkzeug.datastructures import CallbackDict

from menu_familiar import db
from menu_familiar.models.session import UserSession
from menu_familiar.utils.fechas import utcnow

log = logging.getLogger(__name__)


class SqlSession(CallbackDict, SessionMixin):
    def __init__(self, initial=None, sid=None, new=False):
        def on_update(self):
            self.modified = True

        CallbackDict.__init__(self, initial, on_update)
        self.sid = sid
        self.new = new
        self.modified = False
        self.previous_sid = None

    def regenerate(self):
        """Nuevo sid conservando los datos (evita fijación de sesión tras el login)."""
        if not self.new:
            self.previous_sid = self.sid
        self.sid = _new_sid()
        self.modified = True


def _new_sid() -> str:
    return secrets.token_urlsafe(32)


class SqlSessionInterface(SessionInterface):
    salt = "menu-familiar-session"

    def _signer(self, app) -> Signer:
        return Signer(app.secret_key, salt=self.salt)

    def open_session(self, app, request):
        cookie = request.cookies.get(self.get_cookie_name(app))
        if not cookie:
            return SqlSession(sid=_new_sid(), new=True)

        try:
            sid = self._signer(app).unsign(cookie).decode()
        except BadSignature:
            log.warning("Cookie de sesión con firma inválida desde %s", request.remote_addr)
            return SqlSession(sid=_new_sid(), new=True)

        row = db.session.get(UserSession, sid)
        if row is None or row.expire <= utcnow():
            return SqlSession(sid=_new_sid(), new=True)
        return SqlSession(dict(row.sess or {}), sid=sid)

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        if session.previous_sid:
            self._delete_row(session.previous_sid)

        if not session:
            # Sesión vaciada (logout, cuenta borrada): fuera fila y cookie
            if session.modified:
                self._delete_row(session.sid)
                db.session.commit()
                response.delete_cookie(name, domain=domain, path=path)
            return

        if not self.should_set_cookie(app, session):
            return

        expire = utcnow() + app.permanent_session_lifetime
        row = db.session.get(UserSession, session.sid)
        if row is None:
            row = UserSession(sid=session.sid)
            db.session.add(row)
        row.sess = dict(session)
        row.expire = expire
        db.session.commit()

        response.set_cookie(
            name,
            self._signer(app).sign(session.sid.encode()).decode(),
            expires=self.get_expiration_time(app, session),
            httponly=self.get_cookie_httponly(app),
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
            domain=domain,
            path=path,
        )

    @staticmethod
    def _delete_row(sid):
        row = db.session.get(UserSession, sid)
        if row is not None:
            db.session.delete(row)


def prune_expired_sessions() -> int:
    """Borra sesiones caducadas; devuelve cuántas."""
    deleted = UserSession.query.filter(UserSession.expire <= utcnow()).delete(synchronize_session=False)
    db.session.commit()
    return deleted
