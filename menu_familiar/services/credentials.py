# menu_familiar/services/credentials.py
"""
Verificación de credenciales con bloqueo temporal por intentos fallidos.

Reglas:
  - 5 intentos fallidos seguidos bloquean la cuenta.
  - El bloqueo dura 15 minutos contados desde el último intento fallido.
  - Durante el bloqueo se rechaza el login aunque la contraseña sea correcta.
  - Un login correcto (o el fin de la ventana) pone el contador a cero.
"""

import logging
import math
from datetime import timedelta

from werkzeug.security import check_password_hash, generate_password_hash

from menu_familiar import db
from menu_familiar.errors import AccountLocked, InvalidCredentials
from menu_familiar.models.user import User
from menu_familiar.utils.fechas import utcnow

log = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOGIN_ATTEMPT_WINDOW = timedelta(minutes=15)


def hash_password(plain: str) -> str:
    return generate_password_hash(plain)


def password_matches(user: User, plain: str) -> bool:
    return bool(plain) and check_password_hash(user.password, plain)


def _reset_attempts(user: User):
    user.login_attempts = 0
    user.last_login_attempt = None


def verify_credentials(email: str, password: str) -> User:
    """Devuelve el usuario si email/contraseña son válidos; si no, lanza InvalidCredentials/AccountLocked."""
    user = User.query.filter_by(email=(email or "").strip().lower()).first()
    if user is None:
        raise InvalidCredentials()

    now = utcnow()
    if (user.login_attempts or 0) >= MAX_LOGIN_ATTEMPTS:
        elapsed = now - user.last_login_attempt if user.last_login_attempt else LOGIN_ATTEMPT_WINDOW
        if elapsed < LOGIN_ATTEMPT_WINDOW:
            minutes_left = math.ceil((LOGIN_ATTEMPT_WINDOW - elapsed).total_seconds() / 60)
            log.warning("Login rechazado: cuenta %s bloqueada (%s min)", user.id, minutes_left)
            raise AccountLocked(
                f"Cuenta bloqueada temporalmente. Intente de nuevo en {minutes_left} minutos.",
                minutesLeft=minutes_left,
            )
        # Ventana cumplida: se empieza de cero
        _reset_attempts(user)
        db.session.commit()

    if not password_matches(user, password):
        user.login_attempts = (user.login_attempts or 0) + 1
        user.last_login_attempt = now
        db.session.commit()

        attempts_left = MAX_LOGIN_ATTEMPTS - user.login_attempts
        log.warning("Login fallido para usuario %s (%s intentos restantes)", user.id, max(attempts_left, 0))
        if attempts_left > 0:
            raise InvalidCredentials(
                f"Email o contraseña incorrectos. {attempts_left} intentos restantes.",
                attemptsLeft=attempts_left,
            )
        raise AccountLocked()

    if user.login_attempts:
        _reset_attempts(user)
        db.session.commit()
    return user
