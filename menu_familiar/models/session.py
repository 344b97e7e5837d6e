# menu_familiar/models/session.py

from menu_familiar import db


class UserSession(db.Model):
    """Fila por sesión de login; la cookie menu.sid solo lleva el sid firmado."""
    __tablename__ = "user_sessions"

    sid    = db.Column(db.String(64), primary_key=True)
    sess   = db.Column(db.JSON, nullable=False, default=dict)
    expire = db.Column(db.DateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<UserSession {self.sid[:8]}… expire={self.expire}>"
