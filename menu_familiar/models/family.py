# menu_familiar/models/family.py

from menu_familiar import db
from menu_familiar.utils.fechas import utcnow


class Family(db.Model):
    __tablename__ = "families"

    id                = db.Column(db.Integer, primary_key=True)
    nombre            = db.Column(db.String(100), nullable=False)
    codigo_invitacion = db.Column(db.String(7), unique=True, nullable=False, index=True)
    created_by        = db.Column(
        db.Integer,
        db.ForeignKey("users.id", use_alter=True, name="fk_families_created_by", ondelete="SET NULL"),
        nullable=True,
    )
    created_at        = db.Column(db.DateTime, nullable=False, default=utcnow)

    # Relaciones: borrar la familia arrastra miembros, recetas y planes
    members    = db.relationship("FamilyMember", back_populates="family", cascade="all",
                                 order_by="FamilyMember.joined_at")
    recipes    = db.relationship("Recipe", back_populates="family", cascade="all")
    meal_plans = db.relationship("MealPlan", back_populates="family", cascade="all")
    creator    = db.relationship("User", foreign_keys=[created_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nombre": self.nombre,
            "codigoInvitacion": self.codigo_invitacion,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Family {self.id} {self.nombre} {self.codigo_invitacion}>"


class FamilyMember(db.Model):
    __tablename__ = "family_members"

    id        = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    # unique: un usuario pertenece como mucho a una familia
    user_id   = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    joined_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    family = db.relationship("Family", back_populates="members")
    user   = db.relationship("User", back_populates="membership")

    def to_dict(self) -> dict:
        u = self.user
        return {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "avatar": u.avatar,
            "role": u.role,
            "joinedAt": self.joined_at.isoformat() if self.joined_at else None,
            "isAdmin": self.family.created_by == u.id,
        }

    def __repr__(self) -> str:
        return f"<FamilyMember family={self.family_id} user={self.user_id}>"
