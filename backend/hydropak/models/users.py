from __future__ import annotations

from ..extensions import db
from hydropak.time_utils import to_utc_z, utcnow


USER_ROLES = {"ADMIN", "STAFF"}


class User(db.Model):
    """
    Back-office operator.

    Passwords are stored as bcrypt hashes only. Orders and invoices record
    the user that created them (nullable for orders, required for invoices).
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="ADMIN")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }
