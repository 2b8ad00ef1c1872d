from __future__ import annotations

from ..extensions import db
from hydropak.time_utils import to_utc_z, utcnow


CUSTOMER_STATUSES = {"ACTIVE", "INACTIVE", "VIP"}


class Customer(db.Model):
    """
    Customer master data.

    Spending and outstanding balance are not stored here; they are derived
    from orders and invoices when customers are listed.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        db.Index("ix_customers_phone", "phone"),
        db.Index("ix_customers_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(255), nullable=True, unique=True)
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    urdu_name = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="ACTIVE")
    rating = db.Column(db.Integer, nullable=False, default=0)
    credit_limit_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "notes": self.notes,
            "urdu_name": self.urdu_name,
            "status": self.status,
            "rating": self.rating,
            "credit_limit_cents": self.credit_limit_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "address": self.address}
