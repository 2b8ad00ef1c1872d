from __future__ import annotations

from ..extensions import db
from hydropak.time_utils import to_utc_z, utcnow


INVOICE_STATUSES = {"PENDING", "PAID", "OVERDUE", "CANCELLED"}

# Statuses that count as booked revenue in reports
REVENUE_STATUSES = ("PAID", "PENDING", "OVERDUE")

# Statuses that still carry an amount owed
OPEN_STATUSES = ("PENDING", "OVERDUE")


class Invoice(db.Model):
    """
    Customer invoice, optionally linked one-to-one with an Order.

    MONEY:
    - subtotal_cents = sum(item.qty * item.price_cents)
    - total_cents = subtotal_cents + tax_cents - discount_cents
    - balance_cents = max(0, total_cents - paid_amount_cents)

    pdf_url caches the last generated PDF location. For local storage it is
    the raw download path; for S3 it is the object URL (a fresh signed URL is
    issued on every request).
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.UniqueConstraint("order_id", name="uq_invoices_order_id"),
        db.Index("ix_invoices_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    invoice_number = db.Column(db.Integer, nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    due_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.BigInteger, nullable=False, default=0)
    tax_cents = db.Column(db.BigInteger, nullable=False, default=0)
    discount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    paid_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    balance_cents = db.Column(db.BigInteger, nullable=False, default=0)

    pdf_url = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("invoices", lazy=True))
    order = db.relationship("Order", backref=db.backref("invoice", uselist=False, lazy=True))
    user = db.relationship("User", backref=db.backref("invoices", lazy=True))
    items = db.relationship("InvoiceItem", backref="invoice", lazy=True, cascade="all, delete-orphan", order_by="InvoiceItem.id")

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number} status={self.status} total={self.total_cents}>"

    def recompute_balance(self) -> None:
        self.balance_cents = max(0, (self.total_cents or 0) - (self.paid_amount_cents or 0))

    def to_dict(self, *, include_related: bool = True) -> dict:
        out = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "status": self.status,
            "due_date": to_utc_z(self.due_date) if self.due_date else None,
            "notes": self.notes,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "balance_cents": self.balance_cents,
            "pdf_url": self.pdf_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_related:
            out["customer"] = self.customer.to_summary() if self.customer else None
            out["items"] = [i.to_dict() for i in self.items]
        return out


class InvoiceItem(db.Model):
    """Free-text invoice line; not tied to a product."""
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    qty = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.BigInteger, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "name": self.name,
            "qty": self.qty,
            "price_cents": self.price_cents,
            "line_total_cents": self.line_total_cents,
        }
