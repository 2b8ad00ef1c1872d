from __future__ import annotations

from ..extensions import db
from hydropak.time_utils import to_utc_z, utcnow


ORDER_STATUSES = {"PENDING", "SCHEDULED", "OUT_FOR_DELIVERY", "DELIVERED", "CANCELLED"}


class Order(db.Model):
    """
    Delivery order.

    LIFECYCLE:
    1. PENDING: Order taken, stock already decremented
    2. SCHEDULED: Delivery slot / route assigned
    3. OUT_FOR_DELIVERY: On the truck
    4. DELIVERED: Terminal
    5. CANCELLED: Terminal, items restocked exactly once

    route_code doubles as the sales channel in analytics (blank = "Unassigned").
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        # Composite index for window queries by status and date
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable sequence number (allocated from DocumentSequence)
    order_number = db.Column(db.Integer, nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    status = db.Column(db.String(24), nullable=False, default="PENDING", index=True)
    scheduled_at = db.Column(db.DateTime, nullable=True)
    route_code = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    items = db.relationship("OrderItem", backref="order", lazy=True, cascade="all, delete-orphan", order_by="OrderItem.id")

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number} status={self.status}>"

    @property
    def items_total_cents(self) -> int:
        return sum(i.quantity * i.unit_price_cents for i in self.items)

    def to_dict(self, *, include_related: bool = True) -> dict:
        out = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "status": self.status,
            "scheduled_at": to_utc_z(self.scheduled_at) if self.scheduled_at else None,
            "route_code": self.route_code,
            "items_total_cents": self.items_total_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_related:
            out["customer"] = self.customer.to_summary() if self.customer else None
            out["items"] = [i.to_dict() for i in self.items]
            inv = self.invoice
            out["invoice"] = (
                {"id": inv.id, "invoice_number": inv.invoice_number, "status": inv.status, "total_cents": inv.total_cents}
                if inv else None
            )
        return out


class OrderItem(db.Model):
    """Line on an order. unit_price_cents is frozen at order time."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.BigInteger, nullable=False)

    product = db.relationship("Product", backref=db.backref("order_items", lazy=True))

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "sku": self.product.sku if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
