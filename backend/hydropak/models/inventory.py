from __future__ import annotations

from ..extensions import db
from hydropak.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data with a denormalized stock counter.

    STOCK DESIGN DECISION:
    Product.stock is the quantity used for ordering and low-stock alerts.
    Every change to it is mirrored by an InventoryMovement row in the same
    DB transaction, so the movement ledger can always explain the counter.
    Stock may go negative: orders are accepted as backorders.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    urdu_name = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    brand = db.Column(db.String(120), nullable=True)

    size_liters = db.Column(db.Numeric(5, 2), nullable=False, default=1)
    type = db.Column(db.String(64), nullable=False, default="GENERAL")
    category = db.Column(db.String(120), nullable=False, default="General")

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.BigInteger, nullable=False, default=0)
    sale_price_cents = db.Column(db.BigInteger, nullable=False, default=0)

    image_url = db.Column(db.Text, nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_level = db.Column(db.Integer, nullable=False, default=10)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock}>"

    @property
    def is_low_stock(self) -> bool:
        return (self.stock or 0) <= (self.low_stock_level or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "urdu_name": self.urdu_name,
            "description": self.description,
            "brand": self.brand,
            "size_liters": float(self.size_liters) if self.size_liters is not None else None,
            "type": self.type,
            "category": self.category,
            "cost_price_cents": self.cost_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "image_url": self.image_url,
            "stock": self.stock,
            "low_stock_level": self.low_stock_level,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only ledger of stock deltas.

    REASONS:
    - sale: order created (negative change)
    - cancel: order cancelled, items restocked (positive change)
    - restock / other: manual adjustment via POST /api/products/<id>/stock

    IMMUTABLE: Rows are never updated; they go away only with their product.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_inventory_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False, index=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "change": self.change,
            "reason": self.reason,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
