# backend/hydropak/services/products_service.py
"""
Products Service

SKU is globally unique. Stock set through create/update is routed through
the movement ledger so Product.stock always reconciles with its history.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Product, OrderItem
from ..validation import ConflictError, NotFoundError
from .inventory_service import apply_stock_change

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "urdu_name", "description", "brand", "size_liters", "type", "category",
    "cost_price_cents", "sale_price_cents", "image_url", "low_stock_level",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Product not found")
    return p


def _check_sku_unique(sku: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("SKU already exists.")


def list_products(*, q: str | None = None, category: str | None = None, low_only: bool = False) -> list[dict]:
    """
    Newest first. q matches name, SKU, category or brand; category is a
    substring match; low_only keeps products at or below their low-stock level.
    """
    query = db.session.query(Product)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Product.name.ilike(like),
                Product.sku.ilike(like),
                Product.category.ilike(like),
                Product.brand.ilike(like),
            )
        )
    if category:
        query = query.filter(Product.category.ilike(f"%{category.strip()}%"))
    if low_only:
        query = query.filter(Product.stock <= Product.low_stock_level)

    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return [p.to_dict() for p in products]


def get_product(product_id: int) -> dict:
    return _require_product(product_id).to_dict()


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    An opening stock > 0 is recorded as a 'restock' movement.

    Raises:
        ConflictError: If SKU already exists
    """
    _check_sku_unique(patch["sku"])

    p = Product()
    apply_product_patch(p, patch)
    p.stock = 0

    db.session.add(p)
    db.session.flush()  # ensure p.id exists before the movement row

    opening = patch.get("stock") or 0
    if opening:
        apply_stock_change(p, opening, "restock", "opening stock")

    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    """Partial update. A changed stock value is logged as an 'adjustment' movement."""
    p = _require_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _check_sku_unique(patch["sku"], exclude_id=p.id)

    apply_product_patch(p, patch)

    if "stock" in patch and patch["stock"] != p.stock:
        apply_stock_change(p, patch["stock"] - (p.stock or 0), "adjustment", "stock edited")

    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int) -> None:
    """Hard delete. Products referenced by orders cannot be removed."""
    p = _require_product(product_id)

    if db.session.query(OrderItem.id).filter(OrderItem.product_id == p.id).first() is not None:
        raise ConflictError("Product is referenced by orders and cannot be deleted")

    for m in list(p.movements):
        db.session.delete(m)
    db.session.delete(p)
    db.session.commit()
