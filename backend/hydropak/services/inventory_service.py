# Overview: Service-layer operations for inventory; stock counter changes and the movement ledger.

"""
HydroPak Inventory Invariants (authoritative)

Inventory model:
- Product.stock is a stored counter; InventoryMovement is its append-only ledger.
- Every stock change goes through apply_stock_change(), which updates the
  counter and appends exactly one movement in the caller's DB transaction.
- Stock may go negative (orders are taken as backorders).

Reasons:
- sale: order created
- cancel: order cancelled (restock)
- restock / adjustment / anything else: manual change from the products screen
"""

from __future__ import annotations

from ..extensions import db
from ..models import InventoryMovement, Product
from ..validation import FieldErrors, NotFoundError, ValidationError, coerce_int
from .concurrency import lock_for_update


MOVEMENT_HISTORY_LIMIT = 100


def apply_stock_change(product: Product, change: int, reason: str, note: str | None = None) -> InventoryMovement:
    """Mutate the counter and append the matching ledger row. Caller commits."""
    product.stock = (product.stock or 0) + change
    movement = InventoryMovement(product_id=product.id, change=change, reason=reason, note=note)
    db.session.add(movement)
    return movement


def adjust_stock(*, product_id: int, payload: dict) -> dict:
    """
    Manual stock change: {change, reason, note?}. change may be negative but not zero.

    Returns the updated product.
    """
    errors = FieldErrors()

    change = None
    if payload.get("change") is None:
        errors.add("change", "is required")
    else:
        try:
            change = coerce_int("change", payload.get("change"))
        except ValidationError:
            errors.add("change", "must be an integer")
        else:
            if change == 0:
                errors.add("change", "must not be zero")

    reason = str(payload.get("reason") or "").strip()
    if not reason:
        errors.add("reason", "is required")
    elif len(reason) > 32:
        errors.add("reason", "exceeds max length 32")

    note = payload.get("note")
    if note is not None:
        note = str(note).strip() or None
    errors.raise_if_any()

    p = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
    if p is None:
        raise NotFoundError("Product not found")

    apply_stock_change(p, change, reason, note)
    db.session.commit()
    return p.to_dict()


def list_movements(*, product_id: int, limit: int = MOVEMENT_HISTORY_LIMIT) -> list[dict]:
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    rows = (
        db.session.query(InventoryMovement)
        .filter(InventoryMovement.product_id == product_id)
        .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .limit(limit)
        .all()
    )
    return [m.to_dict() for m in rows]
