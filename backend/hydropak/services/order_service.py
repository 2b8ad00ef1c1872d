# Overview: Service-layer operations for orders; creation with stock decrement, status changes with restock.

"""
Order Service

Creation and cancellation each run in one DB transaction covering the order,
its items, the product stock counters and the movement ledger.

STATUS RULES:
- Any status may move to any other status, except that CANCELLED is
  terminal (leaving it would let a later cancel restock twice).
- Entering CANCELLED restocks every item once and appends 'cancel' movements.
- CANCELLED -> CANCELLED is a no-op for stock.
- New orders cannot start as CANCELLED.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, Order, OrderItem, Product, ORDER_STATUSES
from ..validation import ConflictError, FieldErrors, NotFoundError, ValidationError, coerce_int, MAX_MONEY_CENTS
from hydropak.time_utils import end_of_day, parse_iso_datetime
from .concurrency import lock_for_update
from .document_service import ORDER_SEQUENCE, next_document_number
from .inventory_service import apply_stock_change


logger = logging.getLogger(__name__)

# "confirmed" is the deliveries screen's name for orders ready to go out
STATUS_ALIASES = {"CONFIRMED": ("PENDING", "SCHEDULED")}


def _require_order(order_id: int, *, for_update: bool = False) -> Order:
    q = db.session.query(Order).filter(Order.id == order_id)
    if for_update:
        q = lock_for_update(q)
    o = q.first()
    if o is None:
        raise NotFoundError("Order not found")
    return o


def _parse_status(value, errors: FieldErrors, name: str = "status") -> str | None:
    status = str(value or "").strip().upper()
    if status not in ORDER_STATUSES:
        errors.add(name, f"must be one of: {', '.join(sorted(ORDER_STATUSES))}")
        return None
    return status


def _parse_optional_datetime(value, errors: FieldErrors, name: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not isinstance(value, str):
        errors.add(name, "must be an ISO-8601 datetime")
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        errors.add(name, "must be an ISO-8601 datetime")
        return None


def _parse_route_code(value, errors: FieldErrors):
    if value is None:
        return None
    route_code = str(value).strip()
    if len(route_code) > 64:
        errors.add("route_code", "exceeds max length 64")
    return route_code or None


def list_orders(
    *,
    q: str | None = None,
    status: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    customer_id: int | None = None,
) -> list[dict]:
    """
    Newest first. status accepts any order status (case-insensitive) or
    "confirmed"; unknown statuses are ignored. date_to is inclusive to the
    end of that day.
    """
    errors = FieldErrors()
    start = _parse_optional_datetime(date_from, errors, "from")
    end = _parse_optional_datetime(date_to, errors, "to")
    errors.raise_if_any()

    query = (
        db.session.query(Order)
        .join(Customer, Order.customer_id == Customer.id)
        .options(selectinload(Order.items), selectinload(Order.customer))
    )

    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)

    if status:
        key = status.strip().upper()
        if key in STATUS_ALIASES:
            query = query.filter(Order.status.in_(STATUS_ALIASES[key]))
        elif key in ORDER_STATUSES:
            query = query.filter(Order.status == key)

    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        query = query.filter(Order.created_at <= end_of_day(end))

    if q:
        text = q.strip()
        clauses = [Customer.name.ilike(f"%{text}%")]
        if text.isdigit():
            clauses.append(Order.order_number == int(text))
        query = query.filter(or_(*clauses))

    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return [o.to_dict() for o in orders]


def get_order(order_id: int) -> dict:
    return _require_order(order_id).to_dict()


def _parse_items(raw_items, errors: FieldErrors) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        errors.add("items", "must be a non-empty list")
        return []

    items = []
    for idx, raw in enumerate(raw_items):
        prefix = f"items[{idx}]"
        if not isinstance(raw, dict):
            errors.add(prefix, "must be an object")
            continue
        try:
            product_id = coerce_int(f"{prefix}.product_id", raw.get("product_id"))
            quantity = coerce_int(f"{prefix}.quantity", raw.get("quantity"))
            price = raw.get("unit_price_cents")
            price = coerce_int(f"{prefix}.unit_price_cents", price) if price is not None else None
        except ValidationError as e:
            for name, msgs in e.fields.items():
                for msg in msgs:
                    errors.add(name, msg)
            continue
        if quantity <= 0:
            errors.add(f"{prefix}.quantity", "must be > 0")
            continue
        if price is not None and not 0 <= price <= MAX_MONEY_CENTS:
            errors.add(f"{prefix}.unit_price_cents", f"must be between 0 and {MAX_MONEY_CENTS}")
            continue
        items.append({"product_id": product_id, "quantity": quantity, "unit_price_cents": price})
    return items


def create_order(*, payload: dict, user_id: int | None) -> dict:
    """
    Create order + items, decrement stock and log 'sale' movements atomically.

    Item price falls back to the product's sale price when omitted.

    Raises:
        ValidationError: malformed payload
        NotFoundError: unknown customer or product
    """
    errors = FieldErrors()

    customer_id = None
    if payload.get("customer_id") is None:
        errors.add("customer_id", "is required")
    else:
        try:
            customer_id = coerce_int("customer_id", payload.get("customer_id"))
        except ValidationError as e:
            errors.add("customer_id", e.fields["customer_id"][0])

    items = _parse_items(payload.get("items"), errors)
    scheduled_at = _parse_optional_datetime(payload.get("scheduled_at"), errors, "scheduled_at")
    route_code = _parse_route_code(payload.get("route_code"), errors)

    status = "PENDING"
    if payload.get("status") is not None:
        status = _parse_status(payload.get("status"), errors)
        if status == "CANCELLED":
            errors.add("status", "a new order cannot start as CANCELLED")

    unknown = set(payload) - {"customer_id", "items", "scheduled_at", "route_code", "status"}
    for k in sorted(unknown):
        errors.add(k, "is not allowed")
    errors.raise_if_any()

    if db.session.get(Customer, customer_id) is None:
        raise NotFoundError("Customer not found")

    try:
        order = Order(
            order_number=next_document_number(ORDER_SEQUENCE),
            customer_id=customer_id,
            user_id=user_id,
            status=status,
            scheduled_at=scheduled_at,
            route_code=route_code,
        )
        db.session.add(order)
        db.session.flush()

        for it in items:
            product = lock_for_update(db.session.query(Product).filter(Product.id == it["product_id"])).first()
            if product is None:
                raise NotFoundError(f"Product {it['product_id']} not found")

            unit_price = it["unit_price_cents"]
            if unit_price is None:
                unit_price = product.sale_price_cents or 0

            db.session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    quantity=it["quantity"],
                    unit_price_cents=unit_price,
                )
            )
            apply_stock_change(product, -it["quantity"], "sale", f"order:{order.order_number}")

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Created order #%s for customer %s (%d items)", order.order_number, customer_id, len(items))
    return _require_order(order.id).to_dict()


def update_order(*, order_id: int, payload: dict) -> dict:
    """Only scheduled_at and route_code are editable; null clears them."""
    errors = FieldErrors()
    for k in sorted(set(payload) - {"scheduled_at", "route_code"}):
        errors.add(k, "is not allowed")

    patch = {}
    if "scheduled_at" in payload:
        patch["scheduled_at"] = _parse_optional_datetime(payload["scheduled_at"], errors, "scheduled_at")
    if "route_code" in payload:
        patch["route_code"] = _parse_route_code(payload["route_code"], errors)
    errors.raise_if_any()

    o = _require_order(order_id)
    for k, v in patch.items():
        setattr(o, k, v)
    db.session.commit()
    return o.to_dict()


def set_order_status(*, order_id: int, status) -> dict:
    """
    Change status. Entering CANCELLED restocks each item and appends
    'cancel' movements in the same transaction as the status write.

    Raises:
        ValidationError: unknown status
        NotFoundError: unknown order
        ConflictError: leaving CANCELLED
    """
    errors = FieldErrors()
    next_status = _parse_status(status, errors)
    errors.raise_if_any()

    try:
        o = _require_order(order_id, for_update=True)

        if o.status == "CANCELLED":
            if next_status != "CANCELLED":
                raise ConflictError("Cancelled orders cannot change status")
            return o.to_dict()

        if next_status == "CANCELLED":
            for it in o.items:
                product = lock_for_update(db.session.query(Product).filter(Product.id == it.product_id)).first()
                apply_stock_change(product, it.quantity, "cancel", f"order:{o.order_number}")
            logger.info("Order #%s cancelled; restocked %d items", o.order_number, len(o.items))

        o.status = next_status
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return o.to_dict()
