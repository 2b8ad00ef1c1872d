# Overview: Service-layer operations for customers; CRUD plus per-customer order and invoice rollups.

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Customer, Invoice, Order, OPEN_STATUSES
from ..validation import ConflictError, NotFoundError
from hydropak.time_utils import to_utc_z


CUSTOMER_MUTABLE_FIELDS = {
    "name", "phone", "email", "address", "city", "notes",
    "urdu_name", "status", "rating", "credit_limit_cents",
}


def _require_customer(customer_id: int) -> Customer:
    c = db.session.get(Customer, customer_id)
    if c is None:
        raise NotFoundError("Customer not found")
    return c


def _rollups(customer_ids: list[int]) -> dict[int, dict]:
    """
    total_orders / last_order_at from orders, total_spent_cents from all
    invoice totals, outstanding_balance_cents from open invoice balances.
    """
    out = {
        cid: {"total_orders": 0, "last_order_at": None, "total_spent_cents": 0, "outstanding_balance_cents": 0}
        for cid in customer_ids
    }
    if not customer_ids:
        return out

    order_rows = (
        db.session.query(Order.customer_id, func.count(Order.id), func.max(Order.created_at))
        .filter(Order.customer_id.in_(customer_ids))
        .group_by(Order.customer_id)
        .all()
    )
    for cid, count, last_at in order_rows:
        out[cid]["total_orders"] = int(count or 0)
        out[cid]["last_order_at"] = to_utc_z(last_at) if last_at else None

    spent_rows = (
        db.session.query(Invoice.customer_id, func.coalesce(func.sum(Invoice.total_cents), 0))
        .filter(Invoice.customer_id.in_(customer_ids))
        .group_by(Invoice.customer_id)
        .all()
    )
    for cid, total in spent_rows:
        out[cid]["total_spent_cents"] = int(total or 0)

    open_rows = (
        db.session.query(Invoice.customer_id, func.coalesce(func.sum(Invoice.balance_cents), 0))
        .filter(Invoice.customer_id.in_(customer_ids), Invoice.status.in_(OPEN_STATUSES))
        .group_by(Invoice.customer_id)
        .all()
    )
    for cid, balance in open_rows:
        out[cid]["outstanding_balance_cents"] = int(balance or 0)

    return out


def list_customers(q: str | None = None) -> list[dict]:
    query = db.session.query(Customer)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Customer.name.ilike(like),
                Customer.phone.like(like),
                Customer.email.ilike(like),
            )
        )
    customers = query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()

    rollups = _rollups([c.id for c in customers])
    return [{**c.to_dict(), **rollups[c.id]} for c in customers]


def get_customer(customer_id: int) -> dict:
    c = _require_customer(customer_id)
    return {**c.to_dict(), **_rollups([c.id])[c.id]}


def _check_email_unique(email: str | None, *, exclude_id: int | None = None) -> None:
    if not email:
        return
    q = db.session.query(Customer.id).filter(Customer.email == email)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("A customer with this email already exists")


def create_customer(*, patch: dict) -> dict:
    _check_email_unique(patch.get("email"))

    c = Customer()
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(c, k, v)

    db.session.add(c)
    db.session.commit()
    return get_customer(c.id)


def update_customer(*, customer_id: int, patch: dict) -> dict:
    c = _require_customer(customer_id)
    if "email" in patch:
        _check_email_unique(patch["email"], exclude_id=c.id)

    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(c, k, v)

    db.session.commit()
    return get_customer(c.id)


def delete_customer(*, customer_id: int) -> None:
    """Hard delete. Customers with order or invoice history cannot be removed."""
    c = _require_customer(customer_id)

    has_orders = db.session.query(Order.id).filter(Order.customer_id == c.id).first() is not None
    has_invoices = db.session.query(Invoice.id).filter(Invoice.customer_id == c.id).first() is not None
    if has_orders or has_invoices:
        raise ConflictError("Customer has orders or invoices and cannot be deleted")

    db.session.delete(c)
    db.session.commit()
