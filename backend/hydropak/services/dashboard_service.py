# Overview: Home dashboard metrics; all-time totals, 12-month and 7-day series, growth and recent activity.

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Invoice, Order, OrderItem, Product, OPEN_STATUSES, REVENUE_STATUSES
from hydropak.time_utils import start_of_day, to_utc_z, utcnow
from .analytics_service import growth_pct


STATUS_ORDER = ("PENDING", "SCHEDULED", "OUT_FOR_DELIVERY", "DELIVERED", "CANCELLED")

STATUS_COLORS = {
    "PENDING": "#f59e0b",
    "SCHEDULED": "#3b82f6",
    "OUT_FOR_DELIVERY": "#06b6d4",
    "DELIVERED": "#10b981",
    "CANCELLED": "#ef4444",
}

# Orders that still need to reach the customer
UNDELIVERED_STATUSES = ("PENDING", "SCHEDULED", "OUT_FOR_DELIVERY")

GROWTH_CLAMP = 999.0
TOP_PRODUCTS_LIMIT = 5
ACTIVITY_LIMIT = 10


def clamp_pct(value: float) -> float:
    return max(-GROWTH_CLAMP, min(GROWTH_CLAMP, value))


def _month_start(dt: datetime, months_back: int = 0) -> datetime:
    index = dt.year * 12 + (dt.month - 1) - months_back
    return datetime(index // 12, index % 12 + 1, 1)


def _revenue_between(start: datetime, end: datetime) -> int:
    """Revenue-status invoice totals with start <= created_at < end."""
    total = (
        db.session.query(func.coalesce(func.sum(Invoice.total_cents), 0))
        .filter(
            Invoice.status.in_(REVENUE_STATUSES),
            Invoice.created_at >= start,
            Invoice.created_at < end,
        )
        .scalar()
    )
    return int(total or 0)


def _count_between(model, start: datetime, end: datetime) -> int:
    return int(
        db.session.query(func.count(model.id))
        .filter(model.created_at >= start, model.created_at < end)
        .scalar()
        or 0
    )


def _totals() -> dict:
    revenue = (
        db.session.query(func.coalesce(func.sum(Invoice.total_cents), 0))
        .filter(Invoice.status.in_(REVENUE_STATUSES))
        .scalar()
    )
    outstanding = (
        db.session.query(func.coalesce(func.sum(Invoice.balance_cents), 0))
        .filter(Invoice.status.in_(OPEN_STATUSES))
        .scalar()
    )
    low_stock = (
        db.session.query(func.count(Product.id))
        .filter(Product.low_stock_level > 0, Product.stock <= Product.low_stock_level)
        .scalar()
    )
    return {
        "revenue_cents": int(revenue or 0),
        "outstanding_cents": int(outstanding or 0),
        "customers": db.session.query(func.count(Customer.id)).scalar() or 0,
        "products": db.session.query(func.count(Product.id)).scalar() or 0,
        "orders": db.session.query(func.count(Order.id)).scalar() or 0,
        "deliveries": db.session.query(func.count(Order.id)).filter(Order.status == "DELIVERED").scalar() or 0,
        "pending_deliveries": (
            db.session.query(func.count(Order.id)).filter(Order.status.in_(UNDELIVERED_STATUSES)).scalar() or 0
        ),
        "low_stock_items": int(low_stock or 0),
    }


def _monthly(now: datetime) -> list[dict]:
    out = []
    for back in range(11, -1, -1):
        start = _month_start(now, back)
        end = _month_start(now, back - 1)
        out.append({
            "label": f"{start:%b %y}",
            "month": f"{start:%Y-%m}",
            "total_cents": _revenue_between(start, end),
            "orders": _count_between(Order, start, end),
        })
    return out


def _orders_by_status() -> list[dict]:
    counts = dict(
        db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    )
    return [
        {"status": s, "count": int(counts[s]), "color": STATUS_COLORS[s]}
        for s in STATUS_ORDER
        if counts.get(s)
    ]


def _daily_deliveries(today: datetime) -> list[dict]:
    first = today - timedelta(days=6)
    rows = (
        db.session.query(Order.status, Order.created_at)
        .filter(Order.created_at >= first)
        .all()
    )
    buckets = {}
    for i in range(7):
        day = (first + timedelta(days=i)).date()
        buckets[day] = {"date": day.isoformat(), "day": f"{day:%a}", "delivered": 0, "pending": 0}
    for status, created_at in rows:
        bucket = buckets.get(created_at.date())
        if bucket is None:
            continue
        if status == "DELIVERED":
            bucket["delivered"] += 1
        else:
            bucket["pending"] += 1
    return list(buckets.values())


def _growth(now: datetime, today: datetime) -> dict:
    week_start = today - timedelta(days=6)
    prev_week_start = today - timedelta(days=13)
    tomorrow = today + timedelta(days=1)
    rev_this_week = _revenue_between(week_start, tomorrow)
    rev_prev_week = _revenue_between(prev_week_start, week_start)

    month_start = _month_start(now)
    prev_month_start = _month_start(now, 1)
    next_month_start = _month_start(now, -1)

    return {
        "weekly_growth": clamp_pct(growth_pct(rev_this_week, rev_prev_week)),
        "customer_growth": clamp_pct(growth_pct(
            _count_between(Customer, month_start, next_month_start),
            _count_between(Customer, prev_month_start, month_start),
        )),
        "order_growth": clamp_pct(growth_pct(
            _count_between(Order, month_start, next_month_start),
            _count_between(Order, prev_month_start, month_start),
        )),
    }


def _top_products(today: datetime) -> list[dict]:
    since = today - timedelta(days=29)
    rows = (
        db.session.query(OrderItem.product_id, Product.name, OrderItem.quantity, OrderItem.unit_price_cents)
        .join(Order, OrderItem.order_id == Order.id)
        .join(Product, OrderItem.product_id == Product.id)
        .filter(Order.created_at >= since)
        .all()
    )
    agg: dict = defaultdict(lambda: {"quantity": 0, "revenue_cents": 0})
    names = {}
    for product_id, name, qty, price in rows:
        names[product_id] = name
        agg[product_id]["quantity"] += qty or 0
        agg[product_id]["revenue_cents"] += (qty or 0) * (price or 0)

    ranked = sorted(agg.items(), key=lambda kv: (-kv[1]["revenue_cents"], kv[0]))
    return [
        {"product_id": pid, "name": names[pid], **vals}
        for pid, vals in ranked[:TOP_PRODUCTS_LIMIT]
    ]


def _activity_status(order_status: str) -> str:
    if order_status == "CANCELLED":
        return "error"
    if order_status == "DELIVERED":
        return "success"
    return "warning"


def _recent_activity() -> list[dict]:
    orders = db.session.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(ACTIVITY_LIMIT).all()
    invoices = db.session.query(Invoice).order_by(Invoice.created_at.desc(), Invoice.id.desc()).limit(ACTIVITY_LIMIT).all()

    feed = [
        {
            "id": f"order-{o.id}",
            "type": "order",
            "description": f"Order #{o.order_number} for {o.customer.name if o.customer else 'Customer'}",
            "at": o.created_at,
            "status": _activity_status(o.status),
        }
        for o in orders
    ] + [
        {
            "id": f"invoice-{i.id}",
            "type": "invoice",
            "description": f"Invoice #{i.invoice_number} - {i.customer.name if i.customer else 'Customer'}",
            "at": i.created_at,
            "status": "success",
        }
        for i in invoices
    ]
    feed.sort(key=lambda e: e["at"], reverse=True)
    return [{**e, "at": to_utc_z(e["at"])} for e in feed[:ACTIVITY_LIMIT]]


def dashboard_metrics(now: datetime | None = None) -> dict:
    now = now or utcnow()
    today = start_of_day(now)

    monthly = _monthly(now)
    return {
        **_totals(),
        "monthly_revenue_cents": sum(m["total_cents"] for m in monthly),
        **_growth(now, today),
        "monthly": monthly,
        "daily_deliveries": _daily_deliveries(today),
        "top_products": _top_products(today),
        "orders_by_status": _orders_by_status(),
        "recent_activity": _recent_activity(),
    }
