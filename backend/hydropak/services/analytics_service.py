# Overview: Range-based sales analytics; KPIs, growth, daily series and top-N breakdowns.

"""
Analytics Aggregator

Read-only. Rows for the window are loaded once and reduced in memory:
- orders created in the window
- revenue invoices (PAID / PENDING / OVERDUE) created in the window
- order items whose order was created in the window

The per-day series is built from the same rows as the KPIs, so
sum(series revenue) == revenue and sum(series orders) == orders.
"""

from __future__ import annotations

from collections import Counter, defaultdict

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Invoice, Order, OrderItem, Product, REVENUE_STATUSES
from .range_service import DateRange


TOP_LIMIT = 10
UNASSIGNED_CHANNEL = "Unassigned"


def growth_pct(current, previous) -> float:
    """
    Period-over-period change in percent.

    previous == 0: 100 when current > 0, else 0.
    """
    if not previous:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def average_cents(total_cents: int, count: int) -> float:
    """Revenue per order, unrounded; 0 when there are no orders."""
    return total_cents / count if count else 0


def _orders_in(window: DateRange) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.created_at >= window.start, Order.created_at <= window.end)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def _revenue_invoices_in(window: DateRange) -> list[Invoice]:
    return (
        db.session.query(Invoice)
        .filter(
            Invoice.created_at >= window.start,
            Invoice.created_at <= window.end,
            Invoice.status.in_(REVENUE_STATUSES),
        )
        .all()
    )


def _items_in(window: DateRange) -> list[tuple[OrderItem, Order]]:
    return (
        db.session.query(OrderItem, Order)
        .join(Order, OrderItem.order_id == Order.id)
        .filter(Order.created_at >= window.start, Order.created_at <= window.end)
        .all()
    )


def _previous_totals(window: DateRange) -> tuple[int, int]:
    prev = window.previous()
    revenue = (
        db.session.query(func.coalesce(func.sum(Invoice.total_cents), 0))
        .filter(
            Invoice.created_at >= prev.start,
            Invoice.created_at <= prev.end,
            Invoice.status.in_(REVENUE_STATUSES),
        )
        .scalar()
    )
    orders = (
        db.session.query(func.count(Order.id))
        .filter(Order.created_at >= prev.start, Order.created_at <= prev.end)
        .scalar()
    )
    return int(revenue or 0), int(orders or 0)


def _timeseries(window: DateRange, orders, invoices, items) -> list[dict]:
    revenue_by_day: dict = defaultdict(int)
    orders_by_day: dict = defaultdict(int)
    customers_by_day: dict = defaultdict(set)
    units_by_day: dict = defaultdict(int)

    for inv in invoices:
        revenue_by_day[inv.created_at.date()] += inv.total_cents or 0
    for o in orders:
        day = o.created_at.date()
        orders_by_day[day] += 1
        customers_by_day[day].add(o.customer_id)
    for item, order in items:
        units_by_day[order.created_at.date()] += item.quantity or 0

    series = []
    for day in window.days():
        revenue = revenue_by_day.get(day, 0)
        count = orders_by_day.get(day, 0)
        series.append({
            "date": day.isoformat(),
            "label": f"{day:%b} {day.day}",
            "revenue_cents": revenue,
            "orders": count,
            "customers": len(customers_by_day.get(day, ())),
            "aov_cents": average_cents(revenue, count),
            "items": units_by_day.get(day, 0),
        })
    return series


def _top_products(items) -> list[dict]:
    product_ids = {item.product_id for item, _ in items}
    products = {}
    if product_ids:
        products = {p.id: p for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()}

    agg: dict[int, dict] = {}
    for item, _ in items:
        product = products.get(item.product_id)
        if product is None:
            continue
        entry = agg.setdefault(product.id, {
            "product_id": product.id,
            "name": product.name,
            "sku": product.sku,
            "quantity": 0,
            "revenue_cents": 0,
        })
        entry["quantity"] += item.quantity or 0
        entry["revenue_cents"] += (item.quantity or 0) * (item.unit_price_cents or 0)

    ranked = sorted(agg.values(), key=lambda r: (-r["revenue_cents"], r["product_id"]))
    return ranked[:TOP_LIMIT]


def _top_customers(orders, invoices) -> list[dict]:
    revenue_by_customer: dict[int, int] = defaultdict(int)
    for inv in invoices:
        revenue_by_customer[inv.customer_id] += inv.total_cents or 0
    orders_by_customer = Counter(o.customer_id for o in orders)

    names = {}
    if revenue_by_customer:
        names = dict(
            db.session.query(Customer.id, Customer.name)
            .filter(Customer.id.in_(list(revenue_by_customer)))
            .all()
        )

    rows = [
        {
            "customer_id": cid,
            "name": names.get(cid, "Customer"),
            "orders": orders_by_customer.get(cid, 0),
            "revenue_cents": revenue,
        }
        for cid, revenue in revenue_by_customer.items()
    ]
    rows.sort(key=lambda r: (-r["revenue_cents"], r["customer_id"]))
    return rows[:TOP_LIMIT]


def _channels(orders, invoices) -> list[dict]:
    revenue_by_order: dict[int, int] = defaultdict(int)
    for inv in invoices:
        if inv.order_id is not None:
            revenue_by_order[inv.order_id] += inv.total_cents or 0

    agg: dict[str, dict] = {}
    for o in orders:
        channel = (o.route_code or "").strip() or UNASSIGNED_CHANNEL
        entry = agg.setdefault(channel, {"channel": channel, "orders": 0, "revenue_cents": 0})
        entry["orders"] += 1
        entry["revenue_cents"] += revenue_by_order.get(o.id, 0)

    return sorted(agg.values(), key=lambda r: (-r["orders"], r["channel"]))


def _orders_by_status(orders) -> list[dict]:
    counts = Counter(o.status for o in orders)
    return [
        {"status": status, "count": count}
        for status, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def build_analytics(window: DateRange) -> dict:
    orders = _orders_in(window)
    invoices = _revenue_invoices_in(window)
    items = _items_in(window)

    revenue = sum(inv.total_cents or 0 for inv in invoices)
    order_count = len(orders)
    prev_revenue, prev_orders = _previous_totals(window)

    return {
        "range": window.to_dict(),
        "previous_range": window.previous().to_dict(),
        "kpis": {
            "revenue_cents": revenue,
            "orders": order_count,
            "customers": len({o.customer_id for o in orders}),
            "aov_cents": average_cents(revenue, order_count),
            "previous_revenue_cents": prev_revenue,
            "previous_orders": prev_orders,
            "growth_revenue_pct": growth_pct(revenue, prev_revenue),
            "growth_orders_pct": growth_pct(order_count, prev_orders),
        },
        "timeseries": _timeseries(window, orders, invoices, items),
        "top_products": _top_products(items),
        "top_customers": _top_customers(orders, invoices),
        "channels": _channels(orders, invoices),
        "orders_by_status": _orders_by_status(orders),
    }
