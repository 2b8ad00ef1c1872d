"""
Analytics aggregator tests.

Rows are inserted directly with fixed created_at values so the window
arithmetic is deterministic.
"""

from datetime import datetime, timedelta

import pytest

from hydropak.extensions import db
from hydropak.models import Customer, Invoice, Order, OrderItem, Product
from hydropak.services.analytics_service import build_analytics, growth_pct, average_cents
from hydropak.services.range_service import resolve_range


NOW = datetime(2024, 3, 15, 12, 0, 0)
YESTERDAY = NOW - timedelta(days=1)


@pytest.fixture
def add_order(db_session):
    counter = {"n": 0}

    def _add(customer, created_at, *, lines=(), status="PENDING", route_code=None):
        counter["n"] += 1
        order = Order(
            order_number=counter["n"],
            customer_id=customer.id,
            status=status,
            route_code=route_code,
            created_at=created_at,
        )
        db_session.add(order)
        db_session.flush()
        for product, qty, price in lines:
            db_session.add(OrderItem(order_id=order.id, product_id=product.id, quantity=qty, unit_price_cents=price))
        db_session.commit()
        return order

    return _add


@pytest.fixture
def add_invoice(db_session, admin_user):
    counter = {"n": 0}

    def _add(customer, total_cents, created_at, *, status="PAID", order=None):
        counter["n"] += 1
        inv = Invoice(
            invoice_number=counter["n"],
            customer_id=customer.id,
            order_id=order.id if order else None,
            user_id=admin_user.id,
            status=status,
            subtotal_cents=total_cents,
            total_cents=total_cents,
            created_at=created_at,
        )
        inv.recompute_balance()
        db_session.add(inv)
        db_session.commit()
        return inv

    return _add


# =============================================================================
# GROWTH / AVERAGES
# =============================================================================


class TestGrowthPct:

    def test_zero_previous_with_positive_current_is_100(self):
        assert growth_pct(1000, 0) == 100.0

    def test_both_zero_is_0(self):
        assert growth_pct(0, 0) == 0.0

    def test_relative_change(self):
        assert growth_pct(150, 100) == 50.0
        assert growth_pct(50, 100) == -50.0

    def test_average_cents_guards_zero_count(self):
        assert average_cents(1000, 0) == 0
        assert average_cents(1000, 3) == 1000 / 3


# =============================================================================
# AGGREGATION
# =============================================================================


class TestBuildAnalytics:

    def test_two_orders_yesterday_against_empty_prior_week(self, customer, add_order, add_invoice):
        o1 = add_order(customer, YESTERDAY)
        o2 = add_order(customer, YESTERDAY + timedelta(hours=2))
        add_invoice(customer, 600, YESTERDAY, order=o1)
        add_invoice(customer, 400, YESTERDAY + timedelta(hours=2), order=o2)

        report = build_analytics(resolve_range(preset="last_7", now=NOW))

        kpis = report["kpis"]
        assert kpis["revenue_cents"] == 1000
        assert kpis["orders"] == 2
        assert kpis["customers"] == 1
        assert kpis["aov_cents"] == 500
        assert kpis["previous_revenue_cents"] == 0
        assert kpis["previous_orders"] == 0
        assert kpis["growth_revenue_pct"] == 100.0
        assert kpis["growth_orders_pct"] == 100.0

    def test_series_sums_match_kpis(self, customer, other_customer, product, add_order, add_invoice):
        for day in range(7):
            at = NOW - timedelta(days=day)
            order = add_order(customer if day % 2 else other_customer, at, lines=[(product, day + 1, 250)])
            add_invoice(order.customer, 1000 * (day + 1), at, order=order)

        report = build_analytics(resolve_range(preset="last_7", now=NOW))
        series = report["timeseries"]

        assert len(series) == 7
        assert sum(d["revenue_cents"] for d in series) == report["kpis"]["revenue_cents"]
        assert sum(d["orders"] for d in series) == report["kpis"]["orders"]
        assert sum(d["items"] for d in series) == sum(range(1, 8))

    def test_series_is_zero_filled_and_labelled(self, customer, add_order):
        add_order(customer, YESTERDAY)

        series = build_analytics(resolve_range(preset="last_7", now=NOW))["timeseries"]

        assert [d["date"] for d in series][0] == "2024-03-09"
        assert series[-1]["label"] == "Mar 15"
        assert series[-1] == {
            "date": "2024-03-15",
            "label": "Mar 15",
            "revenue_cents": 0,
            "orders": 0,
            "customers": 0,
            "aov_cents": 0,
            "items": 0,
        }
        assert series[-2]["orders"] == 1

    def test_only_revenue_statuses_inside_window_count(self, customer, add_invoice):
        add_invoice(customer, 1000, YESTERDAY, status="PAID")
        add_invoice(customer, 200, YESTERDAY, status="OVERDUE")
        add_invoice(customer, 300, YESTERDAY, status="PENDING")
        add_invoice(customer, 5000, YESTERDAY, status="CANCELLED")
        add_invoice(customer, 7000, NOW - timedelta(days=30))

        report = build_analytics(resolve_range(preset="last_7", now=NOW))
        assert report["kpis"]["revenue_cents"] == 1500

    def test_previous_window_drives_growth(self, customer, add_order, add_invoice):
        add_invoice(customer, 2000, NOW - timedelta(days=10))
        add_order(customer, NOW - timedelta(days=10))
        add_invoice(customer, 1000, YESTERDAY)

        kpis = build_analytics(resolve_range(preset="last_7", now=NOW))["kpis"]
        assert kpis["previous_revenue_cents"] == 2000
        assert kpis["growth_revenue_pct"] == -50.0
        assert kpis["orders"] == 0
        assert kpis["growth_orders_pct"] == -100.0

    def test_top_products_ranked_by_revenue(self, customer, product, small_product, add_order):
        add_order(customer, YESTERDAY, lines=[(product, 2, 25000), (small_product, 10, 6000)])
        add_order(customer, NOW, lines=[(small_product, 5, 6000)])

        top = build_analytics(resolve_range(preset="last_7", now=NOW))["top_products"]

        assert [t["sku"] for t in top] == ["HP-1.5L", "HP-19L"]
        assert top[0] == {
            "product_id": small_product.id,
            "name": "1.5L Bottle",
            "sku": "HP-1.5L",
            "quantity": 15,
            "revenue_cents": 90000,
        }

    def test_top_customers_ranked_by_invoiced_revenue(self, customer, other_customer, add_order, add_invoice):
        add_order(customer, YESTERDAY)
        add_order(customer, YESTERDAY)
        add_invoice(customer, 500, YESTERDAY)
        add_invoice(other_customer, 900, YESTERDAY)

        top = build_analytics(resolve_range(preset="last_7", now=NOW))["top_customers"]

        assert [t["name"] for t in top] == ["Bilal Stores", "Ahmed Traders"]
        assert top[1]["orders"] == 2
        assert top[0]["orders"] == 0

    def test_aov_is_the_unrounded_ratio(self, customer, add_order, add_invoice):
        for _ in range(3):
            add_order(customer, YESTERDAY)
        add_invoice(customer, 1000, YESTERDAY)

        report = build_analytics(resolve_range(preset="last_7", now=NOW))

        kpis = report["kpis"]
        assert kpis["aov_cents"] == kpis["revenue_cents"] / kpis["orders"]
        day = next(d for d in report["timeseries"] if d["date"] == YESTERDAY.date().isoformat())
        assert day["aov_cents"] == 1000 / 3

    def test_top_lists_capped_at_ten(self, db_session, add_order, add_invoice):
        for i in range(12):
            c = Customer(name=f"Shop {i:02d}", phone=f"0300000{i:04d}")
            p = Product(sku=f"HP-T{i:02d}", name=f"Bottle {i:02d}", sale_price_cents=100)
            db_session.add_all([c, p])
            db_session.commit()
            order = add_order(c, YESTERDAY, lines=[(p, 1, 100 * (i + 1))])
            add_invoice(c, 100 * (i + 1), YESTERDAY, order=order)

        report = build_analytics(resolve_range(preset="last_7", now=NOW))

        products = report["top_products"]
        customers = report["top_customers"]
        assert len(products) == 10
        assert len(customers) == 10
        assert [r["revenue_cents"] for r in products] == sorted((r["revenue_cents"] for r in products), reverse=True)
        assert [r["revenue_cents"] for r in customers] == sorted((r["revenue_cents"] for r in customers), reverse=True)
        assert products[0]["sku"] == "HP-T11"
        assert customers[-1]["name"] == "Shop 02"

    def test_channels_group_by_route_code(self, customer, add_order, add_invoice):
        north = add_order(customer, YESTERDAY, route_code="NORTH")
        add_order(customer, YESTERDAY, route_code=" NORTH ")
        add_order(customer, YESTERDAY, route_code="")
        add_invoice(customer, 1200, YESTERDAY, order=north)

        channels = build_analytics(resolve_range(preset="last_7", now=NOW))["channels"]

        assert channels == [
            {"channel": "NORTH", "orders": 2, "revenue_cents": 1200},
            {"channel": "Unassigned", "orders": 1, "revenue_cents": 0},
        ]

    def test_orders_by_status_sorted_by_count(self, customer, add_order):
        add_order(customer, YESTERDAY, status="DELIVERED")
        add_order(customer, YESTERDAY, status="DELIVERED")
        add_order(customer, YESTERDAY, status="PENDING")

        statuses = build_analytics(resolve_range(preset="last_7", now=NOW))["orders_by_status"]
        assert statuses == [{"status": "DELIVERED", "count": 2}, {"status": "PENDING", "count": 1}]

    def test_empty_window(self, db_session):
        report = build_analytics(resolve_range(preset="last_30", now=NOW))
        assert report["kpis"]["revenue_cents"] == 0
        assert report["kpis"]["aov_cents"] == 0
        assert report["kpis"]["growth_revenue_pct"] == 0.0
        assert len(report["timeseries"]) == 30
        assert report["top_products"] == []
        assert report["range"] == {"start": "2024-02-15T00:00:00Z", "end": "2024-03-15T23:59:59Z"}
