"""Dashboard metrics tests."""

from datetime import datetime, timedelta

import pytest

from hydropak.models import Customer, Invoice, Order, OrderItem
from hydropak.services.dashboard_service import dashboard_metrics, clamp_pct


NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest.fixture
def seeded(db_session, admin_user, customer, product, small_product):
    """Orders and invoices spread over this week, last week and last month."""
    rows = [
        # (order_number, status, created_at, invoice_status, total_cents)
        (1, "DELIVERED", NOW - timedelta(days=1), "PAID", 10000),
        (2, "PENDING", NOW, "PENDING", 4000),
        (3, "CANCELLED", NOW - timedelta(days=2), "CANCELLED", 9000),
        (4, "DELIVERED", NOW - timedelta(days=9), "PAID", 5000),
        (5, "SCHEDULED", NOW - timedelta(days=40), "OVERDUE", 3000),
    ]
    for number, status, at, inv_status, total in rows:
        order = Order(order_number=number, customer_id=customer.id, status=status, created_at=at)
        db_session.add(order)
        db_session.flush()
        db_session.add(OrderItem(order_id=order.id, product_id=product.id, quantity=2, unit_price_cents=total // 2))
        inv = Invoice(
            invoice_number=number,
            customer_id=customer.id,
            order_id=order.id,
            user_id=admin_user.id,
            status=inv_status,
            subtotal_cents=total,
            total_cents=total,
            paid_amount_cents=total if inv_status == "PAID" else 0,
            created_at=at,
        )
        inv.recompute_balance()
        db_session.add(inv)
    db_session.commit()


class TestTotals:

    def test_counts_and_money(self, seeded):
        m = dashboard_metrics(now=NOW)

        assert m["revenue_cents"] == 10000 + 4000 + 5000 + 3000
        assert m["outstanding_cents"] == 4000 + 3000
        assert m["customers"] == 1
        assert m["products"] == 2
        assert m["orders"] == 5
        assert m["deliveries"] == 2
        assert m["pending_deliveries"] == 2

    def test_low_stock_items(self, seeded):
        # small_product has 5 in stock against a level of 10
        assert dashboard_metrics(now=NOW)["low_stock_items"] == 1

    def test_empty_database(self, db_session):
        m = dashboard_metrics(now=NOW)
        assert m["revenue_cents"] == 0
        assert m["weekly_growth"] == 0.0
        assert m["orders_by_status"] == []
        assert m["recent_activity"] == []


class TestSeries:

    def test_monthly_covers_twelve_months_ending_now(self, seeded):
        monthly = dashboard_metrics(now=NOW)["monthly"]
        assert len(monthly) == 12
        assert monthly[-1]["month"] == "2024-03"
        assert monthly[-1]["label"] == "Mar 24"
        assert monthly[0]["month"] == "2023-04"
        assert monthly[-1]["total_cents"] == 10000 + 4000 + 5000
        assert monthly[-2]["total_cents"] == 3000

    def test_orders_by_status_skips_zero_counts(self, seeded):
        statuses = dashboard_metrics(now=NOW)["orders_by_status"]
        assert [s["status"] for s in statuses] == ["PENDING", "SCHEDULED", "DELIVERED", "CANCELLED"]
        assert all(s["color"].startswith("#") for s in statuses)

    def test_daily_deliveries_last_seven_days(self, seeded):
        daily = dashboard_metrics(now=NOW)["daily_deliveries"]
        assert len(daily) == 7
        assert daily[-1]["date"] == "2024-03-15"
        assert daily[-1]["day"] == "Fri"
        assert daily[-1]["pending"] == 1
        assert daily[-2]["delivered"] == 1

    def test_top_products_last_thirty_days(self, seeded, product):
        top = dashboard_metrics(now=NOW)["top_products"]
        assert len(top) == 1
        assert top[0]["product_id"] == product.id
        # orders 1-4 fall inside the window, 2 units each
        assert top[0]["quantity"] == 8


class TestGrowth:

    def test_weekly_growth_compares_revenue_invoices(self, seeded):
        # this week: 10000 + 4000 (the cancelled invoice is ignored); last week: 5000
        assert dashboard_metrics(now=NOW)["weekly_growth"] == pytest.approx(180.0)

    def test_growth_is_clamped(self):
        assert clamp_pct(5000.0) == 999.0
        assert clamp_pct(-5000.0) == -999.0
        assert clamp_pct(12.5) == 12.5

    def test_month_over_month_counts(self, db_session):
        db_session.add(Customer(name="Old", created_at=datetime(2024, 2, 10)))
        db_session.add(Customer(name="Older", created_at=datetime(2024, 2, 11)))
        db_session.add(Customer(name="New", created_at=datetime(2024, 3, 2)))
        db_session.commit()

        m = dashboard_metrics(now=NOW)
        assert m["customer_growth"] == -50.0
        assert m["order_growth"] == 0.0


class TestRecentActivity:

    def test_newest_first_and_capped(self, seeded):
        feed = dashboard_metrics(now=NOW)["recent_activity"]
        assert len(feed) == 10
        stamps = [e["at"] for e in feed]
        assert stamps == sorted(stamps, reverse=True)
        assert {e["type"] for e in feed} == {"order", "invoice"}

    def test_order_status_maps_to_tone(self, seeded):
        feed = dashboard_metrics(now=NOW)["recent_activity"]
        cancelled = next(e for e in feed if e["type"] == "order" and "#3 " in e["description"])
        delivered = next(e for e in feed if e["type"] == "order" and "#1 " in e["description"])
        assert cancelled["status"] == "error"
        assert delivered["status"] == "success"
        assert all(e["status"] == "success" for e in feed if e["type"] == "invoice")
