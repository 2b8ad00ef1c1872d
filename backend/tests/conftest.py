"""
Pytest fixtures for HydroPak backend tests.

Provides an in-memory database, a test client, a seeded admin with a bearer
token, and sample customers and products. Chromium is replaced by a fake
renderer; PDFs are written to a temporary directory.
"""

import pytest

from hydropak import create_app
from hydropak.extensions import db
from hydropak.models import Customer, Product
from hydropak.services.auth_service import create_user, issue_token


FAKE_PDF = b"%PDF-1.4\n% fake invoice\n%%EOF\n"


class FakeRenderer:
    """Stands in for headless Chromium; records the HTML it was given."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self.output = FAKE_PDF

    def __call__(self, html: str) -> bytes:
        if self.fail:
            raise RuntimeError("chromium crashed")
        self.calls.append(html)
        return self.output


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_DEV_AUTH': False,
        'JWT_SECRET': 'test-secret',
        'INVOICE_STORAGE_DIR': str(tmp_path_factory.mktemp("invoices")),
        'PDF_RENDERER': FakeRenderer(),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def pdf_renderer(app):
    renderer = app.extensions["pdf_renderer"]
    renderer.calls.clear()
    renderer.fail = False
    renderer.output = FAKE_PDF
    return renderer


@pytest.fixture(scope='function')
def dev_auth(app, monkeypatch):
    """Enable the dev auth bypass for one test."""
    monkeypatch.setitem(app.config, "ALLOW_DEV_AUTH", True)


@pytest.fixture(scope='function')
def admin_user(db_session):
    user = create_user(email="admin@hydropak.test", name="Admin", password="secret123", role="ADMIN")
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def auth_headers(admin_user):
    return {"Authorization": f"Bearer {issue_token(admin_user)}"}


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Ahmed Traders", phone="03001234567", email="ahmed@example.pk", city="Lahore")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def other_customer(db_session):
    c = Customer(name="Bilal Stores", phone="03217654321", city="Karachi")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def product(db_session):
    p = Product(
        sku="HP-19L",
        name="19L Bottle",
        category="Bottles",
        sale_price_cents=25000,
        cost_price_cents=15000,
        stock=50,
        low_stock_level=10,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def small_product(db_session):
    p = Product(
        sku="HP-1.5L",
        name="1.5L Bottle",
        category="Bottles",
        sale_price_cents=6000,
        stock=5,
        low_stock_level=10,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def place_order(client, auth_headers):
    """POST /api/orders with [(product_id, quantity), ...] and return the created order."""

    def _place(customer_id, lines, **extra) -> dict:
        payload = {
            "customer_id": customer_id,
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
            **extra,
        }
        resp = client.post("/api/orders", json=payload, headers=auth_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _place
