"""
PDF rendering tests.

Playwright is replaced with an in-memory fake so these run without Chromium.
The point is the resource discipline: one browser per call, always closed.
"""

from datetime import datetime

import pytest

from hydropak.models import Invoice, InvoiceItem
from hydropak.services import pdf_service
from hydropak.services.pdf_service import format_money, format_date, render_invoice_html, render_pdf


class FakePage:
    def __init__(self, browser):
        self.browser = browser

    def set_content(self, html, wait_until=None):
        if self.browser.fail_on == "set_content":
            raise RuntimeError("navigation timeout")
        self.browser.html = html

    def emulate_media(self, media=None):
        pass

    def pdf(self, **options):
        if self.browser.fail_on == "pdf":
            raise RuntimeError("print failed")
        self.browser.pdf_options = options
        return b"%PDF-fake"


class FakeBrowser:
    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.closed = False
        self.html = None
        self.pdf_options = None

    def new_page(self):
        return FakePage(self)

    def close(self):
        self.closed = True


class FakePlaywright:
    def __init__(self, browser):
        self.browser = browser
        self.launch_kwargs = None
        self.chromium = self

    def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        return self.browser

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def fake_playwright(monkeypatch):
    def _install(fail_on=None):
        pw = FakePlaywright(FakeBrowser(fail_on))
        monkeypatch.setattr(pdf_service, "sync_playwright", lambda: pw)
        return pw

    return _install


class TestRenderPdf:

    def test_success_closes_browser(self, fake_playwright):
        pw = fake_playwright()
        assert render_pdf("<p>hi</p>") == b"%PDF-fake"
        assert pw.browser.closed
        assert pw.browser.html == "<p>hi</p>"
        assert pw.browser.pdf_options["format"] == "A4"
        assert pw.browser.pdf_options["print_background"] is True

    @pytest.mark.parametrize("fail_on", ["set_content", "pdf"])
    def test_failure_still_closes_browser(self, fake_playwright, fail_on):
        pw = fake_playwright(fail_on)
        with pytest.raises(RuntimeError):
            render_pdf("<p>hi</p>")
        assert pw.browser.closed

    def test_executable_path_is_forwarded(self, fake_playwright):
        pw = fake_playwright()
        pdf_service.ChromiumRenderer("/usr/bin/chromium")("<p>hi</p>")
        assert pw.launch_kwargs["executable_path"] == "/usr/bin/chromium"
        assert pw.launch_kwargs["headless"] is True


class TestFormatting:

    @pytest.mark.parametrize("cents,expected", [
        (0, "Rs 0.00"),
        (123450, "Rs 1,234.50"),
        (-500, "-Rs 5.00"),
        (None, "Rs 0.00"),
    ])
    def test_format_money(self, cents, expected):
        assert format_money(cents) == expected

    def test_format_date(self):
        assert format_date(datetime(2024, 4, 30, 10, 0)) == "30 Apr 2024"
        assert format_date(None) == ""


class TestInvoiceHtml:

    def test_renders_lines_and_escapes_text(self, db_session, admin_user, customer):
        customer.name = "<script>alert(1)</script>"
        inv = Invoice(
            invoice_number=7,
            customer_id=customer.id,
            user_id=admin_user.id,
            status="PENDING",
            subtotal_cents=50000,
            tax_cents=0,
            discount_cents=0,
            total_cents=50000,
            balance_cents=50000,
            due_date=datetime(2024, 4, 30),
        )
        db_session.add(inv)
        db_session.flush()
        db_session.add(InvoiceItem(invoice_id=inv.id, name="19L Bottle", qty=2, price_cents=25000, line_total_cents=50000))
        db_session.commit()

        html = render_invoice_html(inv, {"name": "HydroPak", "address": "Lahore", "phone": "042"})

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html
        assert "19L Bottle" in html
        assert "Rs 500.00" in html
        assert "30 Apr 2024" in html
        assert "HydroPak" in html
