# Overview: Invoice HTML rendering (Jinja2) and HTML -> PDF conversion (headless Chromium via Playwright).

from __future__ import annotations

import logging
from datetime import datetime

from jinja2 import Environment, PackageLoader, select_autoescape
from playwright.sync_api import sync_playwright


logger = logging.getLogger(__name__)

PDF_OPTIONS = {
    "format": "A4",
    "print_background": True,
    "margin": {"top": "24mm", "right": "16mm", "bottom": "24mm", "left": "16mm"},
}

CHROMIUM_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


def format_money(cents) -> str:
    """Integer cents -> 'Rs 1,234.50'."""
    cents = int(cents or 0)
    sign = "-" if cents < 0 else ""
    return f"{sign}Rs {abs(cents) / 100:,.2f}"


def format_date(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d %b %Y")


_env = Environment(
    loader=PackageLoader("hydropak", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["money"] = format_money
_env.filters["date"] = format_date


def invoice_context(invoice, company: dict) -> dict:
    customer = invoice.customer
    return {
        "company": company,
        "customer": {
            "name": customer.name if customer else "Customer",
            "address": (customer.address if customer else None) or "",
            "phone": (customer.phone if customer else None) or "",
        },
        "items": [
            {"name": i.name, "qty": i.qty, "price_cents": i.price_cents, "total_cents": i.line_total_cents}
            for i in invoice.items
        ],
        "summary": {
            "invoice_number": invoice.invoice_number,
            "subtotal_cents": invoice.subtotal_cents,
            "tax_cents": invoice.tax_cents,
            "discount_cents": invoice.discount_cents,
            "total_cents": invoice.total_cents,
            "paid_amount_cents": invoice.paid_amount_cents,
            "balance_cents": invoice.balance_cents,
            "status": invoice.status,
        },
        "issue_date": invoice.created_at,
        "due_date": invoice.due_date,
        "notes": invoice.notes,
    }


def render_invoice_html(invoice, company: dict) -> str:
    return _env.get_template("invoice.html").render(**invoice_context(invoice, company))


def render_pdf(html: str, executable_path: str | None = None) -> bytes:
    """
    Launch a headless Chromium, print `html` to an A4 PDF and close the browser.

    One browser per call. The browser is closed on every exit path, including
    when set_content or pdf raises.
    """
    with sync_playwright() as pw:
        browser = pw.chromium.launch(
            headless=True,
            executable_path=executable_path or None,
            args=CHROMIUM_ARGS,
        )
        try:
            page = browser.new_page()
            page.set_content(html, wait_until="networkidle")
            page.emulate_media(media="screen")
            pdf = page.pdf(**PDF_OPTIONS)
        finally:
            browser.close()

    logger.debug("Rendered PDF (%d bytes)", len(pdf))
    return pdf


class ChromiumRenderer:
    """Callable renderer bound to an optional system Chromium binary."""

    def __init__(self, executable_path: str | None = None):
        self.executable_path = executable_path

    def __call__(self, html: str) -> bytes:
        return render_pdf(html, self.executable_path)
