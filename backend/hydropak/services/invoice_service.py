# Overview: Service-layer operations for invoices; totals, payment status and PDF generation.

"""
Invoice Service

MONEY (all integer cents):
- subtotal = sum(qty * price)
- total = subtotal + tax - discount
- balance = max(0, total - paid), recomputed on creation and every status change

PDF: generate_invoice_pdf() re-renders on every call, overwrites the stored
object and caches its location on Invoice.pdf_url. Any failure is reported
as InvoicePdfError; nothing is retried.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, Invoice, InvoiceItem, Order, INVOICE_STATUSES
from ..validation import ConflictError, FieldErrors, NotFoundError, ValidationError, coerce_int, MAX_MONEY_CENTS
from hydropak.time_utils import parse_iso_datetime, start_of_day
from .document_service import INVOICE_SEQUENCE, next_document_number
from .pdf_service import render_invoice_html


logger = logging.getLogger(__name__)


class InvoicePdfError(Exception):
    """Raised when an invoice PDF could not be produced or stored."""
    pass


def _require_invoice(invoice_id: int) -> Invoice:
    inv = db.session.get(Invoice, invoice_id)
    if inv is None:
        raise NotFoundError("Invoice not found")
    return inv


def _money(errors: FieldErrors, name: str, value, *, default: int | None = 0) -> int | None:
    if value is None or value == "":
        return default
    try:
        cents = coerce_int(name, value)
    except ValidationError:
        errors.add(name, "must be an integer amount in cents")
        return None
    if not 0 <= cents <= MAX_MONEY_CENTS:
        errors.add(name, f"must be between 0 and {MAX_MONEY_CENTS}")
        return None
    return cents


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
        name = str(raw.get("name") or "").strip()
        if not name:
            errors.add(f"{prefix}.name", "is required")
        elif len(name) > 255:
            errors.add(f"{prefix}.name", "exceeds max length 255")
        try:
            qty = coerce_int(f"{prefix}.qty", raw.get("qty"))
        except ValidationError:
            errors.add(f"{prefix}.qty", "must be an integer")
            qty = None
        if qty is not None and qty <= 0:
            errors.add(f"{prefix}.qty", "must be > 0")
        price = _money(errors, f"{prefix}.price_cents", raw.get("price_cents"), default=None)
        if raw.get("price_cents") in (None, ""):
            errors.add(f"{prefix}.price_cents", "is required")
        items.append({"name": name, "qty": qty, "price_cents": price})
    return items


def list_invoices() -> list[dict]:
    rows = (
        db.session.query(Invoice)
        .options(selectinload(Invoice.customer), selectinload(Invoice.items))
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )
    return [inv.to_dict() for inv in rows]


def get_invoice(invoice_id: int) -> dict:
    return _require_invoice(invoice_id).to_dict()


def create_invoice(*, payload: dict, user_id: int) -> dict:
    """
    Create invoice + items in one transaction.

    Raises:
        ValidationError: malformed payload (including a negative total)
        NotFoundError: unknown customer or order
        ConflictError: order already invoiced
    """
    errors = FieldErrors()
    allowed = {"customer_id", "order_id", "items", "tax_cents", "discount_cents", "due_date", "notes"}
    for k in sorted(set(payload) - allowed):
        errors.add(k, "is not allowed")

    customer_id = None
    if payload.get("customer_id") is None:
        errors.add("customer_id", "is required")
    else:
        try:
            customer_id = coerce_int("customer_id", payload["customer_id"])
        except ValidationError:
            errors.add("customer_id", "must be an integer")

    order_id = None
    if payload.get("order_id") not in (None, ""):
        try:
            order_id = coerce_int("order_id", payload["order_id"])
        except ValidationError:
            errors.add("order_id", "must be an integer")

    items = _parse_items(payload.get("items"), errors)
    tax = _money(errors, "tax_cents", payload.get("tax_cents"))
    discount = _money(errors, "discount_cents", payload.get("discount_cents"))

    due_date = None
    raw_due = payload.get("due_date")
    if isinstance(raw_due, str) and raw_due.strip():
        try:
            due_date = start_of_day(parse_iso_datetime(raw_due))
        except ValueError:
            errors.add("due_date", "must be an ISO-8601 date")
    elif raw_due not in (None, ""):
        errors.add("due_date", "must be an ISO-8601 date")

    notes = payload.get("notes")
    if notes is not None:
        notes = str(notes).strip() or None
    errors.raise_if_any()

    subtotal = sum(i["qty"] * i["price_cents"] for i in items)
    total = subtotal + tax - discount
    if total < 0:
        raise ValidationError("discount_cents: cannot exceed subtotal plus tax", {"discount_cents": ["cannot exceed subtotal plus tax"]})

    if db.session.get(Customer, customer_id) is None:
        raise NotFoundError("Customer not found")
    if order_id is not None:
        if db.session.get(Order, order_id) is None:
            raise NotFoundError("Order not found")
        if db.session.query(Invoice.id).filter(Invoice.order_id == order_id).first() is not None:
            raise ConflictError("Order already has an invoice")

    try:
        inv = Invoice(
            invoice_number=next_document_number(INVOICE_SEQUENCE),
            customer_id=customer_id,
            order_id=order_id,
            user_id=user_id,
            status="PENDING",
            due_date=due_date,
            notes=notes,
            subtotal_cents=subtotal,
            tax_cents=tax,
            discount_cents=discount,
            total_cents=total,
            paid_amount_cents=0,
        )
        inv.recompute_balance()
        db.session.add(inv)
        db.session.flush()

        for i in items:
            db.session.add(
                InvoiceItem(
                    invoice_id=inv.id,
                    name=i["name"],
                    qty=i["qty"],
                    price_cents=i["price_cents"],
                    line_total_cents=i["qty"] * i["price_cents"],
                )
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return _require_invoice(inv.id).to_dict()


def update_invoice_status(*, invoice_id: int, payload: dict) -> dict:
    """
    Set status and optionally paid_amount_cents (kept when omitted).
    balance_cents = max(0, total_cents - paid_amount_cents).
    """
    errors = FieldErrors()
    for k in sorted(set(payload) - {"status", "paid_amount_cents"}):
        errors.add(k, "is not allowed")

    status = str(payload.get("status") or "").strip().upper()
    if status not in INVOICE_STATUSES:
        errors.add("status", f"must be one of: {', '.join(sorted(INVOICE_STATUSES))}")
    paid = _money(errors, "paid_amount_cents", payload.get("paid_amount_cents"), default=None)
    errors.raise_if_any()

    inv = _require_invoice(invoice_id)
    inv.status = status
    if paid is not None:
        inv.paid_amount_cents = paid
    inv.recompute_balance()
    db.session.commit()
    return inv.to_dict()


def company_profile() -> dict:
    cfg = current_app.config
    return {
        "name": cfg["COMPANY_NAME"],
        "address": cfg["COMPANY_ADDRESS"],
        "phone": cfg["COMPANY_PHONE"],
    }


def get_pdf_storage():
    return current_app.extensions["invoice_storage"]


def get_pdf_renderer():
    return current_app.extensions["pdf_renderer"]


def generate_invoice_pdf(*, invoice_id: int, base_url: str) -> dict:
    """
    Render, store and cache the invoice PDF. Returns {"url": ...}.

    Local storage answers with an absolute raw-download URL built from
    `base_url`; S3 answers with a presigned URL.

    Raises:
        InvoicePdfError: on any failure, a missing invoice included
    """
    storage = get_pdf_storage()
    renderer = get_pdf_renderer()

    try:
        inv = _require_invoice(invoice_id)
        html = render_invoice_html(inv, company_profile())
        pdf = renderer(html)
        location = storage.save(inv, pdf)
        if inv.pdf_url != location:
            inv.pdf_url = location
            db.session.commit()
        url = storage.url_for(location, base_url)
    except Exception as e:
        db.session.rollback()
        logger.exception("Invoice PDF generation failed for invoice %s", invoice_id)
        raise InvoicePdfError("Failed to generate invoice PDF") from e

    return {"url": url}


def read_local_pdf(*, invoice_id: int) -> tuple[bytes, str]:
    """
    Bytes and download filename of a locally stored PDF.

    Raises:
        NotFoundError: unknown invoice, or PDF not generated yet
    """
    inv = _require_invoice(invoice_id)
    data = get_pdf_storage().read(inv)
    if data is None:
        raise NotFoundError("PDF not generated yet")
    return data, f"invoice-{inv.invoice_number}.pdf"
