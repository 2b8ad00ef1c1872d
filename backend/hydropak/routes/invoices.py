# Overview: Flask API routes for invoice operations and PDF export; parses input and returns JSON responses.

# backend/hydropak/routes/invoices.py
"""
Invoice routes.

PDF EXPORT:
- GET /<id>/pdf renders the invoice with headless Chromium on every call and
  answers {url}. With S3 configured the URL is presigned; otherwise it points
  at GET /<id>/pdf/raw on this host.
- GET /<id>/pdf/raw serves the locally stored file. It carries no bearer
  token (browsers open it directly), so it is only served while the dev auth
  bypass is enabled.
"""
from flask import Blueprint, request, jsonify, g, current_app, Response

from ..services import invoice_service
from ..services.invoice_service import InvoicePdfError
from ..validation import ValidationError, ConflictError, NotFoundError, require_json_object
from ..decorators import require_auth

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices():
    return jsonify(invoice_service.list_invoices()), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        return invoice_service.get_invoice(invoice_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Create an invoice owned by the current user.

    Body: {customer_id, order_id?, items: [{name, qty, price_cents}],
           tax_cents?, discount_cents?, due_date?, notes?}
    """
    try:
        payload = require_json_object(request.get_json(silent=True))
        created = invoice_service.create_invoice(payload=payload, user_id=g.current_user.id)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created, 201


@invoices_bp.put("/<int:invoice_id>/status")
@require_auth
def update_invoice_status_route(invoice_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        updated = invoice_service.update_invoice_status(invoice_id=invoice_id, payload=payload)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return updated, 200


@invoices_bp.get("/<int:invoice_id>/pdf")
@require_auth
def invoice_pdf_route(invoice_id: int):
    try:
        result = invoice_service.generate_invoice_pdf(invoice_id=invoice_id, base_url=request.host_url)
    except InvoicePdfError as e:
        return {"error": str(e)}, 500

    response = jsonify(result)
    response.headers["Cache-Control"] = "no-store"
    return response, 200


@invoices_bp.get("/<int:invoice_id>/pdf/raw")
def invoice_pdf_raw_route(invoice_id: int):
    if invoice_service.get_pdf_storage().uses_s3:
        return {"error": "Not Found"}, 404
    if not current_app.config.get("ALLOW_DEV_AUTH"):
        return {"error": "Unauthorized"}, 401

    try:
        data, filename = invoice_service.read_local_pdf(invoice_id=invoice_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return Response(
        data,
        mimetype="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )
