# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

# backend/hydropak/routes/customers.py
"""
Customer management routes.

List rows carry per-customer rollups (order count, spend, outstanding balance)
so the customer table can render without a second round trip.

SECURITY: All routes require authentication.
"""
from flask import Blueprint, request, jsonify

from ..services import customer_service
from ..models import Customer, CUSTOMER_STATUSES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "phone", "email", "address", "city", "notes",
        "urdu_name", "status", "rating", "credit_limit_cents",
    },
    required_on_create={"name"},
    choices={"status": set(CUSTOMER_STATUSES)},
    non_negative={"credit_limit_cents"},
    email_fields={"email"},
    ranges={"rating": (0, 5)},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    """
    List customers, newest first.

    Query params:
    - q: str (optional) - matches name, phone or email
    """
    q = (request.args.get("q") or "").strip() or None
    return jsonify(customer_service.list_customers(q=q)), 200


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        return customer_service.get_customer(customer_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        created = customer_service.create_customer(patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created, 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    """Partial update; omitted fields are left as they are."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        updated = customer_service.update_customer(customer_id=customer_id, patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return updated, 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    """Refused with 409 while orders or invoices reference the customer."""
    try:
        customer_service.delete_customer(customer_id=customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"ok": True}, 200
