# Overview: Flask API routes for products and stock operations; parses input and returns JSON responses.

# backend/hydropak/routes/products.py
"""
Product and inventory routes.

STOCK: Every stock change (manual edit, adjustment, sale, cancellation) is
recorded as an InventoryMovement. POST /<id>/stock is the dedicated way to
adjust stock with a reason.

SECURITY: All routes require authentication.
"""
from flask import Blueprint, request, jsonify

from ..services import products_service, inventory_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "urdu_name", "description", "brand", "size_liters", "type",
        "category", "cost_price_cents", "sale_price_cents", "image_url", "stock",
        "low_stock_level",
    },
    required_on_create={"sku", "name"},
    non_negative={"size_liters", "cost_price_cents", "sale_price_cents", "low_stock_level"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products, newest first.

    Query params:
    - q: str (optional) - matches name, SKU, category or brand
    - category: str (optional) - category substring
    - low: "1" (optional) - only products at or below their low-stock level
    """
    q = (request.args.get("q") or "").strip() or None
    category = (request.args.get("category") or "").strip() or None
    low_only = request.args.get("low") in ("1", "true")
    return jsonify(products_service.list_products(q=q, category=category, low_only=low_only)), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = products_service.create_product(patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return updated, 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    """Refused with 409 while order lines reference the product."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"ok": True}, 200


@products_bp.post("/<int:product_id>/stock")
@require_auth
def adjust_stock_route(product_id: int):
    """
    Apply a signed stock change.

    Body: {change: int (non-zero), reason: str, note?: str}
    Returns the updated product.
    """
    payload = request.get_json(silent=True) or {}

    try:
        updated = inventory_service.adjust_stock(product_id=product_id, payload=payload)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return updated, 200


@products_bp.get("/<int:product_id>/movements")
@require_auth
def list_movements_route(product_id: int):
    try:
        rows = inventory_service.list_movements(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return jsonify(rows), 200
