# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/hydropak/routes/orders.py
"""
Order routes.

LIFECYCLE: PENDING -> SCHEDULED -> OUT_FOR_DELIVERY -> DELIVERED, or CANCELLED.
- Creating an order takes stock out (one 'sale' movement per line)
- Cancelling puts it back (one 'cancel' movement per line), exactly once

SECURITY: All routes require authentication. The creating user is recorded
on the order.
"""
from flask import Blueprint, request, jsonify, g

from ..services import order_service
from ..validation import ValidationError, ConflictError, NotFoundError, require_json_object
from ..decorators import require_auth

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders():
    """
    List orders, newest first.

    Query params:
    - q: str (optional) - customer name, or an order number
    - status: str (optional) - any order status, or "confirmed" (pending + scheduled)
    - from / to: ISO date (optional) - created_at window, `to` inclusive
    - customer_id: int (optional)
    """
    try:
        rows = order_service.list_orders(
            q=(request.args.get("q") or "").strip() or None,
            status=request.args.get("status"),
            date_from=request.args.get("from"),
            date_to=request.args.get("to"),
            customer_id=request.args.get("customer_id", type=int),
        )
    except ValidationError as e:
        return e.to_dict(), 400

    return jsonify(rows), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        return order_service.get_order(order_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order with its line items.

    Body: {customer_id, items: [{product_id, quantity, unit_price_cents?}],
           scheduled_at?, route_code?, status?}
    """
    try:
        payload = require_json_object(request.get_json(silent=True))
        created = order_service.create_order(payload=payload, user_id=g.current_user.id)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return created, 201


@orders_bp.put("/<int:order_id>")
@require_auth
def update_order_route(order_id: int):
    """Reschedule or re-route. Items and customer are fixed after creation."""
    try:
        payload = require_json_object(request.get_json(silent=True))
        updated = order_service.update_order(order_id=order_id, payload=payload)
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return updated, 200


@orders_bp.put("/<int:order_id>/status")
@require_auth
def set_order_status_route(order_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        updated = order_service.set_order_status(order_id=order_id, status=payload.get("status"))
    except ValidationError as e:
        return e.to_dict(), 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return updated, 200
