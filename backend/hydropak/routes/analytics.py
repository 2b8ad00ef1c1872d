# Overview: Flask API routes for sales analytics over a resolved date window.

# backend/hydropak/routes/analytics.py
"""
Analytics routes.

Both verbs resolve a window (preset, or custom from/to) and return the same
report. Bad dates never fail the request; they fall back to the default window.
"""
from flask import Blueprint, request

from ..services.range_service import resolve_range
from ..services.analytics_service import build_analytics
from ..decorators import require_auth

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("")
@require_auth
def analytics_query():
    """Query params: preset (last_7|last_30|last_90|ytd|custom), from, to."""
    window = resolve_range(
        preset=request.args.get("preset"),
        start=request.args.get("from"),
        end=request.args.get("to"),
    )
    return build_analytics(window), 200


@analytics_bp.post("")
@require_auth
def analytics_body():
    """Body: {preset?, start?, end?}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    window = resolve_range(
        preset=data.get("preset"),
        start=data.get("start"),
        end=data.get("end"),
    )
    return build_analytics(window), 200
