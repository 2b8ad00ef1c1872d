# backend/hydropak/routes/dashboard.py
from flask import Blueprint

from ..services.dashboard_service import dashboard_metrics
from ..decorators import require_auth

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/metrics")
@require_auth
def metrics():
    return dashboard_metrics(), 200
