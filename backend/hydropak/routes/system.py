# backend/hydropak/routes/system.py
"""
System health endpoint.

Unauthenticated; used by load balancers and the frontend's connection check.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import User, Customer, Order, Invoice

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "customers": db.session.query(Customer).count(),
            "orders": db.session.query(Order).count(),
            "invoices": db.session.query(Invoice).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/health")
def health():
    database = check_database_health()
    ok = database["status"] == "healthy"
    storage = current_app.extensions.get("invoice_storage")
    body = {
        "ok": ok,
        "database": database,
        "pdf_storage": "s3" if getattr(storage, "uses_s3", False) else "local",
        "dev_auth": bool(current_app.config.get("ALLOW_DEV_AUTH")),
    }
    return jsonify(body), 200 if ok else 503
