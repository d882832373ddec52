# backend/taller/routes/system.py
"""
System health endpoint and the area topology clients use to build transfer forms.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..areas import topology
from ..decorators import require_auth
from ..extensions import db
from ..models import Order, Reposition, User

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "orders": db.session.query(Order).count(),
            "repositions": db.session.query(Reposition).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/health")
def health():
    database = check_database_health()
    registry = current_app.extensions.get("realtime")
    realtime = {
        "status": "open" if registry is not None and registry.is_open else "closed",
        "connections": registry.connection_count() if registry is not None else 0,
    }
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "database": database,
        "realtime": realtime,
    }), 200 if healthy else 503


@system_bp.get("/api/areas")
@require_auth
def areas():
    return jsonify({"topology": topology()})
