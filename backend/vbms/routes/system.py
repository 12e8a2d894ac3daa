# backend/vbms/routes/system.py
"""
System health and version endpoints.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Business, Order, Call, InventoryItem, FileRecord

system_bp = Blueprint("system", __name__)

VERSION = "1.0.0"


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "businesses": db.session.query(Business).count(),
            "orders": db.session.query(Order).count(),
            "calls": db.session.query(Call).count(),
            "inventory_items": db.session.query(InventoryItem).count(),
            "files": db.session.query(FileRecord).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return {"status": database["status"], "version": VERSION, "database": database}, status_code


@system_bp.get("/api/version")
def version():
    return {"name": "vbms-backend", "version": VERSION}
