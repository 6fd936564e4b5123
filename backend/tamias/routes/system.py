# backend/tamias/routes/system.py
"""
Liveness and build information.

/api/health answers 503 when the database cannot be queried, so a load
balancer can take the instance out of rotation.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import func

from tamias import __version__
from tamias.time_utils import to_utc_z, utcnow
from ..extensions import db
from ..models import Product, Transaction

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _ledger_probe() -> dict:
    """Row counts for both tables plus the newest transaction timestamp."""
    started = time.perf_counter()
    try:
        products = db.session.query(func.count(Product.id)).scalar()
        transactions, last_recorded = db.session.query(
            func.count(Transaction.id), func.max(Transaction.created_at)
        ).one()
    except Exception:
        current_app.logger.exception("Health probe could not query the database")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "error": "Database error",
        }

    return {
        "status": "healthy",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "details": {
            "products": products,
            "transactions": transactions,
            "last_transaction_at": to_utc_z(last_recorded),
        },
    }


@system_bp.get("/health")
def health():
    database = _ledger_probe()
    healthy = database["status"] == "healthy"
    body = {
        "status": "ok" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }
    return body, 200 if healthy else 503


@system_bp.get("/version")
def version():
    return {
        "api_version": __version__,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
