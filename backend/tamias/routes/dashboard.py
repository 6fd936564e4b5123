# Overview: Flask API routes for dashboard statistics; read-only views over transactions and stock.

from flask import Blueprint, current_app, jsonify, request

from tamias.errors import TamiasError
from tamias.services import reporting_service


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def _internal_error(action: str):
    current_app.logger.exception("Failed to load dashboard %s", action)
    return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/stats")
def stats():
    store_id = request.args.get("store_id", type=int)
    if not store_id:
        return jsonify({"error": "store_id is required"}), 400

    try:
        return jsonify(reporting_service.dashboard_stats(store_id, request.args.get("date"))), 200
    except TamiasError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        return _internal_error("stats")


@dashboard_bp.get("/chart")
def chart():
    store_id = request.args.get("store_id", type=int)
    if not store_id:
        return jsonify({"error": "store_id is required"}), 400

    days = request.args.get("days", 7, type=int)

    try:
        rows = reporting_service.sales_chart(store_id, days=days, today=request.args.get("date"))
        return jsonify(rows), 200
    except TamiasError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        return _internal_error("chart")


@dashboard_bp.get("/top-products")
def top_products():
    store_id = request.args.get("store_id", type=int)
    if not store_id:
        return jsonify({"error": "store_id is required"}), 400

    limit = request.args.get("limit", 5, type=int)

    try:
        return jsonify(reporting_service.top_products(store_id, limit=limit)), 200
    except TamiasError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        return _internal_error("top products")


@dashboard_bp.get("/low-stock")
def low_stock():
    store_id = request.args.get("store_id", type=int)
    if not store_id:
        return jsonify({"error": "store_id is required"}), 400

    limit = request.args.get("limit", 5, type=int)

    try:
        products = reporting_service.low_stock(store_id, limit=limit)
    except TamiasError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        return _internal_error("low stock")

    return jsonify([
        {
            "id": product.id,
            "name": product.name,
            "stock": product.stock,
            "min_stock": product.min_stock,
            "category": product.category,
        }
        for product in products
    ]), 200


@dashboard_bp.get("/recent-transactions")
def recent_transactions():
    store_id = request.args.get("store_id", type=int)
    if not store_id:
        return jsonify({"error": "store_id is required"}), 400

    limit = request.args.get("limit", 5, type=int)

    try:
        return jsonify(reporting_service.recent_transactions(store_id, limit=limit)), 200
    except TamiasError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        return _internal_error("recent transactions")
