# Overview: Flask API routes for checkout transactions; parses input and returns JSON responses.

# backend/tamias/routes/transactions.py
"""Transaction API routes: checkout, listing, status changes, deletes and sales summaries"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import TamiasError, ValidationError
from ..services import transaction_service, reporting_service
from ..time_utils import parse_iso_datetime


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _required_store_id() -> int:
    store_id = request.args.get("store_id", type=int)
    if not store_id:
        raise ValidationError("store_id is required")
    return store_id


def _datetime_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")


def _adjustments_payload(adjustments) -> list[dict]:
    return [adjustment.to_dict() for adjustment in adjustments]


@transactions_bp.post("/")
def create_transaction_route():
    """
    Checkout: record a transaction and decrement stock per line item.

    Body: store_id, items[{product_id|id, quantity|qty, price, name}], total,
    optional subtotal, tax, discount, payment_amount, payment_method,
    cashier_id, customer_id, notes.
    """
    try:
        data = request.get_json(silent=True) or {}
        tx, adjustments = transaction_service.create_transaction(data)
        return jsonify({
            "transaction": tx.to_dict(),
            "stock_adjustments": _adjustments_payload(adjustments),
        }), 201

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/")
def list_transactions_route():
    try:
        store_id = _required_store_id()
        transactions = transaction_service.list_transactions(
            store_id,
            date_from=_datetime_arg("date_from"),
            date_to=_datetime_arg("date_to"),
            status=request.args.get("status"),
            payment_method=request.args.get("payment_method"),
            limit=request.args.get("limit", type=int),
        )
        return jsonify({"transactions": [tx.to_dict() for tx in transactions]}), 200

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        tx = transaction_service.get_transaction(_required_store_id(), transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.patch("/<int:transaction_id>")
def update_transaction_route(transaction_id: int):
    """
    Change status and/or notes.

    Moving a completed/pending transaction to cancelled or refunded restores
    stock once; repeating the request restores nothing.
    """
    try:
        store_id = _required_store_id()
        data = request.get_json(silent=True)
        tx, adjustments = transaction_service.update_transaction(store_id, transaction_id, data)
        return jsonify({
            "transaction": tx.to_dict(),
            "stock_adjustments": _adjustments_payload(adjustments),
        }), 200

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.put("/<int:transaction_id>/status")
def update_status_route(transaction_id: int):
    try:
        store_id = _required_store_id()
        data = request.get_json(silent=True) or {}
        if not data.get("status"):
            return jsonify({"error": "status required"}), 400

        tx, adjustments = transaction_service.update_transaction(
            store_id, transaction_id, {"status": data["status"]}
        )
        return jsonify({
            "transaction": tx.to_dict(),
            "stock_adjustments": _adjustments_payload(adjustments),
        }), 200

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update transaction status")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/<int:transaction_id>")
def delete_transaction_route(transaction_id: int):
    try:
        store_id = _required_store_id()
        adjustments = transaction_service.delete_transaction(store_id, transaction_id)
        return jsonify({
            "message": "Transaction deleted successfully",
            "stock_adjustments": _adjustments_payload(adjustments),
        }), 200

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/summary/daily")
def daily_summary_route():
    try:
        summary = reporting_service.daily_summary(_required_store_id(), request.args.get("date"))
        return jsonify(summary), 200

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build daily summary")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/summary/range")
def range_summary_route():
    try:
        summary = reporting_service.range_summary(
            _required_store_id(),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
        )
        return jsonify(summary), 200

    except TamiasError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build range summary")
        return jsonify({"error": "Internal server error"}), 500
