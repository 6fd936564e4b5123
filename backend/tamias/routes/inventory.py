# backend/tamias/routes/inventory.py
"""
Inventory ledger routes.

- Reads are store-scoped: a product id from another store is 404.
- Receiving stock goes through the same atomic increment used for
  transaction compensation.
"""
from flask import Blueprint, request, current_app

from ..errors import TamiasError, ValidationError
from ..services import inventory_service
from ..validation import MAX_ID, MAX_QUANTITY, coerce_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/<int:product_id>")
def get_stock_route(product_id: int):
    store_id = request.args.get("store_id", type=int)
    if not store_id:
        return {"error": "store_id is required"}, 400

    try:
        product = inventory_service.get_product(store_id, product_id)
    except TamiasError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to read stock")
        return {"error": "Internal server error"}, 500

    return {
        "store_id": product.store_id,
        "product_id": product.id,
        "name": product.name,
        "stock": product.stock,
        "min_stock": product.min_stock,
        "is_low_stock": product.stock <= product.min_stock,
    }, 200


@inventory_bp.post("/<int:product_id>/receive")
def receive_stock_route(product_id: int):
    """Add received units to stock."""
    payload = request.get_json(silent=True) or {}

    try:
        if payload.get("store_id") is None:
            raise ValidationError("store_id is required")
        if payload.get("quantity") is None:
            raise ValidationError("quantity is required")
        store_id = coerce_int("store_id", payload["store_id"], minimum=1, maximum=MAX_ID)
        quantity = coerce_int("quantity", payload["quantity"], minimum=1, maximum=MAX_QUANTITY)

        stock = inventory_service.increment_stock(store_id, product_id, quantity)
    except TamiasError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Received %s unit(s) of product %s in store %s", quantity, product_id, store_id)
    return {"store_id": store_id, "product_id": product_id, "stock": stock}, 200
