from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tamias.errors import ValidationError
from tamias.models.transactions import (
    CREATION_STATUSES,
    DEFAULT_PAYMENT_METHOD,
    TRANSACTION_STATUSES,
)


# Maximum monetary amount accepted on a single field.
# This prevents database overflow issues and nonsensical totals
MAX_AMOUNT = 999_999_999_999

# Largest id a 64-bit signed INTEGER column can hold
MAX_ID = 2**63 - 1

# Units on a single line item
MAX_QUANTITY = 1_000_000

# Fields a client may change after a transaction is recorded
MUTABLE_TRANSACTION_FIELDS = frozenset({"status", "notes"})


@dataclass(frozen=True)
class LineItemInput:
    """Canonical line item shape; the core never sees id/qty aliases."""
    product_id: int
    quantity: int
    price: int = 0
    product_name: str | None = None

    @property
    def line_total(self) -> int:
        return self.quantity * self.price


@dataclass(frozen=True)
class CheckoutInput:
    store_id: int
    items: tuple[LineItemInput, ...]
    total: int
    subtotal: int
    tax: int = 0
    discount: int = 0
    payment_amount: int | None = None
    payment_method: str = DEFAULT_PAYMENT_METHOD
    status: str = "completed"
    cashier_id: int | None = None
    customer_id: int | None = None
    notes: str | None = None

    @property
    def change_amount(self) -> int:
        if self.payment_amount is None:
            return 0
        return max(0, self.payment_amount - self.total)

    @property
    def expected_total(self) -> int:
        return self.subtotal + self.tax - self.discount


def coerce_int(name: str, value: Any, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion for JSON input.

    Rejects floats, booleans, scientific notation and decimal strings so that
    "12.5" or 1e3 never silently become quantities or amounts.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{name} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{name} cannot exceed {maximum}")
    return result


def coerce_optional_int(name: str, value: Any, **bounds) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return coerce_int(name, value, **bounds)


def _amount(name: str, value: Any) -> int:
    return coerce_int(name, value, minimum=0, maximum=MAX_AMOUNT)


def _optional_text(name: str, value: Any, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{name} exceeds max length {max_length}")
    return text


def _first_present(raw: dict, *keys: str):
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_line_item(raw: Any, position: int) -> LineItemInput:
    """
    Normalize one incoming line item.

    Accepted aliases: id/product_id, qty/quantity, unit_price/price,
    name/product_name.
    """
    label = f"items[{position}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{label} must be an object")

    product_id = _first_present(raw, "product_id", "id")
    if product_id is None:
        raise ValidationError(f"{label}.product_id is required")

    quantity = _first_present(raw, "quantity", "qty")
    if quantity is None:
        raise ValidationError(f"{label}.quantity is required")

    price = _first_present(raw, "price", "unit_price")

    item = LineItemInput(
        product_id=coerce_int(f"{label}.product_id", product_id, minimum=1, maximum=MAX_ID),
        quantity=coerce_int(f"{label}.quantity", quantity, minimum=1, maximum=MAX_QUANTITY),
        price=_amount(f"{label}.price", price) if price is not None else 0,
        product_name=_optional_text(f"{label}.name", _first_present(raw, "product_name", "name"), 255),
    )
    if item.line_total > MAX_AMOUNT:
        raise ValidationError(
            f"{label} line total cannot exceed {MAX_AMOUNT}",
            details={"line_total": item.line_total},
        )
    return item


def parse_checkout(payload: Any) -> CheckoutInput:
    """Validate + normalize a checkout payload into a CheckoutInput."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if payload.get("store_id") in (None, ""):
        raise ValidationError("store_id is required")
    store_id = coerce_int("store_id", payload["store_id"], minimum=1, maximum=MAX_ID)

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")
    items = tuple(normalize_line_item(raw, i) for i, raw in enumerate(raw_items))

    if payload.get("total") is None:
        raise ValidationError("total is required")
    total = _amount("total", payload["total"])

    subtotal_raw = payload.get("subtotal")
    if subtotal_raw is not None:
        subtotal = _amount("subtotal", subtotal_raw)
    else:
        subtotal = sum(i.line_total for i in items)
        if subtotal > MAX_AMOUNT:
            raise ValidationError(
                f"subtotal of line items cannot exceed {MAX_AMOUNT}",
                details={"subtotal": subtotal},
            )
    tax = _amount("tax", payload["tax"]) if payload.get("tax") is not None else 0
    discount = _amount("discount", payload["discount"]) if payload.get("discount") is not None else 0

    payment_amount_raw = payload.get("payment_amount")
    payment_amount = _amount("payment_amount", payment_amount_raw) if payment_amount_raw is not None else None

    payment_method = _optional_text("payment_method", payload.get("payment_method"), 32)
    payment_method = payment_method.lower() if payment_method else DEFAULT_PAYMENT_METHOD

    status = _optional_text("status", payload.get("status"), 16)
    status = status.lower() if status else "completed"
    if status not in CREATION_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(CREATION_STATUSES))}",
            details={"status": status},
        )

    return CheckoutInput(
        store_id=store_id,
        items=items,
        total=total,
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        payment_amount=payment_amount,
        payment_method=payment_method,
        status=status,
        cashier_id=coerce_optional_int("cashier_id", payload.get("cashier_id"), minimum=1, maximum=MAX_ID),
        customer_id=coerce_optional_int("customer_id", payload.get("customer_id"), minimum=1, maximum=MAX_ID),
        notes=_optional_text("notes", payload.get("notes"), 1000),
    )


def parse_transaction_patch(payload: Any) -> dict:
    """
    Validate a post-creation patch. Only status and notes may change;
    line items and monetary totals are immutable.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if not payload:
        raise ValidationError("Nothing to update: provide status and/or notes")

    immutable = sorted(k for k in payload if k not in MUTABLE_TRANSACTION_FIELDS)
    if immutable:
        raise ValidationError(
            f"Fields cannot be changed after creation: {', '.join(immutable)}",
            details={"fields": immutable},
        )

    patch: dict = {}
    if "status" in payload:
        status = payload["status"]
        status = str(status).strip().lower() if status is not None else ""
        if status not in TRANSACTION_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(sorted(TRANSACTION_STATUSES))}",
                details={"status": payload["status"]},
            )
        patch["status"] = status
    if "notes" in payload:
        patch["notes"] = _optional_text("notes", payload["notes"], 1000)
    return patch
