# Overview: Service-layer operations for the inventory ledger; owns per-product stock counts.

# backend/tamias/services/inventory_service.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app
from sqlalchemy import case, update

from ..errors import NotFoundError, StorageError, ValidationError
from ..extensions import db
from ..models import Product
from .concurrency import run_with_retry
"""
Tamias Inventory Ledger Invariants (authoritative)

Stock model:
- Product.stock is the authoritative on-hand count for a (store, product).
- stock >= 0 at all times. Decrements floor at zero instead of failing:
  overselling is logged, never blocked.

Atomicity:
- Every change is ONE conditional UPDATE evaluated by the database
  (stock = CASE WHEN stock > q THEN stock - q ELSE 0 END). There is never a
  read-then-write pair, so concurrent checkouts cannot lose decrements.

Scoping:
- Every operation takes store_id explicitly. A product id that belongs to
  another store is NotFound.

Compensation:
- increment_stock is the compensating action for a prior decrement.
- apply_stock_adjustments issues one command per product; failures on one
  product are logged and skipped so the rest still apply.
"""

DIRECTION_DECREMENT = "decrement"
DIRECTION_INCREMENT = "increment"


@dataclass(frozen=True)
class StockAdjustment:
    """Outcome of one ledger command issued on behalf of a transaction."""
    product_id: int
    delta: int
    applied: bool
    stock: int | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "delta": self.delta,
            "applied": self.applied,
            "stock": self.stock,
            "error": self.error,
        }


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0", details={"quantity": quantity})
    return quantity


def _scoped(store_id: int, product_id: int):
    return (Product.id == product_id, Product.store_id == store_id)


def _read_stock(store_id: int, product_id: int) -> int | None:
    return db.session.query(Product.stock).filter(*_scoped(store_id, product_id)).scalar()


def _apply_stock_expression(store_id: int, product_id: int, new_stock) -> int:
    """
    Run one atomic UPDATE and return the resulting stock. No commit.

    The new value comes back through RETURNING when the dialect has it; the
    fallback re-reads inside the same transaction.
    """
    products = Product.__table__
    stmt = (
        update(products)
        .where(products.c.id == product_id, products.c.store_id == store_id)
        .values(stock=new_stock)
    )
    not_found = NotFoundError(
        "Product not found",
        details={"store_id": store_id, "product_id": product_id},
    )

    if db.session.get_bind().dialect.update_returning:
        row = db.session.execute(stmt.returning(products.c.stock)).first()
        if row is None:
            raise not_found
        return int(row.stock)

    if db.session.execute(stmt).rowcount == 0:
        raise not_found
    return int(_read_stock(store_id, product_id))


def _decrement_inner(store_id: int, product_id: int, quantity: int) -> int:
    new_stock = _apply_stock_expression(
        store_id,
        product_id,
        case((Product.stock > quantity, Product.stock - quantity), else_=0),
    )
    if new_stock == 0:
        current_app.logger.warning(
            "Stock for product %s in store %s reached zero after decrement of %s",
            product_id, store_id, quantity,
        )
    return new_stock


def _increment_inner(store_id: int, product_id: int, quantity: int) -> int:
    return _apply_stock_expression(store_id, product_id, Product.stock + quantity)


def get_product(store_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter(*_scoped(store_id, product_id)).first()
    if product is None:
        raise NotFoundError(
            "Product not found",
            details={"store_id": store_id, "product_id": product_id},
        )
    return product


def get_stock(store_id: int, product_id: int) -> int:
    """Current on-hand quantity. Raises NotFoundError when the product is not in the store."""
    stock = _read_stock(store_id, product_id)
    if stock is None:
        raise NotFoundError(
            "Product not found",
            details={"store_id": store_id, "product_id": product_id},
        )
    return int(stock)


def decrement_stock(store_id: int, product_id: int, quantity: int, *, commit: bool = True) -> int:
    """
    Reduce stock by ``quantity``, floored at zero. Returns the new stock.

    commit=False runs inside the caller's unit of work (no retry, no commit).
    """
    quantity = _validate_quantity(quantity)
    if not commit:
        return _decrement_inner(store_id, product_id, quantity)

    def _op():
        stock = _decrement_inner(store_id, product_id, quantity)
        db.session.commit()
        return stock

    return run_with_retry(_op, description=f"decrement stock of product {product_id}")


def increment_stock(store_id: int, product_id: int, quantity: int, *, commit: bool = True) -> int:
    """Raise stock by ``quantity`` unconditionally. Returns the new stock."""
    quantity = _validate_quantity(quantity)
    if not commit:
        return _increment_inner(store_id, product_id, quantity)

    def _op():
        stock = _increment_inner(store_id, product_id, quantity)
        db.session.commit()
        return stock

    return run_with_retry(_op, description=f"increment stock of product {product_id}")


def quantities_by_product(items: Iterable) -> dict[int, int]:
    """
    Sum line-item quantities per product, keeping first-seen order.

    One ledger command per (transaction, product) pair.
    """
    totals: dict[int, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def apply_stock_adjustments(
    store_id: int,
    quantities: dict[int, int],
    *,
    direction: str,
    reason: str,
    commit: bool = True,
) -> list[StockAdjustment]:
    """
    Issue one ledger command per product and report the outcome of each.

    A product that no longer exists (or, when commit=True, whose own update
    fails in storage) is logged and skipped; the remaining products are still
    adjusted. Nothing here raises for a single item.
    """
    if direction == DIRECTION_DECREMENT:
        command, sign = decrement_stock, -1
    elif direction == DIRECTION_INCREMENT:
        command, sign = increment_stock, 1
    else:
        raise ValueError(f"unknown stock direction: {direction}")

    results: list[StockAdjustment] = []
    for product_id, quantity in quantities.items():
        try:
            stock = command(store_id, product_id, quantity, commit=commit)
        except (NotFoundError, StorageError) as exc:
            current_app.logger.warning(
                "Skipped stock %s for product %s in store %s (%s): %s",
                direction, product_id, store_id, reason, exc,
            )
            results.append(StockAdjustment(product_id=product_id, delta=sign * quantity, applied=False, error=str(exc)))
            continue
        results.append(StockAdjustment(product_id=product_id, delta=sign * quantity, applied=True, stock=stock))
    return results
