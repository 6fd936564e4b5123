"""
Transaction Service - checkout recording and status-driven stock reconciliation

WHY: A checkout touches two owners: the transaction record and the inventory
ledger. They are coordinated here; this module persists no state of its own
beyond the transaction rows.

CHECKOUT (saga):
1. Record the transaction and its line items, commit.
2. Decrement stock once per product, each in its own unit of work.
   A product that cannot be touched is logged and skipped; the sale stands.

REVERSAL (cancel / refund / delete while completed):
- Stock is restored once per product, in the same unit of work as the status
  change (or the delete), guarded by the transaction's version_id.
- A concurrent change to the same transaction raises StaleDataError; the unit
  is retried, re-reads the new prior status and does not compensate twice.

STATE RULES:
- Entering cancelled/refunded from completed/pending compensates.
- Setting a reversal status again, or switching between cancelled and
  refunded, changes no stock (re-refunding is a no-op, not an error).
- Leaving cancelled/refunded is refused: re-opening would need a fresh
  decrement; record a new sale instead.
- pending -> completed has no stock effect (goods left at checkout).
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import or_

from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Transaction, TransactionItem
from ..models.transactions import REVERSAL_STATUSES, STATUS_COMPLETED, TRANSACTION_STATUSES
from ..validation import CheckoutInput, parse_checkout, parse_transaction_patch
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import (
    DIRECTION_DECREMENT,
    DIRECTION_INCREMENT,
    StockAdjustment,
    apply_stock_adjustments,
    quantities_by_product,
)


def _check_totals(checkout: CheckoutInput) -> None:
    """total == subtotal + tax - discount: enforced only when STRICT_TOTALS is set."""
    if checkout.total == checkout.expected_total:
        return
    details = {
        "total": checkout.total,
        "subtotal": checkout.subtotal,
        "tax": checkout.tax,
        "discount": checkout.discount,
        "expected_total": checkout.expected_total,
    }
    if current_app.config.get("STRICT_TOTALS"):
        raise ValidationError("total must equal subtotal + tax - discount", details=details)
    current_app.logger.warning("Checkout total mismatch in store %s: %s", checkout.store_id, details)


def _build_transaction(checkout: CheckoutInput) -> Transaction:
    tx = Transaction(
        store_id=checkout.store_id,
        cashier_id=checkout.cashier_id,
        customer_id=checkout.customer_id,
        subtotal=checkout.subtotal,
        tax=checkout.tax,
        discount=checkout.discount,
        total=checkout.total,
        payment_amount=checkout.payment_amount,
        change_amount=checkout.change_amount,
        payment_method=checkout.payment_method,
        status=checkout.status,
        notes=checkout.notes,
    )
    for position, item in enumerate(checkout.items):
        tx.items.append(
            TransactionItem(
                product_id=item.product_id,
                product_name=item.product_name,
                position=position,
                quantity=item.quantity,
                price=item.price,
                line_total=item.line_total,
            )
        )
    return tx


def create_transaction(data: dict) -> tuple[Transaction, list[StockAdjustment]]:
    """
    Record a checkout and decrement stock for its line items.

    Returns the persisted transaction and one StockAdjustment per product.
    Raises ValidationError on missing/invalid fields (nothing is written).
    """
    checkout = parse_checkout(data)
    _check_totals(checkout)

    def _op():
        tx = _build_transaction(checkout)
        db.session.add(tx)
        db.session.commit()
        return tx

    tx = run_with_retry(_op, description="create transaction")

    adjustments = apply_stock_adjustments(
        tx.store_id,
        quantities_by_product(tx.items),
        direction=DIRECTION_DECREMENT,
        reason=f"checkout {tx.id}",
    )
    skipped = [a.product_id for a in adjustments if not a.applied]
    current_app.logger.info(
        "Recorded transaction %s in store %s: total=%s items=%s skipped_stock=%s",
        tx.id, tx.store_id, tx.total, len(tx.items), skipped,
    )
    return tx, adjustments


def _scoped_query(store_id: int, transaction_id: int):
    return db.session.query(Transaction).filter_by(id=transaction_id, store_id=store_id)


def get_transaction(store_id: int, transaction_id: int) -> Transaction:
    tx = _scoped_query(store_id, transaction_id).first()
    if tx is None:
        raise NotFoundError(
            "Transaction not found",
            details={"store_id": store_id, "transaction_id": transaction_id},
        )
    return tx


def list_transactions(
    store_id: int,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    status: str | None = None,
    payment_method: str | None = None,
    limit: int | None = None,
) -> list[Transaction]:
    """Newest first. Date bounds are inclusive; limit defaults to DEFAULT_LIST_LIMIT."""
    if store_id is None:
        raise ValidationError("store_id is required")

    if limit is None:
        limit = current_app.config["DEFAULT_LIST_LIMIT"]
    if limit <= 0:
        raise ValidationError("limit must be > 0")
    limit = min(limit, current_app.config["MAX_LIST_LIMIT"])

    query = db.session.query(Transaction).filter(Transaction.store_id == store_id)
    if date_from is not None:
        query = query.filter(Transaction.created_at >= date_from)
    if date_to is not None:
        query = query.filter(Transaction.created_at <= date_to)
    if status:
        status = status.lower()
        if status not in TRANSACTION_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(TRANSACTION_STATUSES))}")
        if status == STATUS_COMPLETED:
            query = query.filter(or_(Transaction.status == STATUS_COMPLETED, Transaction.status.is_(None)))
        else:
            query = query.filter(Transaction.status == status)
    if payment_method:
        query = query.filter(Transaction.payment_method == payment_method.lower())

    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()


def _restore_stock(tx: Transaction, reason: str) -> list[StockAdjustment]:
    return apply_stock_adjustments(
        tx.store_id,
        quantities_by_product(tx.items),
        direction=DIRECTION_INCREMENT,
        reason=reason,
        commit=False,
    )


def update_transaction(
    store_id: int, transaction_id: int, patch: dict
) -> tuple[Transaction, list[StockAdjustment]]:
    """
    Change status and/or notes. Other fields are immutable post-creation.

    Returns the transaction and the stock compensations applied (empty unless
    this call is the first transition into cancelled/refunded).
    """
    changes = parse_transaction_patch(patch)

    def _op():
        tx = lock_for_update(_scoped_query(store_id, transaction_id)).first()
        if tx is None:
            raise NotFoundError(
                "Transaction not found",
                details={"store_id": store_id, "transaction_id": transaction_id},
            )

        adjustments: list[StockAdjustment] = []
        if "status" in changes:
            prior = tx.effective_status
            new = changes["status"]
            if prior in REVERSAL_STATUSES and new not in REVERSAL_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot change a {prior} transaction to {new}",
                    details={"from": prior, "to": new},
                )
            if new in REVERSAL_STATUSES and prior in REVERSAL_STATUSES:
                current_app.logger.info(
                    "Transaction %s already reversed (%s); %s changes no stock", tx.id, prior, new
                )
            elif new in REVERSAL_STATUSES:
                adjustments = _restore_stock(tx, reason=f"{new} transaction {tx.id}")
            tx.status = new

        if "notes" in changes:
            tx.notes = changes["notes"]

        db.session.commit()
        return tx, adjustments

    tx, adjustments = run_with_retry(_op, description=f"update transaction {transaction_id}")
    if adjustments:
        current_app.logger.info(
            "Transaction %s set to %s; restored stock for %d product(s)",
            tx.id, tx.status, sum(1 for a in adjustments if a.applied),
        )
    return tx, adjustments


def delete_transaction(store_id: int, transaction_id: int) -> list[StockAdjustment]:
    """
    Hard-delete a transaction.

    A completed (or legacy status-less) transaction has its stock restored
    first, in the same unit of work as the delete. Pending, cancelled and
    refunded transactions are removed without stock changes.
    """
    def _op():
        tx = lock_for_update(_scoped_query(store_id, transaction_id)).first()
        if tx is None:
            raise NotFoundError(
                "Transaction not found",
                details={"store_id": store_id, "transaction_id": transaction_id},
            )

        adjustments: list[StockAdjustment] = []
        if tx.effective_status == STATUS_COMPLETED:
            adjustments = _restore_stock(tx, reason=f"delete transaction {tx.id}")

        db.session.delete(tx)
        db.session.commit()
        return adjustments

    adjustments = run_with_retry(_op, description=f"delete transaction {transaction_id}")
    current_app.logger.info(
        "Deleted transaction %s in store %s; restored stock for %d product(s)",
        transaction_id, store_id, sum(1 for a in adjustments if a.applied),
    )
    return adjustments
