from __future__ import annotations

from ..extensions import db
from tamias.time_utils import to_utc_z, utcnow

STATUS_COMPLETED = "completed"
STATUS_PENDING = "pending"
STATUS_CANCELLED = "cancelled"
STATUS_REFUNDED = "refunded"

TRANSACTION_STATUSES = frozenset({STATUS_COMPLETED, STATUS_PENDING, STATUS_CANCELLED, STATUS_REFUNDED})

# Statuses a checkout may be recorded with
CREATION_STATUSES = frozenset({STATUS_COMPLETED, STATUS_PENDING})

# Entering one of these restores stock for every line item
REVERSAL_STATUSES = frozenset({STATUS_CANCELLED, STATUS_REFUNDED})

DEFAULT_PAYMENT_METHOD = "cash"


class Transaction(db.Model):
    """
    Checkout record.

    Line items and monetary fields are immutable once created; only status and
    notes change afterwards. Status changes are guarded by ``version_id`` so a
    reversal can only be observed (and compensated) once.

    A NULL status comes from legacy/imported rows and counts as completed.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_store_created", "store_id", "created_at"),
        db.Index("ix_transactions_store_status_created", "store_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    cashier_id = db.Column(db.Integer, nullable=True, index=True)
    customer_id = db.Column(db.Integer, nullable=True, index=True)

    # Amounts in the store currency's minor unit
    subtotal = db.Column(db.Integer, nullable=False, default=0)
    tax = db.Column(db.Integer, nullable=False, default=0)
    discount = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False)
    payment_amount = db.Column(db.Integer, nullable=True)
    change_amount = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False, default=DEFAULT_PAYMENT_METHOD, index=True)
    status = db.Column(db.String(16), nullable=True, default=STATUS_COMPLETED)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "TransactionItem",
        back_populates="transaction",
        order_by="TransactionItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def effective_status(self) -> str:
        return self.status or STATUS_COMPLETED

    @property
    def items_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} store_id={self.store_id} status={self.status!r} total={self.total}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "cashier_id": self.cashier_id,
            "customer_id": self.customer_id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "discount": self.discount,
            "total": self.total,
            "payment_amount": self.payment_amount,
            "change_amount": self.change_amount,
            "payment_method": self.payment_method,
            "status": self.effective_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class TransactionItem(db.Model):
    """Line item embedded in a transaction. Unit price is a snapshot at sale time."""
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Not a foreign key: products may be removed while history remains
    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=True)

    position = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False, default=0)
    line_total = db.Column(db.Integer, nullable=False, default=0)

    transaction = db.relationship("Transaction", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
            "line_total": self.line_total,
        }
