from __future__ import annotations

from ..extensions import db
from tamias.time_utils import to_utc_z

DEFAULT_MIN_STOCK = 10


class Product(db.Model):
    """
    Product master data plus its authoritative stock count.

    MULTI-STORE: Products are scoped to stores via store_id. Every ledger
    operation takes the store_id explicitly; a product id from another store
    is treated as not found.

    STOCK: ``stock`` is a mutable on-hand quantity owned by the inventory
    ledger (services/inventory_service.py). It is only ever changed through
    single-statement conditional UPDATEs so concurrent checkouts cannot lose
    decrements. It never goes below zero.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_store_name", "store_id", "name"),
        db.Index("ix_products_store_active", "store_id", "is_active"),
        db.Index("ix_products_store_barcode", "store_id", "barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(120), nullable=True)

    price = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=DEFAULT_MIN_STOCK)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "sku": self.sku,
            "barcode": self.barcode,
            "category": self.category,
            "price": self.price,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
