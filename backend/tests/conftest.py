"""
Pytest fixtures for Tamias backend tests.

Provides an in-memory application, a cleared database per test, the Flask
test client, and factories for products and recorded transactions.
"""

from datetime import datetime

import pytest
from tamias import create_app
from tamias.extensions import db
from tamias.models import Product, Transaction, TransactionItem


STORE_A = 1
STORE_B = 2


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
        'STRICT_TOTALS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: create a product with a given stock level."""
    counter = {"n": 0}

    def _make(store_id=STORE_A, stock=5, min_stock=10, name=None, is_active=True, price=1000, category=None):
        counter["n"] += 1
        product = Product(
            store_id=store_id,
            name=name or f"Product {counter['n']}",
            sku=f"SKU-{store_id}-{counter['n']:03d}",
            price=price,
            stock=stock,
            min_stock=min_stock,
            is_active=is_active,
            category=category,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def record_transaction(db_session):
    """
    Factory: insert a transaction row directly (no stock effects).

    Used by reporting tests that need precise timestamps and statuses.
    """
    def _record(
        store_id=STORE_A,
        total=1000,
        tax=0,
        discount=0,
        status="completed",
        payment_method="cash",
        created_at=None,
        items=None,
        customer_id=None,
    ):
        tx = Transaction(
            store_id=store_id,
            subtotal=total - tax + discount,
            tax=tax,
            discount=discount,
            total=total,
            payment_method=payment_method,
            status=status,
            customer_id=customer_id,
            created_at=created_at or datetime(2026, 3, 10, 12, 0, 0),
        )
        for position, (product_id, quantity, price) in enumerate(items or [(999, 1, total)]):
            tx.items.append(TransactionItem(
                product_id=product_id,
                position=position,
                quantity=quantity,
                price=price,
                line_total=quantity * price,
            ))
        db_session.add(tx)
        db_session.commit()
        if status is None:
            # The ORM would apply the column default; legacy rows carry a real NULL
            db_session.execute(
                Transaction.__table__.update().where(Transaction.__table__.c.id == tx.id).values(status=None)
            )
            db_session.commit()
        return tx

    return _record


def checkout_payload(items, /, store_id=STORE_A, **overrides) -> dict:
    """Build a checkout body from (product, quantity) pairs."""
    lines = [
        {"product_id": product.id, "quantity": quantity, "price": product.price, "name": product.name}
        for product, quantity in items
    ]
    subtotal = sum(line["quantity"] * line["price"] for line in lines)
    payload = {
        "store_id": store_id,
        "items": lines,
        "subtotal": subtotal,
        "tax": 0,
        "discount": 0,
        "total": subtotal,
    }
    payload.update(overrides)
    return payload
