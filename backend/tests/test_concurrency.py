# Overview: Threaded tests for the ledger and reversal paths against a file-backed database.

"""
Each worker thread pushes its own app context and therefore gets its own
session and connection. An in-memory database shares one connection, so
these tests run on a SQLite file instead.
"""

import threading

import pytest

from tamias import create_app
from tamias.errors import NotFoundError
from tamias.extensions import db
from tamias.models import Product
from tamias.services import inventory_service, transaction_service
from tests.conftest import STORE_A, checkout_payload


WORKERS = 8


@pytest.fixture(scope='module')
def file_app(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("concurrency") / "tamias.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'SQLALCHEMY_ENGINE_OPTIONS': {"connect_args": {"timeout": 30, "check_same_thread": False}},
        'LOG_LEVEL': 'DEBUG',
        'STRICT_TOTALS': False,
    })
    with app.app_context():
        db.create_all()
    return app


@pytest.fixture
def seed_product(file_app):
    def _seed(stock):
        with file_app.app_context():
            product = Product(store_id=STORE_A, name="Shared shelf", price=500, stock=stock)
            db.session.add(product)
            db.session.commit()
            return product.id
    return _seed


def run_concurrently(app, work, args_list):
    """Start one thread per args tuple behind a barrier; return (results, errors)."""
    barrier = threading.Barrier(len(args_list))
    results = []
    errors = []
    lock = threading.Lock()

    def worker(*args):
        with app.app_context():
            try:
                barrier.wait()
                result = work(*args)
                with lock:
                    results.append(result)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=args) for args in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


class TestConcurrentDecrements:

    def test_no_decrement_is_lost(self, file_app, seed_product):
        product_id = seed_product(100)
        quantities = [(STORE_A, product_id, q) for q in (3, 5, 7, 2, 4, 6, 1, 8)]

        results, errors = run_concurrently(file_app, inventory_service.decrement_stock, quantities)

        assert errors == []
        assert len(results) == len(quantities)
        with file_app.app_context():
            assert inventory_service.get_stock(STORE_A, product_id) == 100 - 36

    def test_oversell_floors_at_zero(self, file_app, seed_product):
        product_id = seed_product(10)
        quantities = [(STORE_A, product_id, 3)] * WORKERS

        results, errors = run_concurrently(file_app, inventory_service.decrement_stock, quantities)

        assert errors == []
        assert all(stock >= 0 for stock in results)
        with file_app.app_context():
            assert inventory_service.get_stock(STORE_A, product_id) == max(0, 10 - 3 * WORKERS)


class TestConcurrentReversal:

    def test_refund_credits_stock_once(self, file_app, seed_product):
        product_id = seed_product(10)
        with file_app.app_context():
            product = db.session.get(Product, product_id)
            tx, _ = transaction_service.create_transaction(checkout_payload([(product, 4)]))
            tx_id = tx.id
            assert inventory_service.get_stock(STORE_A, product_id) == 6

        def refund(store_id, transaction_id):
            _, adjustments = transaction_service.update_transaction(
                store_id, transaction_id, {"status": "refunded"}
            )
            return sum(a.delta for a in adjustments if a.applied)

        results, errors = run_concurrently(file_app, refund, [(STORE_A, tx_id)] * 2)

        assert errors == []
        assert sorted(results) == [0, 4]
        with file_app.app_context():
            assert inventory_service.get_stock(STORE_A, product_id) == 10
            assert transaction_service.get_transaction(STORE_A, tx_id).status == "refunded"

    def test_refund_and_delete_credit_stock_once(self, file_app, seed_product):
        product_id = seed_product(10)
        with file_app.app_context():
            product = db.session.get(Product, product_id)
            tx, _ = transaction_service.create_transaction(checkout_payload([(product, 4)]))
            tx_id = tx.id

        def refund():
            _, adjustments = transaction_service.update_transaction(STORE_A, tx_id, {"status": "refunded"})
            return sum(a.delta for a in adjustments if a.applied)

        def delete():
            adjustments = transaction_service.delete_transaction(STORE_A, tx_id)
            return sum(a.delta for a in adjustments if a.applied)

        results, errors = run_concurrently(file_app, lambda action: action(), [(refund,), (delete,)])

        # The loser either sees the reversal (no credit) or finds the row gone
        assert sum(results) == 4
        assert len(results) + len(errors) == 2
        assert all(isinstance(exc, NotFoundError) for exc in errors)
        with file_app.app_context():
            assert inventory_service.get_stock(STORE_A, product_id) == 10
