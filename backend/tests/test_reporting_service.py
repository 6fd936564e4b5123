# Overview: Pytest coverage for sales summaries, dashboard statistics and low-stock reads.

from datetime import date, datetime

import pytest

from tamias.errors import ValidationError
from tamias.services import reporting_service
from tamias.time_utils import utcnow
from tests.conftest import STORE_A, STORE_B


DAY = date(2026, 3, 10)


def at(day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(2026, 3, day, hour, minute)


class TestDailySummary:

    def test_completed_transactions_are_totalled(self, record_transaction):
        record_transaction(total=1000, tax=100, created_at=at(10, 9))
        record_transaction(total=1500, tax=150, created_at=at(10, 15))

        summary = reporting_service.daily_summary(STORE_A, DAY)

        assert summary["date"] == "2026-03-10"
        assert summary["total_transactions"] == 2
        assert summary["total_sales"] == 2500
        assert summary["total_tax"] == 250
        assert summary["total_discount"] == 0

    def test_excludes_other_days_stores_and_reversals(self, record_transaction):
        record_transaction(total=1000, created_at=at(10, 0, 0))
        record_transaction(total=700, created_at=at(9, 23, 59))
        record_transaction(total=800, created_at=at(11, 0, 0))
        record_transaction(total=900, created_at=at(10), store_id=STORE_B)
        record_transaction(total=300, created_at=at(10), status="refunded")
        record_transaction(total=400, created_at=at(10), status="cancelled")
        record_transaction(total=500, created_at=at(10), status="pending")

        summary = reporting_service.daily_summary(STORE_A, DAY)

        assert summary["total_transactions"] == 1
        assert summary["total_sales"] == 1000

    def test_breakdowns_cover_every_transaction_of_the_day(self, record_transaction):
        record_transaction(total=1000, payment_method="cash", created_at=at(10))
        record_transaction(total=2000, payment_method="card", created_at=at(10))
        record_transaction(total=300, payment_method="card", status="refunded", created_at=at(10))

        summary = reporting_service.daily_summary(STORE_A, DAY)

        assert summary["by_payment_method"] == {
            "cash": {"count": 1, "total": 1000},
            "card": {"count": 2, "total": 2300},
        }
        assert summary["by_status"] == {"completed": 2, "refunded": 1}

    def test_status_less_rows_count_as_completed(self, record_transaction):
        record_transaction(total=1000, created_at=at(10))
        record_transaction(total=600, status=None, created_at=at(10))

        summary = reporting_service.daily_summary(STORE_A, "2026-03-10")

        assert summary["total_transactions"] == 2
        assert summary["total_sales"] == 1600
        assert summary["by_status"] == {"completed": 2}

    def test_empty_day(self, db_session):
        summary = reporting_service.daily_summary(STORE_A, DAY)

        assert summary["total_transactions"] == 0
        assert summary["total_sales"] == 0
        assert summary["by_payment_method"] == {}
        assert summary["by_status"] == {}

    def test_defaults_to_today(self, record_transaction):
        record_transaction(total=1000, created_at=utcnow())

        summary = reporting_service.daily_summary(STORE_A)

        assert summary["total_sales"] == 1000

    def test_bad_date(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.daily_summary(STORE_A, "10/03/2026")


class TestRangeSummary:

    def test_average_transaction(self, record_transaction):
        record_transaction(total=1000, created_at=at(2))
        record_transaction(total=2000, created_at=at(3))
        record_transaction(total=4000, created_at=at(4))
        record_transaction(total=9000, created_at=at(4), status="cancelled")

        summary = reporting_service.range_summary(STORE_A, "2026-03-01", "2026-03-05")

        assert summary["total_transactions"] == 3
        assert summary["total_sales"] == 7000
        assert summary["average_transaction"] == 2333
        assert summary["date_from"] == "2026-03-01T00:00:00Z"

    def test_bounds_are_inclusive(self, record_transaction):
        record_transaction(total=1000, created_at=at(5, 0, 0))
        record_transaction(total=2000, created_at=at(6, 12, 0))
        record_transaction(total=4000, created_at=at(6, 12, 1))

        summary = reporting_service.range_summary(
            STORE_A, datetime(2026, 3, 5), datetime(2026, 3, 6, 12, 0)
        )

        assert summary["total_sales"] == 3000

    def test_open_ended(self, record_transaction):
        record_transaction(total=1000, created_at=at(1))
        record_transaction(total=2000, created_at=at(20))

        assert reporting_service.range_summary(STORE_A)["total_sales"] == 3000
        assert reporting_service.range_summary(STORE_A, date_from="2026-03-10")["total_sales"] == 2000

    def test_no_sales_average_is_zero(self, db_session):
        summary = reporting_service.range_summary(STORE_A, "2026-03-01", "2026-03-31")

        assert summary["total_transactions"] == 0
        assert summary["average_transaction"] == 0

    def test_reversed_bounds_rejected(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.range_summary(STORE_A, "2026-03-10", "2026-03-01")

    def test_malformed_bound_rejected(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.range_summary(STORE_A, "yesterday")


class TestPercentChange:

    @pytest.mark.parametrize("current,previous,expected", [
        (2000, 1000, 100.0),
        (500, 1000, -50.0),
        (1000, 1000, 0.0),
        (1000, 0, 100.0),
        (0, 0, 0.0),
        (1, 3, -66.7),
    ])
    def test_percent_change(self, current, previous, expected):
        assert reporting_service.percent_change(current, previous) == expected


class TestDashboardStats:

    def test_today_against_yesterday(self, record_transaction):
        record_transaction(total=1000, created_at=at(10, 9), items=[(1, 2, 500)])
        record_transaction(total=1000, created_at=at(10, 18), items=[(1, 1, 500), (2, 1, 500)])
        record_transaction(total=1000, created_at=at(9, 11), items=[(1, 1, 1000)])
        record_transaction(total=5000, created_at=at(10, 12), status="refunded", items=[(1, 5, 1000)])

        stats = reporting_service.dashboard_stats(STORE_A, DAY)

        assert stats["today_sales"] == 2000
        assert stats["yesterday_sales"] == 1000
        assert stats["sales_change_percent"] == 100.0
        assert stats["today_transactions"] == 2
        assert stats["yesterday_transactions"] == 1
        assert stats["transactions_change"] == 1
        assert stats["transactions_change_percent"] == 100.0
        assert stats["today_items_sold"] == 4
        assert stats["yesterday_items_sold"] == 1
        assert stats["items_change"] == 3
        assert stats["items_change_percent"] == 300.0
        assert stats["average_transaction"] == 1000
        assert stats["yesterday_average_transaction"] == 1000
        assert stats["average_change_percent"] == 0.0

    def test_no_sales_yesterday(self, record_transaction):
        record_transaction(total=1000, created_at=at(10))

        stats = reporting_service.dashboard_stats(STORE_A, DAY)

        assert stats["sales_change_percent"] == 100.0
        assert stats["yesterday_average_transaction"] == 0

    def test_no_sales_at_all(self, db_session):
        stats = reporting_service.dashboard_stats(STORE_A, DAY)

        assert stats["today_sales"] == 0
        assert stats["sales_change_percent"] == 0.0
        assert stats["items_change_percent"] == 0.0

    def test_drop_is_negative(self, record_transaction):
        record_transaction(total=500, created_at=at(10))
        record_transaction(total=1000, created_at=at(9))

        stats = reporting_service.dashboard_stats(STORE_A, DAY)

        assert stats["sales_change_percent"] == -50.0

    def test_product_counts(self, make_product):
        make_product(stock=2, min_stock=10)
        make_product(stock=10, min_stock=10)
        make_product(stock=50, min_stock=10)
        make_product(stock=0, min_stock=10, is_active=False)
        make_product(stock=0, store_id=STORE_B)

        stats = reporting_service.dashboard_stats(STORE_A, DAY)

        assert stats["total_products"] == 3
        assert stats["low_stock_count"] == 2


class TestLowStock:

    def test_sorted_by_stock_and_threshold_inclusive(self, make_product):
        at_threshold = make_product(stock=10, min_stock=10)
        empty = make_product(stock=0, min_stock=5)
        make_product(stock=11, min_stock=10)
        low = make_product(stock=3, min_stock=10)

        result = reporting_service.low_stock(STORE_A)

        assert [p.id for p in result] == [empty.id, low.id, at_threshold.id]

    def test_inactive_and_other_stores_excluded(self, make_product):
        make_product(stock=0, is_active=False)
        make_product(stock=0, store_id=STORE_B)

        assert reporting_service.low_stock(STORE_A) == []

    def test_default_limit_is_five(self, make_product):
        for stock in range(7):
            make_product(stock=stock)

        result = reporting_service.low_stock(STORE_A)

        assert [p.stock for p in result] == [0, 1, 2, 3, 4]


class TestSalesChart:

    def test_zero_filled_oldest_first(self, record_transaction):
        record_transaction(total=1000, created_at=at(10, 8))
        record_transaction(total=500, created_at=at(10, 20))
        record_transaction(total=700, created_at=at(8))
        record_transaction(total=9000, created_at=at(9), status="refunded")

        chart = reporting_service.sales_chart(STORE_A, days=3, today=DAY)

        assert chart == [
            {"date": "2026-03-08", "total_sales": 700, "transactions": 1},
            {"date": "2026-03-09", "total_sales": 0, "transactions": 0},
            {"date": "2026-03-10", "total_sales": 1500, "transactions": 2},
        ]

    def test_default_window_is_a_week(self, db_session):
        chart = reporting_service.sales_chart(STORE_A, today=DAY)

        assert len(chart) == 7
        assert chart[0]["date"] == "2026-03-04"

    @pytest.mark.parametrize("days", [0, -1, 400])
    def test_invalid_window(self, db_session, days):
        with pytest.raises(ValidationError):
            reporting_service.sales_chart(STORE_A, days=days, today=DAY)


class TestTopProducts:

    def test_ranked_by_quantity(self, make_product, record_transaction):
        coffee = make_product(name="Coffee")
        tea = make_product(name="Tea")
        record_transaction(items=[(coffee.id, 3, 200), (tea.id, 1, 150)])
        record_transaction(items=[(tea.id, 5, 150)])
        record_transaction(items=[(coffee.id, 50, 200)], status="refunded")

        result = reporting_service.top_products(STORE_A)

        assert result == [
            {"product_id": tea.id, "name": "Tea", "quantity_sold": 6, "revenue": 900},
            {"product_id": coffee.id, "name": "Coffee", "quantity_sold": 3, "revenue": 600},
        ]

    def test_limit(self, record_transaction):
        record_transaction(items=[(1, 3, 100), (2, 2, 100), (3, 1, 100)])

        result = reporting_service.top_products(STORE_A, limit=2)

        assert [row["product_id"] for row in result] == [1, 2]


class TestRecentTransactions:

    def test_newest_first(self, record_transaction):
        older = record_transaction(created_at=at(9), customer_id=7)
        newer = record_transaction(created_at=at(10), items=[(1, 2, 250), (2, 3, 100)], total=800)
        record_transaction(created_at=at(11), store_id=STORE_B)

        result = reporting_service.recent_transactions(STORE_A)

        assert [row["id"] for row in result] == [newer.id, older.id]
        assert result[0]["items_count"] == 5
        assert result[0]["total"] == 800
        assert result[0]["created_at"] == "2026-03-10T12:00:00Z"
        assert result[1]["customer_id"] == 7

    def test_limit(self, record_transaction):
        for day in range(1, 8):
            record_transaction(created_at=at(day))

        assert len(reporting_service.recent_transactions(STORE_A)) == 5
        assert len(reporting_service.recent_transactions(STORE_A, limit=2)) == 2
