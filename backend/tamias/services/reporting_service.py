# Overview: Service-layer operations for sales summaries and dashboard statistics; read-only.

from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import func, or_

from tamias.errors import ValidationError
from tamias.extensions import db
from tamias.models import Product, Transaction, TransactionItem
from tamias.models.transactions import STATUS_COMPLETED
from tamias.time_utils import day_bounds, parse_iso_date, parse_iso_datetime, to_utc_z, today as utc_today


def _counts_as_sale():
    """Completed transactions, plus legacy rows that never had a status."""
    return or_(Transaction.status == STATUS_COMPLETED, Transaction.status.is_(None))


def _round_half_up(numerator: int, denominator: int) -> int:
    if not denominator:
        return 0
    # nearest integer, half-up (amounts are non-negative)
    return (numerator + denominator // 2) // denominator


def percent_change(current: int | float, previous: int | float) -> float:
    """
    Day-over-day change in percent.

    previous nonzero -> (current - previous) / previous * 100, one decimal
    previous zero    -> 100 if current is nonzero, else 0
    """
    if previous:
        return round((current - previous) / previous * 100, 1)
    return 100.0 if current else 0.0


def _resolve_day(value: str | date | None) -> date:
    try:
        day = parse_iso_date(value)
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD", details={"date": value})
    return day or utc_today()


def _resolve_datetime(name: str, value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime", details={name: value})


def _sales_totals(store_id: int, start: datetime | None, end: datetime | None, *, end_inclusive: bool):
    query = db.session.query(
        func.count(Transaction.id).label("count"),
        func.coalesce(func.sum(Transaction.total), 0).label("sales"),
        func.coalesce(func.sum(Transaction.tax), 0).label("tax"),
        func.coalesce(func.sum(Transaction.discount), 0).label("discount"),
    ).filter(Transaction.store_id == store_id, _counts_as_sale())
    if start is not None:
        query = query.filter(Transaction.created_at >= start)
    if end is not None:
        query = query.filter(Transaction.created_at <= end if end_inclusive else Transaction.created_at < end)
    return query.one()


def _items_sold(store_id: int, start: datetime, end: datetime) -> int:
    value = db.session.query(
        func.coalesce(func.sum(TransactionItem.quantity), 0)
    ).join(Transaction, TransactionItem.transaction_id == Transaction.id).filter(
        Transaction.store_id == store_id,
        _counts_as_sale(),
        Transaction.created_at >= start,
        Transaction.created_at < end,
    ).scalar()
    return int(value or 0)


def daily_summary(store_id: int, day: str | date | None = None) -> dict:
    """
    Sales summary for one UTC day.

    Totals cover completed (or status-less) transactions; the payment method
    and status breakdowns cover every transaction recorded that day.
    """
    target = _resolve_day(day)
    start, end = day_bounds(target)

    totals = _sales_totals(store_id, start, end, end_inclusive=False)

    in_day = (
        Transaction.store_id == store_id,
        Transaction.created_at >= start,
        Transaction.created_at < end,
    )
    by_payment_method = {
        row.payment_method: {"count": int(row.count), "total": int(row.total or 0)}
        for row in db.session.query(
            Transaction.payment_method.label("payment_method"),
            func.count(Transaction.id).label("count"),
            func.coalesce(func.sum(Transaction.total), 0).label("total"),
        ).filter(*in_day).group_by(Transaction.payment_method).all()
    }
    by_status: dict[str, int] = {}
    for row in db.session.query(
        Transaction.status.label("status"),
        func.count(Transaction.id).label("count"),
    ).filter(*in_day).group_by(Transaction.status).all():
        key = row.status or STATUS_COMPLETED
        by_status[key] = by_status.get(key, 0) + int(row.count)

    return {
        "store_id": store_id,
        "date": target.isoformat(),
        "total_transactions": int(totals.count),
        "total_sales": int(totals.sales),
        "total_tax": int(totals.tax),
        "total_discount": int(totals.discount),
        "by_payment_method": by_payment_method,
        "by_status": by_status,
    }


def range_summary(
    store_id: int,
    date_from: str | datetime | None = None,
    date_to: str | datetime | None = None,
) -> dict:
    """Completed-sales totals between inclusive bounds, with the rounded average ticket."""
    start = _resolve_datetime("date_from", date_from)
    end = _resolve_datetime("date_to", date_to)
    if start is not None and end is not None and start > end:
        raise ValidationError("date_from must not be after date_to")

    totals = _sales_totals(store_id, start, end, end_inclusive=True)
    count = int(totals.count)
    sales = int(totals.sales)

    return {
        "store_id": store_id,
        "date_from": to_utc_z(start),
        "date_to": to_utc_z(end),
        "total_transactions": count,
        "total_sales": sales,
        "total_tax": int(totals.tax),
        "total_discount": int(totals.discount),
        "average_transaction": _round_half_up(sales, count),
    }


def low_stock(store_id: int, limit: int = 5) -> list[Product]:
    """Active products at or below their reorder threshold, lowest stock first."""
    if limit <= 0:
        raise ValidationError("limit must be > 0")
    return db.session.query(Product).filter(
        Product.store_id == store_id,
        Product.is_active.is_(True),
        Product.stock <= Product.min_stock,
    ).order_by(Product.stock.asc(), Product.id.asc()).limit(limit).all()


def _low_stock_count(store_id: int) -> int:
    return db.session.query(func.count(Product.id)).filter(
        Product.store_id == store_id,
        Product.is_active.is_(True),
        Product.stock <= Product.min_stock,
    ).scalar() or 0


def _day_metrics(store_id: int, day: date) -> dict:
    start, end = day_bounds(day)
    totals = _sales_totals(store_id, start, end, end_inclusive=False)
    count = int(totals.count)
    sales = int(totals.sales)
    return {
        "sales": sales,
        "transactions": count,
        "items_sold": _items_sold(store_id, start, end),
        "average": _round_half_up(sales, count),
    }


def dashboard_stats(store_id: int, today: str | date | None = None) -> dict:
    """Today against yesterday: sales, transaction count, items sold, average ticket."""
    day = _resolve_day(today)
    current = _day_metrics(store_id, day)
    previous = _day_metrics(store_id, day - timedelta(days=1))

    total_products = db.session.query(func.count(Product.id)).filter(
        Product.store_id == store_id,
        Product.is_active.is_(True),
    ).scalar() or 0

    return {
        "store_id": store_id,
        "date": day.isoformat(),
        "today_sales": current["sales"],
        "yesterday_sales": previous["sales"],
        "sales_change_percent": percent_change(current["sales"], previous["sales"]),
        "today_transactions": current["transactions"],
        "yesterday_transactions": previous["transactions"],
        "transactions_change": current["transactions"] - previous["transactions"],
        "transactions_change_percent": percent_change(current["transactions"], previous["transactions"]),
        "today_items_sold": current["items_sold"],
        "yesterday_items_sold": previous["items_sold"],
        "items_change": current["items_sold"] - previous["items_sold"],
        "items_change_percent": percent_change(current["items_sold"], previous["items_sold"]),
        "average_transaction": current["average"],
        "yesterday_average_transaction": previous["average"],
        "average_change_percent": percent_change(current["average"], previous["average"]),
        "total_products": int(total_products),
        "low_stock_count": int(_low_stock_count(store_id)),
    }


def sales_chart(store_id: int, days: int = 7, today: str | date | None = None) -> list[dict]:
    """One row per day for the last ``days`` days (oldest first), zero-filled."""
    if days <= 0 or days > 366:
        raise ValidationError("days must be between 1 and 366")
    last_day = _resolve_day(today)
    first_day = last_day - timedelta(days=days - 1)
    start, _ = day_bounds(first_day)
    _, end = day_bounds(last_day)

    day_expr = func.date(Transaction.created_at)
    rows = db.session.query(
        day_expr.label("day"),
        func.count(Transaction.id).label("transactions"),
        func.coalesce(func.sum(Transaction.total), 0).label("total_sales"),
    ).filter(
        Transaction.store_id == store_id,
        _counts_as_sale(),
        Transaction.created_at >= start,
        Transaction.created_at < end,
    ).group_by(day_expr).all()

    by_day = {str(row.day)[:10]: row for row in rows}
    chart = []
    for offset in range(days):
        key = (first_day + timedelta(days=offset)).isoformat()
        row = by_day.get(key)
        chart.append({
            "date": key,
            "total_sales": int(row.total_sales) if row else 0,
            "transactions": int(row.transactions) if row else 0,
        })
    return chart


def top_products(store_id: int, limit: int = 5) -> list[dict]:
    """Best sellers by quantity over completed transactions."""
    if limit <= 0:
        raise ValidationError("limit must be > 0")

    quantity_sold = func.sum(TransactionItem.quantity)
    rows = db.session.query(
        TransactionItem.product_id.label("product_id"),
        func.max(TransactionItem.product_name).label("snapshot_name"),
        quantity_sold.label("quantity_sold"),
        func.coalesce(func.sum(TransactionItem.line_total), 0).label("revenue"),
    ).join(Transaction, TransactionItem.transaction_id == Transaction.id).filter(
        Transaction.store_id == store_id,
        _counts_as_sale(),
    ).group_by(TransactionItem.product_id).order_by(
        quantity_sold.desc(), TransactionItem.product_id.asc()
    ).limit(limit).all()

    product_ids = [row.product_id for row in rows]
    names = {}
    if product_ids:
        names = dict(
            db.session.query(Product.id, Product.name).filter(
                Product.store_id == store_id,
                Product.id.in_(product_ids),
            ).all()
        )

    return [
        {
            "product_id": row.product_id,
            "name": names.get(row.product_id) or row.snapshot_name,
            "quantity_sold": int(row.quantity_sold or 0),
            "revenue": int(row.revenue or 0),
        }
        for row in rows
    ]


def recent_transactions(store_id: int, limit: int = 5) -> list[dict]:
    if limit <= 0:
        raise ValidationError("limit must be > 0")
    transactions = db.session.query(Transaction).filter(
        Transaction.store_id == store_id,
    ).order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()

    return [
        {
            "id": tx.id,
            "customer_id": tx.customer_id,
            "items_count": tx.items_count,
            "total": tx.total,
            "status": tx.effective_status,
            "payment_method": tx.payment_method,
            "created_at": to_utc_z(tx.created_at),
        }
        for tx in transactions
    ]
