# Overview: Service-layer operations for the home dashboard; read-only KPI queries.

from __future__ import annotations

import calendar
from datetime import datetime, time, timedelta

from flask import current_app
from sqlalchemy import func

from medtory.extensions import db
from medtory.models import InventoryBatch, Product, ProductCategory, Sale, SaleLineItem
from medtory.time_utils import today, to_iso_date

PERIODS = ("7days", "30days", "thisyear")


def _completed_total_since(since: datetime) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Sale.total_amount_cents), 0))
        .filter(Sale.status == Sale.STATUS_COMPLETED, Sale.sales_date >= since)
        .scalar()
    )
    return int(total or 0)


def kpis() -> dict:
    """Today's takings, stock value, low-stock and near-expiry batch counts."""
    cfg = current_app.config
    day = today()
    horizon = day + timedelta(days=cfg["NEAR_EXPIRY_DAYS"])

    stock_value = db.session.query(
        func.coalesce(func.sum(InventoryBatch.cost_price_cents * InventoryBatch.quantity), 0)
    ).scalar()
    low_stock = db.session.query(func.count(InventoryBatch.id)).filter(
        InventoryBatch.quantity <= cfg["LOW_STOCK_THRESHOLD"]
    ).scalar()
    near_expiry = db.session.query(func.count(InventoryBatch.id)).filter(
        InventoryBatch.expiry_date >= day, InventoryBatch.expiry_date <= horizon
    ).scalar()

    return {
        "daily_sales_cents": _completed_total_since(datetime.combine(day, time.min)),
        "total_stock_value_cents": int(stock_value or 0),
        "low_stock_count": int(low_stock or 0),
        "near_expiry_count": int(near_expiry or 0),
    }


def proactive_alerts(limit: int = 10) -> list[dict]:
    """
    Batches that are low on stock or about to expire, soonest expiry first.

    alert_type: "CRITICAL: BOTH" | "Low Stock" | "Near Expiry"
    urgency: "Critical" when the batch is empty or already expired, else "Warning"
    """
    cfg = current_app.config
    low_stock = cfg["LOW_STOCK_THRESHOLD"]
    day = today()
    horizon = day + timedelta(days=cfg["NEAR_EXPIRY_DAYS"])

    batches = (
        db.session.query(InventoryBatch)
        .join(Product, InventoryBatch.product_id == Product.id)
        .filter(db.or_(
            InventoryBatch.quantity <= low_stock,
            db.and_(InventoryBatch.expiry_date <= horizon, InventoryBatch.expiry_date >= day),
        ))
        .order_by(InventoryBatch.expiry_date.asc(), InventoryBatch.id.asc())
        .limit(limit)
        .all()
    )

    alerts = []
    for batch in batches:
        is_low = batch.quantity <= low_stock
        if is_low and batch.expiry_date <= horizon:
            alert_type = "CRITICAL: BOTH"
        elif is_low:
            alert_type = "Low Stock"
        else:
            alert_type = "Near Expiry"
        alerts.append({
            "product_id": batch.product_id,
            "product_name": batch.product.name,
            "batch_number": batch.batch_number,
            "quantity": batch.quantity,
            "expiry_date": to_iso_date(batch.expiry_date),
            "days_left": (batch.expiry_date - day).days,
            "alert_type": alert_type,
            "urgency": "Critical" if batch.quantity == 0 or batch.expiry_date <= day else "Warning",
        })
    return alerts


def recent_transactions(limit: int = 8) -> list[dict]:
    sales = db.session.query(Sale).order_by(Sale.sales_date.desc(), Sale.id.desc()).limit(limit).all()
    return [sale.to_dict() for sale in sales]


def sales_chart(period: str) -> tuple[dict, datetime]:
    """
    Bar chart data (cents) and the window start it covers.

    7days / 30days: one bar per day ending today. thisyear: one bar per month.
    Unknown periods fall back to 7days.
    """
    day = today()

    if period == "thisyear":
        start = datetime(day.year, 1, 1)
        sales = db.session.query(Sale.sales_date, Sale.total_amount_cents).filter(
            Sale.status == Sale.STATUS_COMPLETED, Sale.sales_date >= start
        ).all()
        data = [0] * 12
        for sales_date, total in sales:
            data[sales_date.month - 1] += total
        labels = [calendar.month_abbr[m] for m in range(1, 13)]
        return {"labels": labels, "data": data}, start

    days = 30 if period == "30days" else 7
    first_day = day - timedelta(days=days - 1)
    start = datetime.combine(first_day, time.min)
    sales = db.session.query(Sale.sales_date, Sale.total_amount_cents).filter(
        Sale.status == Sale.STATUS_COMPLETED, Sale.sales_date >= start
    ).all()

    by_day: dict = {}
    for sales_date, total in sales:
        by_day[sales_date.date()] = by_day.get(sales_date.date(), 0) + total

    labels, data = [], []
    for offset in range(days):
        d = first_day + timedelta(days=offset)
        labels.append(d.strftime("%b %d"))
        data.append(by_day.get(d, 0))
    return {"labels": labels, "data": data}, start


def top_categories(since: datetime, limit: int = 5) -> dict:
    """Categories ranked by units sold in completed sales since `since`."""
    qty = func.sum(SaleLineItem.quantity_sold)
    rows = (
        db.session.query(ProductCategory.category_name, qty.label("quantity"))
        .select_from(SaleLineItem)
        .join(Sale, SaleLineItem.sale_id == Sale.id)
        .join(Product, SaleLineItem.product_id == Product.id)
        .join(ProductCategory, Product.category_id == ProductCategory.id)
        .filter(Sale.status == Sale.STATUS_COMPLETED, Sale.sales_date >= since)
        .group_by(ProductCategory.category_name)
        .order_by(qty.desc(), ProductCategory.category_name.asc())
        .limit(limit)
        .all()
    )
    return {"labels": [name for name, _ in rows], "data": [int(q) for _, q in rows]}


def build_dashboard(period: str = "7days") -> dict:
    if period not in PERIODS:
        period = "7days"
    chart, since = sales_chart(period)
    return {
        "period": period,
        "kpis": kpis(),
        "alerts": proactive_alerts(),
        "recent_transactions": recent_transactions(),
        "sales_chart": chart,
        "top_categories": top_categories(since),
    }
