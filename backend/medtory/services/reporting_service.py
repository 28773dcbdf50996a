# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Read-only report projections over sales, batches, voids and item logs.

Money figures are integer cents. Cost-derived figures (cost of goods, gross
profit, stock asset value, loss value, net profit) are only filled in when
the caller may see financials; otherwise they are None.

Cost basis for a product is the cost price of its most recently updated
batch, applied to every unit sold or written off in the range.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date

from flask import current_app

from medtory.extensions import db
from medtory.models import (
    InventoryBatch,
    ItemLog,
    Product,
    Sale,
    SaleLineItem,
    VoidRecord,
)
from medtory.services.inventory_service import current_cost_price_cents
from medtory.time_utils import day_bounds, today, utcnow, to_utc_z


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


GROUPINGS = ("day", "month")
INVENTORY_STATUSES = ("Expired", "Low Stock", "Good")


def default_range(on: date | None = None) -> tuple[date, date]:
    """First of the current month through today."""
    day = on or today()
    return day.replace(day=1), day


def _resolve_range(start: date | None, end: date | None) -> tuple[date, date]:
    default_start, default_end = default_range()
    start = start or default_start
    end = end or default_end
    if start > end:
        raise ReportError("start must be on or before end")
    return start, end


def _completed_lines(start: date, end: date, search: str | None = None) -> list[SaleLineItem]:
    lower, upper = day_bounds(start, end)
    query = (
        db.session.query(SaleLineItem)
        .join(Sale, SaleLineItem.sale_id == Sale.id)
        .filter(
            Sale.status == Sale.STATUS_COMPLETED,
            Sale.sales_date >= lower,
            Sale.sales_date < upper,
        )
    )
    if search:
        query = query.join(Product, SaleLineItem.product_id == Product.id).filter(
            Product.name.ilike(f"%{search.strip()}%")
        )
    return query.order_by(Sale.sales_date.desc(), SaleLineItem.id.asc()).all()


def _cost_cache():
    cache: dict[int, int] = {}

    def cost_of(product_id: int) -> int:
        if product_id not in cache:
            cache[product_id] = current_cost_price_cents(product_id)
        return cache[product_id]

    return cost_of


def sales_rows(lines: list[SaleLineItem]) -> list[dict]:
    rows = []
    for line in lines:
        sale = line.sale
        product = line.product
        rows.append({
            "date": to_utc_z(sale.sales_date),
            "sale_id": sale.id,
            "product_id": line.product_id,
            "product_name": product.name if product else None,
            "category_name": product.category.category_name if product and product.category else None,
            "quantity": line.quantity_sold,
            "price_cents": line.price_cents,
            "gross_cents": line.gross_cents,
            "discount_cents": line.discount_cents,
            "total_cents": line.line_total_cents,
            "cashier_name": sale.employee.employee_name if sale.employee else None,
        })
    return rows


def inventory_rows(*, show_financials: bool, status: str | None = None) -> tuple[list[dict], int | None]:
    """
    Batches still on the shelf, soonest expiry first, plus total asset value.

    `status` narrows the rows only; the asset value always covers every batch.
    """
    low_stock = current_app.config["LOW_STOCK_THRESHOLD"]
    day = today()

    batches = (
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.quantity > 0)
        .order_by(InventoryBatch.expiry_date.asc(), InventoryBatch.id.asc())
        .all()
    )

    rows = []
    asset_value = 0
    for batch in batches:
        if batch.expiry_date <= day:
            batch_status = "Expired"
        elif batch.quantity < low_stock:
            batch_status = "Low Stock"
        else:
            batch_status = "Good"
        value = batch.quantity * batch.cost_price_cents
        asset_value += value
        if status and batch_status != status:
            continue
        rows.append({
            "batch_id": batch.id,
            "product_id": batch.product_id,
            "product_name": batch.product.name if batch.product else None,
            "batch_number": batch.batch_number,
            "expiry_date": batch.expiry_date.isoformat(),
            "quantity": batch.quantity,
            "days_until_expiry": (batch.expiry_date - day).days,
            "status": batch_status,
            "cost_value_cents": value if show_financials else None,
        })
    return rows, (asset_value if show_financials else None)


def profitability_rows(lines: list[SaleLineItem], *, show_financials: bool, cost_of) -> list[dict]:
    grouped: "OrderedDict[int, dict]" = OrderedDict()
    for line in lines:
        row = grouped.setdefault(line.product_id, {
            "product_id": line.product_id,
            "product_name": line.product.name if line.product else None,
            "quantity_sold": 0,
            "revenue_cents": 0,
        })
        row["quantity_sold"] += line.quantity_sold
        row["revenue_cents"] += line.line_total_cents

    rows = []
    for row in grouped.values():
        if show_financials:
            cost = cost_of(row["product_id"]) * row["quantity_sold"]
            profit = row["revenue_cents"] - cost
            margin = round(profit * 100.0 / row["revenue_cents"], 2) if row["revenue_cents"] else None
        else:
            cost = profit = margin = None
        row.update({"cost_cents": cost, "profit_cents": profit, "margin_pct": margin})
        rows.append(row)

    if show_financials:
        rows.sort(key=lambda r: r["profit_cents"], reverse=True)
    else:
        rows.sort(key=lambda r: r["revenue_cents"], reverse=True)
    return rows


def void_rows(start: date, end: date) -> list[dict]:
    lower, upper = day_bounds(start, end)
    voids = (
        db.session.query(VoidRecord)
        .filter(VoidRecord.voided_at >= lower, VoidRecord.voided_at < upper)
        .order_by(VoidRecord.voided_at.desc(), VoidRecord.id.desc())
        .all()
    )
    return [v.to_dict() for v in voids]


def sales_trend(lines: list[SaleLineItem], group_by: str) -> list[dict]:
    """Completed sales bucketed per day (YYYY-MM-DD) or month (YYYY-MM), oldest first."""
    if group_by not in GROUPINGS:
        raise ReportError("group_by must be day or month")
    fmt = "%Y-%m-%d" if group_by == "day" else "%Y-%m"

    buckets: dict[str, dict] = {}
    for line in lines:
        period = line.sale.sales_date.strftime(fmt)
        bucket = buckets.setdefault(period, {"period": period, "sale_ids": set(), "items_sold": 0, "revenue_cents": 0})
        bucket["sale_ids"].add(line.sale_id)
        bucket["items_sold"] += line.quantity_sold
        bucket["revenue_cents"] += line.line_total_cents

    return [
        {
            "period": b["period"],
            "sales_count": len(b["sale_ids"]),
            "items_sold": b["items_sold"],
            "revenue_cents": b["revenue_cents"],
        }
        for _, b in sorted(buckets.items())
    ]


def sales_by_category(lines: list[SaleLineItem]) -> list[dict]:
    totals: dict[str, dict] = {}
    for line in lines:
        product = line.product
        name = product.category.category_name if product and product.category else "Uncategorized"
        row = totals.setdefault(name, {"category_name": name, "quantity_sold": 0, "revenue_cents": 0})
        row["quantity_sold"] += line.quantity_sold
        row["revenue_cents"] += line.line_total_cents
    return sorted(totals.values(), key=lambda r: (-r["quantity_sold"], r["category_name"]))


def loss_rows(start: date, end: date, *, show_financials: bool, cost_of) -> tuple[list[dict], int | None]:
    """Stock written off ("Removed" item logs) in range, valued at the latest batch cost."""
    lower, upper = day_bounds(start, end)
    logs = (
        db.session.query(ItemLog)
        .filter(
            ItemLog.action == ItemLog.ACTION_REMOVED,
            ItemLog.logged_at >= lower,
            ItemLog.logged_at < upper,
        )
        .order_by(ItemLog.logged_at.desc(), ItemLog.id.desc())
        .all()
    )

    rows = []
    total = 0
    for log in logs:
        value = cost_of(log.product_id) * log.quantity
        total += value
        row = log.to_dict()
        row["loss_value_cents"] = value if show_financials else None
        rows.append(row)
    return rows, (total if show_financials else None)


def build_report(
    *,
    start: date | None = None,
    end: date | None = None,
    group_by: str = "day",
    show_financials: bool = False,
    search: str | None = None,
    inventory_status: str | None = None,
) -> dict:
    """All report tabs for one date range in a single payload."""
    if group_by not in GROUPINGS:
        raise ReportError("group_by must be day or month")
    if inventory_status and inventory_status not in INVENTORY_STATUSES:
        raise ReportError(f"status must be one of: {', '.join(INVENTORY_STATUSES)}")
    start, end = _resolve_range(start, end)

    lines = _completed_lines(start, end, search)
    cost_of = _cost_cache()

    sales = sales_rows(lines)
    inventory, asset_value = inventory_rows(show_financials=show_financials, status=inventory_status)
    profitability = profitability_rows(lines, show_financials=show_financials, cost_of=cost_of)
    losses, loss_value = loss_rows(start, end, show_financials=show_financials, cost_of=cost_of)

    total_revenue = sum(row["total_cents"] for row in sales)
    if show_financials:
        gross_profit = sum(row["profit_cents"] for row in profitability)
        net_profit = gross_profit - loss_value
    else:
        gross_profit = net_profit = None

    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "group_by": group_by,
        "show_financials": show_financials,
        "generated_at": to_utc_z(utcnow()),
        "summary": {
            "transaction_count": len({line.sale_id for line in lines}),
            "items_sold": sum(line.quantity_sold for line in lines),
            "total_revenue_cents": total_revenue,
            "gross_profit_cents": gross_profit,
            "total_asset_value_cents": asset_value,
            "total_loss_cents": loss_value,
            "net_profit_cents": net_profit,
        },
        "sales": sales,
        "inventory": inventory,
        "profitability": profitability,
        "voids": void_rows(start, end),
        "sales_trend": sales_trend(lines, group_by),
        "sales_by_category": sales_by_category(lines),
        "losses": losses,
    }
