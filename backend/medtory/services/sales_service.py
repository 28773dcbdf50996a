"""
Sales Service - checkout, hold/resume, void and transaction history

WHY: A sale is the only place stock leaves the shelf, so checkout and void
are single transactions: either every line is written and every batch is
deducted (or restocked), or nothing is.

Status lifecycle:
- checkout()  -> Completed (stock deducted FIFO)
- hold_sale() -> Pending   (stock untouched)
- resume_held_sale() deletes the Pending sale and puts its lines back in the cart
- void_sale() Completed -> Refunded (stock returned to the latest-expiry batch)
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Employee, Sale, SaleLineItem, SessionToken, VoidRecord
from ..pagination import paginate_query
from ..permissions import has_permission
from medtory.time_utils import day_bounds, today, utcnow
from .cart_service import CartLine, basis_points_to_rate, rate_to_basis_points, stage_cart
from .concurrency import atomic
from .inventory_service import InventoryError, deduct_fifo, get_quantity_on_hand, restock_latest_expiry


PENDING_PAYMENT_METHOD = "Pending"


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None, status: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status = status


class InsufficientStockError(SaleError):
    """Cart asks for more than is on hand."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details, status=409)


def _validate_on_hand(lines: list[CartLine]) -> None:
    product_totals: dict[int, int] = {}
    for line in lines:
        product_totals[line.product_id] = product_totals.get(line.product_id, 0) + line.quantity

    insufficient = []
    for product_id, qty in product_totals.items():
        on_hand = get_quantity_on_hand(product_id)
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise InsufficientStockError(
            "Insufficient inventory to complete sale",
            details={"items": insufficient},
        )


def _write_sale(*, lines: list[CartLine], cashier_id: int, status: str, payment_method: str,
                reference_no: str | None = None) -> Sale:
    sale = Sale(
        employee_id=cashier_id,
        sales_date=utcnow(),
        total_amount_cents=sum(line.total_cents for line in lines),
        payment_method=payment_method,
        reference_no=reference_no,
        status=status,
    )
    db.session.add(sale)
    for line in lines:
        sale.lines.append(SaleLineItem(
            product_id=line.product_id,
            quantity_sold=line.quantity,
            price_cents=line.price_cents,
            discount_cents=line.discount_cents,
            discount_rate_bp=rate_to_basis_points(line.discount_rate),
        ))
    db.session.flush()
    return sale


def checkout(*, lines: list[CartLine], payment_method: str, cashier_id: int, reference_no: str | None = None) -> Sale:
    """
    Turn cart lines into a Completed sale and deduct stock FIFO.

    Everything happens in one transaction. If a batch runs dry mid-way (a
    concurrent sale took the stock) the whole sale is rolled back and a
    SaleError carrying the cause is raised. Callers clear the cart afterwards.
    """
    if not lines:
        raise SaleError("Cart is empty")
    if not payment_method or not payment_method.strip():
        raise SaleError("payment_method is required")
    if payment_method.strip().lower() == PENDING_PAYMENT_METHOD.lower():
        raise SaleError("Invalid payment method")

    _validate_on_hand(lines)

    try:
        with atomic():
            sale = _write_sale(
                lines=lines,
                cashier_id=cashier_id,
                status=Sale.STATUS_COMPLETED,
                payment_method=payment_method.strip(),
                reference_no=(reference_no or "").strip() or None,
            )
            for line in lines:
                deduct_fifo(line.product_id, line.quantity, product_name=line.product_name)
    except InventoryError as exc:
        current_app.logger.warning("Checkout rolled back for cashier %s: %s", cashier_id, exc)
        raise SaleError(f"Transaction Failed: {exc}", details=exc.details, status=409) from exc

    current_app.logger.info(
        "Sale %s completed by employee %s: total=%s method=%s",
        sale.id, cashier_id, sale.total_amount_cents, sale.payment_method,
    )
    return sale


def hold_sale(*, lines: list[CartLine], cashier_id: int) -> Sale:
    """Park the cart as a Pending sale. Stock is not touched."""
    if not lines:
        raise SaleError("Cart is empty")

    with atomic():
        sale = _write_sale(
            lines=lines,
            cashier_id=cashier_id,
            status=Sale.STATUS_PENDING,
            payment_method=PENDING_PAYMENT_METHOD,
        )

    current_app.logger.info("Sale %s held by employee %s", sale.id, cashier_id)
    return sale


def _line_to_cart(line: SaleLineItem) -> CartLine:
    return CartLine(
        product_id=line.product_id,
        product_name=line.product.name if line.product else f"Product {line.product_id}",
        price_cents=line.price_cents,
        quantity=line.quantity_sold,
        discount_rate=basis_points_to_rate(line.discount_rate_bp),
    )


def resume_held_sale(*, sale_id: int, session: SessionToken) -> list[CartLine]:
    """
    Load a Pending sale back into the caller's cart and delete it.

    The current cart is replaced. Writing the cart and deleting the sale are
    one transaction.
    """
    with atomic():
        sale = db.session.get(Sale, sale_id)
        if sale is None:
            raise SaleError("Sale not found", status=404)
        if sale.status != Sale.STATUS_PENDING:
            raise SaleError("Only pending transactions can be resumed.", status=409)

        lines = [_line_to_cart(line) for line in sale.lines]
        stage_cart(session, lines)
        db.session.delete(sale)

    current_app.logger.info("Held sale %s resumed into session %s", sale_id, session.id)
    return lines


def void_sale(*, sale_id: int, employee_id: int, reason: str) -> Sale:
    """
    Reverse a Completed sale.

    Each line's quantity goes back to that product's latest-expiry batch, the
    sale becomes Refunded and a VoidRecord is appended. Any failure leaves
    stock and status untouched.
    """
    if not reason or not reason.strip():
        raise SaleError("reason is required")

    try:
        with atomic():
            sale = db.session.get(Sale, sale_id)
            if sale is None:
                raise SaleError("Sale not found", status=404)
            if sale.status != Sale.STATUS_COMPLETED:
                raise SaleError("Only completed transactions can be voided.", status=409)

            for line in sale.lines:
                restock_latest_expiry(line.product_id, line.quantity_sold)

            sale.status = Sale.STATUS_REFUNDED
            db.session.add(VoidRecord(
                sale_id=sale.id,
                employee_id=employee_id,
                voided_at=utcnow(),
                void_reason=reason.strip(),
            ))
    except InventoryError as exc:
        raise SaleError(f"Void Failed: {exc}", details=exc.details, status=409) from exc

    current_app.logger.info("Sale %s voided by employee %s", sale_id, employee_id)
    return sale


# =============================================================================
# TRANSACTION HISTORY
# =============================================================================

_TRANSACTION_SORTS = {
    "date": Sale.sales_date,
    "cashier": Employee.employee_name,
    "status": Sale.status,
    "total": Sale.total_amount_cents,
}


def _can_see_all(viewer: Employee) -> bool:
    return has_permission(viewer.position, "VIEW_ALL_TRANSACTIONS")


def list_transactions(
    *,
    viewer: Employee,
    start: date | None = None,
    end: date | None = None,
    search: str | None = None,
    status: str | None = None,
    sort: str | None = None,
    page: int | None = None,
) -> dict:
    """
    Paged sales history.

    Date range defaults to today. Employees without VIEW_ALL_TRANSACTIONS
    only see their own sales. sort: date|cashier|status|total with _asc or
    _desc (default date_desc).
    """
    start = start or today()
    end = end or start
    lower, upper = day_bounds(start, end)

    query = (
        db.session.query(Sale)
        .join(Employee, Sale.employee_id == Employee.id)
        .filter(Sale.sales_date >= lower, Sale.sales_date < upper)
    )
    if not _can_see_all(viewer):
        query = query.filter(Sale.employee_id == viewer.id)
    if status:
        query = query.filter(Sale.status == status)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Employee.employee_name.ilike(like),
            Sale.payment_method.ilike(like),
            Sale.reference_no.ilike(like),
        ))

    key, _, direction = (sort or "date_desc").partition("_")
    column = _TRANSACTION_SORTS.get(key.lower())
    if column is None:
        column, direction = Sale.sales_date, "desc"
    elif key.lower() == "date" and not direction:
        direction = "desc"
    order = column.desc() if direction == "desc" else column.asc()
    query = query.order_by(order, Sale.id.desc())

    result = paginate_query(
        query,
        page=page,
        per_page=current_app.config["PAGE_SIZE"],
        serialize=lambda sale: sale.to_dict(),
    )
    result["start"] = start.isoformat()
    result["end"] = end.isoformat()
    return result


def get_transaction(*, sale_id: int, viewer: Employee) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleError("Sale not found", status=404)
    if not _can_see_all(viewer) and sale.employee_id != viewer.id:
        raise SaleError("You can only view your own transactions.", status=403)
    return sale


def list_voids(*, page: int | None = None) -> dict:
    query = db.session.query(VoidRecord).order_by(VoidRecord.voided_at.desc(), VoidRecord.id.desc())
    return paginate_query(
        query,
        page=page,
        per_page=current_app.config["PAGE_SIZE"],
        serialize=lambda record: record.to_dict(),
    )
