# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/medtory/services/inventory_service.py

"""
MedTory Inventory Invariants (authoritative)

Inventory model:
- Stock is held in InventoryBatch rows, one per received lot.
- Quantity on hand for a product is SUM(quantity) over its batches.
- A batch's quantity never goes negative.

Which batch moves:
- SALE deducts FIFO: soonest expiry first (ties by id), each batch drained
  before the next one is touched.
- VOID restock returns quantity to the latest-expiry batch (ties by highest
  id). Original batch provenance is not tracked.
- ADJUST applies a signed delta to the most recently updated batch (ties by
  highest id); ItemLog records the movement.
- RECEIVE creates a new batch plus a PurchaseOrder and an "Added" ItemLog.

Transactions:
- deduct_fifo() and restock_latest_expiry() never commit; they run inside the
  caller's atomic() block so a failure anywhere rolls the whole sale back.
- adjust_stock() and receive_stock() own their transaction.
"""

from __future__ import annotations

import random
from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InventoryBatch, ItemLog, Product, ProductCategory, PurchaseOrder
from medtory.time_utils import utcnow, today
from .concurrency import atomic


class InventoryError(Exception):
    """Raised for inventory operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class StockMismatchError(InventoryError):
    """FIFO ran out of batches before the requested quantity was covered."""


def get_quantity_on_hand(product_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(InventoryBatch.quantity), 0))
        .filter(InventoryBatch.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def fifo_batches(product_id: int) -> list[InventoryBatch]:
    """Batches with stock, in the order a sale consumes them."""
    return (
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.product_id == product_id, InventoryBatch.quantity > 0)
        .order_by(InventoryBatch.expiry_date.asc(), InventoryBatch.id.asc())
        .all()
    )


def latest_expiry_batch(product_id: int) -> InventoryBatch | None:
    return (
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.product_id == product_id)
        .order_by(InventoryBatch.expiry_date.desc(), InventoryBatch.id.desc())
        .first()
    )


def latest_updated_batch(product_id: int) -> InventoryBatch | None:
    return (
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.product_id == product_id)
        .order_by(InventoryBatch.last_updated.desc(), InventoryBatch.id.desc())
        .first()
    )


def current_selling_price_cents(product_id: int) -> int | None:
    """
    Shelf price for a product: the selling price of the batch FIFO would sell
    next, or of the latest batch when everything is sold out.
    """
    batches = fifo_batches(product_id)
    if batches:
        return batches[0].selling_price_cents
    latest = latest_expiry_batch(product_id)
    return latest.selling_price_cents if latest else None


def current_cost_price_cents(product_id: int) -> int:
    """Unit cost used for profit and loss figures: the latest-updated batch's cost."""
    batch = latest_updated_batch(product_id)
    return batch.cost_price_cents if batch else 0


def deduct_fifo(product_id: int, quantity: int, *, product_name: str | None = None) -> list[tuple[InventoryBatch, int]]:
    """
    Remove `quantity` units from a product's batches, soonest expiry first.

    Returns the (batch, taken) pairs. Raises StockMismatchError if the batches
    run out first; the caller's transaction must then roll back, which also
    undoes the batches already drained here.
    """
    if quantity <= 0:
        raise InventoryError("quantity must be > 0")

    remaining = quantity
    taken: list[tuple[InventoryBatch, int]] = []
    now = utcnow()

    for batch in fifo_batches(product_id):
        if remaining <= 0:
            break
        take = min(batch.quantity, remaining)
        batch.quantity -= take
        batch.last_updated = now
        remaining -= take
        taken.append((batch, take))

    if remaining > 0:
        label = product_name or f"product {product_id}"
        raise StockMismatchError(
            f"Critical Error: Stock mismatch for {label} during checkout.",
            details={"product_id": product_id, "requested": quantity, "missing": remaining},
        )

    db.session.flush()
    return taken


def restock_latest_expiry(product_id: int, quantity: int) -> InventoryBatch:
    """Return `quantity` units to the product's latest-expiry batch (no commit)."""
    batch = latest_expiry_batch(product_id)
    if batch is None:
        raise InventoryError(
            "No inventory batch to restock",
            details={"product_id": product_id, "quantity": quantity},
        )
    batch.quantity += quantity
    batch.last_updated = utcnow()
    db.session.flush()
    return batch


def adjust_stock(*, product_id: int, quantity_delta: int, reason: str, employee_id: int) -> tuple[InventoryBatch, ItemLog]:
    """
    Manual stock correction on the most recently updated batch.

    Positive delta logs "Added", negative logs "Removed". A delta that would
    take the batch below zero is rejected and nothing is written.
    """
    if quantity_delta == 0:
        raise InventoryError("quantity_delta must be non-zero")
    if not reason or not reason.strip():
        raise InventoryError("reason is required")

    with atomic():
        product = db.session.get(Product, product_id)
        if product is None:
            raise InventoryError("Product not found", details={"product_id": product_id})

        batch = latest_updated_batch(product_id)
        if batch is None:
            raise InventoryError("Product has no inventory batch to adjust", details={"product_id": product_id})

        new_quantity = batch.quantity + quantity_delta
        if new_quantity < 0:
            raise InventoryError(
                f"Adjustment would make stock negative (batch has {batch.quantity})",
                details={"batch_id": batch.id, "on_hand": batch.quantity, "quantity_delta": quantity_delta},
            )

        now = utcnow()
        batch.quantity = new_quantity
        batch.last_updated = now

        log = ItemLog(
            product_id=product_id,
            employee_id=employee_id,
            action=ItemLog.ACTION_ADDED if quantity_delta > 0 else ItemLog.ACTION_REMOVED,
            quantity=abs(quantity_delta),
            log_reason=reason.strip(),
            logged_at=now,
        )
        db.session.add(log)

    current_app.logger.info(
        "Stock adjusted: product=%s batch=%s delta=%s by employee=%s",
        product_id, batch.id, quantity_delta, employee_id,
    )
    return batch, log


def generate_batch_number(on: date | None = None) -> str:
    """Default lot code, e.g. B-20250301-417."""
    day = on or today()
    return f"B-{day:%Y%m%d}-{random.randint(100, 999)}"


def new_batch(*, product_id: int, patch: dict) -> InventoryBatch:
    """Build (but don't commit) a batch from a validated payload slice."""
    batch = InventoryBatch(
        product_id=product_id,
        quantity=patch["quantity"],
        cost_price_cents=patch["cost_price_cents"],
        selling_price_cents=patch["selling_price_cents"],
        expiry_date=patch["expiry_date"],
        batch_number=patch.get("batch_number") or generate_batch_number(),
        last_updated=utcnow(),
    )
    db.session.add(batch)
    return batch


def receive_stock(*, product_id: int, patch: dict, employee_id: int) -> InventoryBatch:
    """
    Receive a delivery for an existing product as a new batch.

    Writes the batch, a PurchaseOrder against the product's supplier and an
    "Added" ItemLog in one transaction.
    """
    with atomic():
        product = db.session.get(Product, product_id)
        if product is None:
            raise InventoryError("Product not found", details={"product_id": product_id})
        if not product.is_active:
            raise InventoryError("Cannot receive stock for an archived product")

        batch = new_batch(product_id=product_id, patch=patch)
        now = batch.last_updated

        db.session.add(PurchaseOrder(
            supplier_id=product.supplier_id,
            product_id=product_id,
            quantity_received=batch.quantity,
            date_received=now,
        ))
        db.session.add(ItemLog(
            product_id=product_id,
            employee_id=employee_id,
            action=ItemLog.ACTION_ADDED,
            quantity=batch.quantity,
            log_reason=f"Received batch {batch.batch_number}",
            logged_at=now,
        ))

    current_app.logger.info(
        "Stock received: product=%s batch=%s qty=%s", product_id, batch.id, batch.quantity
    )
    return batch


def inventory_status(product: Product, quantity: int, earliest_expiry: date | None) -> str:
    """Display status for the inventory list; first matching rule wins."""
    low_stock = current_app.config["LOW_STOCK_THRESHOLD"]
    if not product.is_active:
        return "Archived"
    if quantity == 0:
        return "Out of Stock"
    if quantity < low_stock:
        return "Low Stock"
    if earliest_expiry is not None and earliest_expiry <= today():
        return "Expired"
    return "Active"


_INVENTORY_SORTS = {
    "name": lambda row: row["product_name"].lower(),
    "category": lambda row: (row["category_name"] or "").lower(),
    "stock": lambda row: row["quantity"],
    "price": lambda row: row["selling_price_cents"] or 0,
    "expiry": lambda row: row["earliest_expiry"] or "9999-12-31",
}


def list_inventory(*, search: str | None = None, sort: str | None = None, show_archived: bool = False) -> list[dict]:
    """
    One row per product with summed stock, earliest expiry and derived status.

    sort: name|category|stock|price|expiry, suffix "_desc" for descending.
    Archived products are hidden unless show_archived is set.
    """
    query = db.session.query(Product).outerjoin(ProductCategory, Product.category_id == ProductCategory.id)
    if not show_archived:
        query = query.filter(Product.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(like), ProductCategory.category_name.ilike(like)))

    rows = []
    for product in query.all():
        batches = product.batches
        quantity = sum(b.quantity for b in batches)
        earliest = min((b.expiry_date for b in batches), default=None)
        rows.append({
            "product_id": product.id,
            "product_name": product.name,
            "category_name": product.category.category_name if product.category else "N/A",
            "manufacturer": product.manufacturer,
            "quantity": quantity,
            "selling_price_cents": current_selling_price_cents(product.id) or 0,
            "earliest_expiry": earliest.isoformat() if earliest else None,
            "status": inventory_status(product, quantity, earliest),
            "is_active": product.is_active,
        })

    key, _, direction = (sort or "name").partition("_")
    sorter = _INVENTORY_SORTS.get(key.lower(), _INVENTORY_SORTS["name"])
    rows.sort(key=sorter, reverse=(direction == "desc"))
    return rows


def list_item_logs(*, product_id: int | None = None, limit: int = 200) -> list[ItemLog]:
    query = db.session.query(ItemLog)
    if product_id is not None:
        query = query.filter(ItemLog.product_id == product_id)
    return query.order_by(ItemLog.logged_at.desc(), ItemLog.id.desc()).limit(limit).all()
