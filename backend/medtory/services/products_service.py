# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Product Service

A product is created together with its first stock batch in one
transaction, so the inventory list never shows a product that was half
written. The supplier may be an existing id or a new name created on the fly.

Archive semantics:
- No history (no sales lines, item logs or purchase orders): hard delete,
  batches included.
- Otherwise: soft delete (is_active=False) so old sales keep their product.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import ItemLog, Product, PurchaseOrder, SaleLineItem
from medtory.time_utils import utcnow
from .catalog_service import CatalogError, create_supplier, get_category, get_supplier
from .concurrency import atomic
from .inventory_service import new_batch, get_quantity_on_hand, current_selling_price_cents


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise CatalogError("Product not found", status=404)
    return product


def product_detail(product: Product) -> dict:
    data = product.to_dict()
    batches = sorted(product.batches, key=lambda b: (b.expiry_date, b.id))
    data["quantity_on_hand"] = get_quantity_on_hand(product.id)
    data["selling_price_cents"] = current_selling_price_cents(product.id)
    data["batches"] = [b.to_dict() for b in batches]
    return data


def _resolve_supplier(patch: dict, new_supplier_name: str | None) -> int:
    if new_supplier_name and new_supplier_name.strip():
        return create_supplier(name=new_supplier_name, commit=False).id
    supplier_id = patch.get("supplier_id")
    if supplier_id is None:
        raise CatalogError("supplier_id or new_supplier_name is required")
    return get_supplier(supplier_id).id


def create_product(*, product_patch: dict, batch_patch: dict, new_supplier_name: str | None = None) -> Product:
    """Create product + initial batch atomically."""
    with atomic():
        category = get_category(product_patch["category_id"])
        supplier_id = _resolve_supplier(product_patch, new_supplier_name)

        product = Product(
            name=product_patch["name"],
            description=product_patch.get("description") or "",
            manufacturer=product_patch["manufacturer"],
            category_id=category.id,
            supplier_id=supplier_id,
            is_active=True,
            created_at=utcnow(),
        )
        db.session.add(product)
        db.session.flush()

        batch = new_batch(product_id=product.id, patch=batch_patch)

    current_app.logger.info(
        "Product created: id=%s name=%r initial batch=%s qty=%s",
        product.id, product.name, batch.batch_number, batch.quantity,
    )
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)

    if "category_id" in patch:
        product.category_id = get_category(patch["category_id"]).id
    if "supplier_id" in patch:
        product.supplier_id = get_supplier(patch["supplier_id"]).id
    for field in ("name", "description", "manufacturer"):
        if field in patch:
            setattr(product, field, patch[field] if patch[field] is not None else "")

    db.session.commit()
    return product


def _has_history(product_id: int) -> bool:
    for model in (SaleLineItem, ItemLog, PurchaseOrder):
        if db.session.query(model.id).filter(model.product_id == product_id).first() is not None:
            return True
    return False


def archive_product(product_id: int) -> str:
    """
    Remove a product from the catalog.

    Returns "deleted" for a hard delete, "archived" for a soft delete.
    """
    product = get_product(product_id)

    if not _has_history(product.id):
        with atomic():
            for batch in list(product.batches):
                db.session.delete(batch)
            db.session.delete(product)
        current_app.logger.info("Product %s permanently deleted", product_id)
        return "deleted"

    product.is_active = False
    db.session.commit()
    current_app.logger.info("Product %s archived", product_id)
    return "archived"


def unarchive_product(product_id: int) -> Product:
    product = get_product(product_id)
    product.is_active = True
    db.session.commit()
    return product


def list_sellable_products(search: str | None = None) -> list[dict]:
    """Active products with stock, for the POS product picker."""
    query = db.session.query(Product).filter(Product.is_active.is_(True))
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))

    rows = []
    for product in query.order_by(Product.name.asc()).all():
        on_hand = get_quantity_on_hand(product.id)
        if on_hand <= 0:
            continue
        rows.append({
            "product_id": product.id,
            "name": product.name,
            "category_name": product.category.category_name if product.category else None,
            "quantity_on_hand": on_hand,
            "selling_price_cents": current_selling_price_cents(product.id),
        })
    return rows
