# Overview: Service-layer operations for categories and suppliers; encapsulates business logic and database work.

"""
Catalog Service

Product categories and suppliers are small lookup tables. Both list with a
product count, both refuse deletion while any product (active or archived)
still points at them.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Product, ProductCategory, Supplier
from medtory.time_utils import utcnow


class CatalogError(Exception):
    """Raised for category/supplier/product catalog errors."""
    def __init__(self, message: str, details: dict | None = None, status: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status = status


def _sorted_rows(rows: list[dict], sort: str | None, keys: dict) -> list[dict]:
    key, _, direction = (sort or "name").partition("_")
    sorter = keys.get(key.lower(), keys["name"])
    return sorted(rows, key=sorter, reverse=(direction == "desc"))


# =============================================================================
# CATEGORIES
# =============================================================================

_CATEGORY_SORTS = {
    "name": lambda row: row["category_name"].lower(),
    "count": lambda row: row["product_count"],
}


def list_categories(*, search: str | None = None, sort: str | None = None) -> list[dict]:
    """Categories with product counts; sort name|count with optional _desc."""
    query = (
        db.session.query(ProductCategory, func.count(Product.id))
        .outerjoin(Product, Product.category_id == ProductCategory.id)
        .group_by(ProductCategory.id)
    )
    if search:
        query = query.filter(ProductCategory.category_name.ilike(f"%{search.strip()}%"))

    rows = []
    for category, count in query.all():
        data = category.to_dict()
        data["product_count"] = count
        rows.append(data)
    return _sorted_rows(rows, sort, _CATEGORY_SORTS)


def get_category(category_id: int) -> ProductCategory:
    category = db.session.get(ProductCategory, category_id)
    if category is None:
        raise CatalogError("Category not found", status=404)
    return category


def _check_category_name(name: str | None, *, exclude_id: int | None = None) -> str:
    if not name or not name.strip():
        raise CatalogError("category_name is required")
    name = name.strip()
    query = db.session.query(ProductCategory).filter(func.lower(ProductCategory.category_name) == name.lower())
    if exclude_id is not None:
        query = query.filter(ProductCategory.id != exclude_id)
    if query.first() is not None:
        raise CatalogError("Category already exists", status=409)
    return name


def create_category(*, category_name: str, is_active: bool = True) -> ProductCategory:
    category = ProductCategory(
        category_name=_check_category_name(category_name),
        is_active=bool(is_active),
        last_updated=utcnow(),
    )
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category_id: int, patch: dict) -> ProductCategory:
    category = get_category(category_id)
    if "category_name" in patch:
        category.category_name = _check_category_name(patch["category_name"], exclude_id=category.id)
    if "is_active" in patch:
        category.is_active = bool(patch["is_active"])
    category.last_updated = utcnow()
    db.session.commit()
    return category


def delete_category(category_id: int) -> None:
    category = get_category(category_id)
    in_use = db.session.query(Product.id).filter(Product.category_id == category.id).first()
    if in_use is not None:
        raise CatalogError(
            "Cannot delete this category because it is currently assigned to one or more products.",
            status=409,
        )
    db.session.delete(category)
    db.session.commit()


# =============================================================================
# SUPPLIERS
# =============================================================================

_SUPPLIER_SORTS = {
    "name": lambda row: row["name"].lower(),
    "contact": lambda row: (row["contact_info"] or "").lower(),
    "count": lambda row: row["product_count"],
}


def list_suppliers(*, search: str | None = None, sort: str | None = None) -> list[dict]:
    """Suppliers with product counts; search name or contact, sort name|contact|count."""
    query = (
        db.session.query(Supplier, func.count(Product.id))
        .outerjoin(Product, Product.supplier_id == Supplier.id)
        .group_by(Supplier.id)
    )
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(Supplier.name.ilike(like), Supplier.contact_info.ilike(like)))

    rows = []
    for supplier, count in query.all():
        data = supplier.to_dict()
        data["product_count"] = count
        rows.append(data)
    return _sorted_rows(rows, sort, _SUPPLIER_SORTS)


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise CatalogError("Supplier not found", status=404)
    return supplier


def create_supplier(*, name: str, contact_info: str | None = None, commit: bool = True) -> Supplier:
    if not name or not name.strip():
        raise CatalogError("Supplier name is required")
    supplier = Supplier(name=name.strip(), contact_info=(contact_info or "").strip() or None)
    db.session.add(supplier)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return supplier


def update_supplier(supplier_id: int, patch: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    if "name" in patch:
        if not patch["name"] or not str(patch["name"]).strip():
            raise CatalogError("Supplier name is required")
        supplier.name = str(patch["name"]).strip()
    if "contact_info" in patch:
        supplier.contact_info = (patch["contact_info"] or "").strip() or None
    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int) -> None:
    supplier = get_supplier(supplier_id)
    in_use = db.session.query(Product.id).filter(Product.supplier_id == supplier.id).first()
    if in_use is not None:
        raise CatalogError(
            "Cannot delete this supplier because they are linked to existing products.",
            status=409,
        )
    db.session.delete(supplier)
    db.session.commit()
