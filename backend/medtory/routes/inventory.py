# Overview: Flask API routes for products and stock; parses input and returns JSON responses.

"""
Inventory routes

- Product list with summed stock and status
- Create product together with its first batch
- Receive new batches, manual stock adjustments, item log
- Archive / unarchive
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..models import Product, InventoryBatch
from ..services import inventory_service, products_service
from ..services.catalog_service import CatalogError
from ..services.inventory_service import InventoryError
from ..decorators import require_auth, require_permission, require_any_permission
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_batch,
    enforce_rules_adjustment,
    require_int,
)
from ..pagination import paginate_list


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "manufacturer", "category_id", "supplier_id"},
    required_on_create={"name", "manufacturer", "category_id"},
)

BATCH_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "cost_price_cents", "selling_price_cents", "expiry_date", "batch_number"},
    required_on_create={"quantity", "cost_price_cents", "selling_price_cents", "expiry_date"},
)


def _flag(name: str) -> bool:
    return request.args.get(name, "").strip().lower() in ("1", "true", "yes")


def _inventory_error_status(e: InventoryError) -> int:
    return 404 if str(e) == "Product not found" else 409


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_inventory_route():
    """
    Query params:
    - search: product or category name substring
    - sort: name|category|stock|price|expiry, suffix _desc for descending
    - archived: true to include archived products
    - page: 1-based page number
    """
    rows = inventory_service.list_inventory(
        search=request.args.get("search"),
        sort=request.args.get("sort"),
        show_archived=_flag("archived"),
    )
    result = paginate_list(rows, page=request.args.get("page", type=int), per_page=current_app.config["PAGE_SIZE"])
    return jsonify(result), 200


@inventory_bp.post("/products")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """
    Create a product and its initial batch.

    Body carries product fields, batch fields and either supplier_id or
    new_supplier_name.
    """
    payload = request.get_json(silent=True) or {}
    try:
        product_patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        batch_patch = validate_payload(model=InventoryBatch, payload=payload, policy=BATCH_POLICY, partial=False)
        enforce_rules_batch(batch_patch)

        product = products_service.create_product(
            product_patch=product_patch,
            batch_patch=batch_patch,
            new_supplier_name=payload.get("new_supplier_name"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"product": products_service.product_detail(product)}), 201


@inventory_bp.get("/products/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"product": products_service.product_detail(product)}), 200


@inventory_bp.put("/products/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = products_service.update_product(product_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"product": products_service.product_detail(product)}), 200


@inventory_bp.post("/products/<int:product_id>/archive")
@require_auth
@require_permission("ARCHIVE_PRODUCTS")
def archive_product_route(product_id: int):
    """Hard delete when the product has no history, otherwise archive."""
    try:
        outcome = products_service.archive_product(product_id)
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    except Exception:
        current_app.logger.exception("Failed to archive product")
        return jsonify({"error": "Internal server error"}), 500

    if outcome == "deleted":
        message = "Item permanently deleted (no history found)."
    else:
        message = "Item archived. It is hidden from the POS but kept for sales history."
    return jsonify({"result": outcome, "message": message}), 200


@inventory_bp.post("/products/<int:product_id>/unarchive")
@require_auth
@require_permission("ARCHIVE_PRODUCTS")
def unarchive_product_route(product_id: int):
    try:
        product = products_service.unarchive_product(product_id)
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"product": product.to_dict()}), 200


@inventory_bp.post("/products/<int:product_id>/batches")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def receive_stock_route(product_id: int):
    """Receive a delivery as a new batch."""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=InventoryBatch, payload=payload, policy=BATCH_POLICY, partial=False)
        enforce_rules_batch(patch)
        batch = inventory_service.receive_stock(
            product_id=product_id,
            patch=patch,
            employee_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), _inventory_error_status(e)
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"batch": batch.to_dict()}), 201


@inventory_bp.post("/adjust")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjust_stock_route():
    """
    Manual stock correction on the product's most recently updated batch.

    Body: product_id, quantity_delta (non-zero, signed), reason.
    """
    payload = request.get_json(silent=True) or {}
    try:
        product_id = require_int(payload, "product_id", minimum=1)
        delta = require_int(payload, "quantity_delta")
        reason = str(payload.get("reason") or "")
        enforce_rules_adjustment(delta, reason)

        batch, log = inventory_service.adjust_stock(
            product_id=product_id,
            quantity_delta=delta,
            reason=reason.strip(),
            employee_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), _inventory_error_status(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "batch": batch.to_dict(),
        "log": log.to_dict(),
        "quantity_on_hand": inventory_service.get_quantity_on_hand(product_id),
    }), 200


@inventory_bp.get("/logs")
@require_auth
@require_any_permission("ADJUST_INVENTORY", "VIEW_REPORTS")
def item_logs_route():
    product_id = request.args.get("product_id", type=int)
    limit = request.args.get("limit", default=200, type=int)
    logs = inventory_service.list_item_logs(product_id=product_id, limit=max(1, min(limit, 1000)))
    return jsonify({"items": [log.to_dict() for log in logs], "count": len(logs)}), 200
