# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..models import Supplier
from ..services import catalog_service
from ..services.catalog_service import CatalogError
from ..decorators import require_auth, require_permission
from ..validation import ModelValidationPolicy, ValidationError, validate_payload


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_info"},
    required_on_create={"name"},
)


@suppliers_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_suppliers_route():
    """
    Query params:
    - search: substring of name or contact info
    - sort: name (default) | contact | count, each with optional _desc
    """
    items = catalog_service.list_suppliers(
        search=request.args.get("search"),
        sort=request.args.get("sort"),
    )
    return jsonify({"items": items, "count": len(items)}), 200


@suppliers_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        supplier = catalog_service.create_supplier(**patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"supplier": supplier.to_dict()}), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = catalog_service.update_supplier(supplier_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"supplier": supplier.to_dict()}), 200


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_supplier_route(supplier_id: int):
    try:
        catalog_service.delete_supplier(supplier_id)
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"ok": True}), 200
