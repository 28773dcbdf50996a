# Overview: Flask API routes for product categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..models import ProductCategory
from ..services import catalog_service
from ..services.catalog_service import CatalogError
from ..decorators import require_auth, require_permission
from ..validation import ModelValidationPolicy, ValidationError, validate_payload


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"category_name", "is_active"},
    required_on_create={"category_name"},
)


@categories_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_categories_route():
    """
    Query params:
    - search: substring of the category name
    - sort: name (default) | name_desc | count | count_desc
    """
    items = catalog_service.list_categories(
        search=request.args.get("search"),
        sort=request.args.get("sort"),
    )
    return jsonify({"items": items, "count": len(items)}), 200


@categories_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ProductCategory, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = catalog_service.create_category(**patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"category": category.to_dict()}), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ProductCategory, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = catalog_service.update_category(category_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"category": category.to_dict()}), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_category_route(category_id: int):
    try:
        catalog_service.delete_category(category_id)
    except CatalogError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"ok": True}), 200
