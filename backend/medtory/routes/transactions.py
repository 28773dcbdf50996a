# Overview: Flask API routes for sales history and voids; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import sales_service
from ..services.sales_service import SaleError
from ..decorators import require_auth, require_permission, require_any_permission
from ..validation import ValidationError, parse_date_arg, require_text


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def list_transactions_route():
    """
    Paged sales history (defaults to today).

    Query params:
    - start, end: YYYY-MM-DD (inclusive)
    - search: cashier name, payment method or reference number
    - status: Completed | Pending | Refunded
    - sort: date|cashier|status|total with _asc/_desc
    - page: 1-based page number
    """
    try:
        start = parse_date_arg(request.args.get("start"), "start")
        end = parse_date_arg(request.args.get("end"), "end")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    if start and end and start > end:
        return jsonify({"error": "start must be on or before end"}), 400

    result = sales_service.list_transactions(
        viewer=g.current_user,
        start=start,
        end=end,
        search=request.args.get("search"),
        status=request.args.get("status"),
        sort=request.args.get("sort"),
        page=request.args.get("page", type=int),
    )
    return jsonify(result), 200


@transactions_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def get_transaction_route(sale_id: int):
    try:
        sale = sales_service.get_transaction(sale_id=sale_id, viewer=g.current_user)
    except SaleError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@transactions_bp.post("/<int:sale_id>/void")
@require_auth
@require_permission("VOID_SALE")
def void_sale_route(sale_id: int):
    """
    Void a completed sale and restock its items.

    Body: reason (required)
    """
    payload = request.get_json(silent=True) or {}
    try:
        reason = require_text(payload, "reason")
        sale = sales_service.void_sale(sale_id=sale_id, employee_id=g.current_user.id, reason=reason)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    except Exception as e:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": f"Void Failed: {e}"}), 500

    return jsonify({"sale": sale.to_dict(include_lines=True), "message": "Transaction voided"}), 200


@transactions_bp.get("/voids")
@require_auth
@require_any_permission("VOID_SALE", "VIEW_REPORTS")
def list_voids_route():
    return jsonify(sales_service.list_voids(page=request.args.get("page", type=int))), 200
