# Overview: Flask API routes for the point of sale; parses input and returns JSON responses.

"""
POS routes

The cart belongs to the caller's session (g.session). Checkout and hold
both empty it once the sale is written.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import cart_service, products_service, sales_service
from ..services.cart_service import CartError
from ..services.sales_service import SaleError
from ..decorators import require_auth, require_permission
from ..validation import ValidationError, require_int, parse_discount_rate


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _cart_response(lines, status: int = 200):
    return jsonify({"cart": cart_service.cart_summary(lines)}), status


@pos_bp.get("/products")
@require_auth
@require_permission("USE_POS")
def sellable_products_route():
    """Active products with stock on hand. Query params: search."""
    rows = products_service.list_sellable_products(request.args.get("search"))
    return jsonify({"items": rows, "count": len(rows)}), 200


@pos_bp.get("/cart")
@require_auth
@require_permission("USE_POS")
def get_cart_route():
    return _cart_response(cart_service.load_cart(g.session))


@pos_bp.post("/cart/items")
@require_auth
@require_permission("USE_POS")
def add_cart_item_route():
    """
    Body: product_id, quantity (>= 1), discount_rate (0..1, optional).

    Adding a product already in the cart grows that line.
    """
    payload = request.get_json(silent=True) or {}
    try:
        product_id = require_int(payload, "product_id", minimum=1)
        quantity = require_int(payload, "quantity", minimum=1)
        rate = parse_discount_rate(payload.get("discount_rate"))
        lines = cart_service.add_item(
            g.session,
            product_id=product_id,
            quantity=quantity,
            discount_rate=rate,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CartError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    return _cart_response(lines)


@pos_bp.delete("/cart/items/<int:product_id>")
@require_auth
@require_permission("USE_POS")
def remove_cart_item_route(product_id: int):
    return _cart_response(cart_service.remove_item(g.session, product_id))


@pos_bp.delete("/cart")
@require_auth
@require_permission("USE_POS")
def clear_cart_route():
    cart_service.clear_cart(g.session)
    return _cart_response([])


@pos_bp.post("/checkout")
@require_auth
@require_permission("USE_POS")
def checkout_route():
    """
    Complete the sale for the current cart.

    Body: payment_method (required), reference_no (optional).
    """
    payload = request.get_json(silent=True) or {}
    lines = cart_service.load_cart(g.session)
    try:
        sale = sales_service.checkout(
            lines=lines,
            payment_method=str(payload.get("payment_method") or ""),
            cashier_id=g.current_user.id,
            reference_no=payload.get("reference_no"),
        )
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    except Exception as e:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": f"Transaction Failed: {e}"}), 500

    cart_service.clear_cart(g.session)
    return jsonify({
        "sale": sale.to_dict(include_lines=True),
        "message": "Transaction Complete!",
    }), 201


@pos_bp.post("/hold")
@require_auth
@require_permission("USE_POS")
def hold_route():
    """Park the current cart as a Pending sale."""
    lines = cart_service.load_cart(g.session)
    try:
        sale = sales_service.hold_sale(lines=lines, cashier_id=g.current_user.id)
    except SaleError as e:
        return jsonify({"error": str(e)}), e.status
    except Exception:
        current_app.logger.exception("Failed to hold sale")
        return jsonify({"error": "Internal server error"}), 500

    cart_service.clear_cart(g.session)
    return jsonify({"sale": sale.to_dict(include_lines=True), "message": "Transaction Held"}), 201


@pos_bp.post("/resume/<int:sale_id>")
@require_auth
@require_permission("USE_POS")
def resume_route(sale_id: int):
    """Replace the current cart with a held sale's lines."""
    try:
        lines = sales_service.resume_held_sale(sale_id=sale_id, session=g.session)
    except SaleError as e:
        return jsonify({"error": str(e)}), e.status
    except Exception:
        current_app.logger.exception("Failed to resume held sale")
        return jsonify({"error": "Internal server error"}), 500
    return _cart_response(lines)
