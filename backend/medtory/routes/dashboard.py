# Overview: Flask API route for the home dashboard.

from flask import Blueprint, request, jsonify, current_app

from ..services import dashboard_service
from ..decorators import require_auth, require_permission


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard_route():
    """
    KPI cards, stock alerts, recent sales and charts.

    Query params:
    - period: 7days (default) | 30days | thisyear
    """
    period = request.args.get("period", "7days")
    try:
        return jsonify(dashboard_service.build_dashboard(period)), 200
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500
