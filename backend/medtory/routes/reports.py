# Overview: Flask API route for business reports.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..permissions import has_permission
from ..decorators import require_auth, require_permission
from ..validation import ValidationError, parse_date_arg


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("")
@require_auth
@require_permission("VIEW_REPORTS")
def report_route():
    """
    Every report tab for one date range.

    Query params:
    - start, end: YYYY-MM-DD (default: first of this month to today)
    - group_by: day | month (sales trend)
    - search: product name filter for the sales tab
    - status: Expired | Low Stock | Good (inventory tab)

    Cost, profit, asset and loss figures are null unless the caller holds
    VIEW_FINANCIALS.
    """
    try:
        start = parse_date_arg(request.args.get("start"), "start")
        end = parse_date_arg(request.args.get("end"), "end")
        report = reporting_service.build_report(
            start=start,
            end=end,
            group_by=request.args.get("group_by", "day"),
            show_financials=has_permission(g.current_user.position, "VIEW_FINANCIALS"),
            search=request.args.get("search"),
            inventory_status=request.args.get("status") or None,
        )
    except (ValidationError, ReportError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build report")
        return jsonify({"error": "Internal server error"}), 500

    report["generated_by"] = g.current_user.employee_name
    return jsonify(report), 200
