# Overview: Flask API routes for employee accounts; parses input and returns JSON responses.

"""
User management routes

- Active list and pending-invitation list
- Invite (email activation link), edit, activate/deactivate
- Send a password reset link, cancel a pending invitation

Role hierarchy checks (who may touch whom) live in user_service.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..models import Employee
from ..pagination import paginate_query
from ..services import user_service
from ..services.user_service import UserError
from ..decorators import require_auth, require_permission
from ..validation import ModelValidationPolicy, ValidationError, validate_payload


users_bp = Blueprint("users", __name__, url_prefix="/api/users")

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "employee_name", "position", "contact_info"},
    required_on_create={"username", "employee_name", "position", "contact_info"},
)


def _page_of(query) -> dict:
    return paginate_query(
        query,
        page=request.args.get("page", type=int),
        per_page=current_app.config["PAGE_SIZE"],
        serialize=lambda employee: employee.to_dict(),
    )


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    """
    Query params:
    - sort: username|name|role|contact, suffix _desc for descending
    - page: 1-based page number
    """
    return jsonify(_page_of(user_service.list_active(request.args.get("sort")))), 200


@users_bp.get("/pending")
@require_auth
@require_permission("VIEW_USERS")
def list_pending_route():
    return jsonify(_page_of(user_service.list_pending())), 200


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def invite_user_route():
    """Create an account and email the activation link (valid 48 hours)."""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Employee, payload=payload, policy=USER_POLICY, partial=False)
        employee = user_service.invite_user(actor=g.current_user, **patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    except Exception:
        current_app.logger.exception("Failed to invite user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "user": employee.to_dict(),
        "message": f"Invitation sent to {employee.contact_info}",
    }), 201


@users_bp.put("/<int:employee_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(employee_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Employee, payload=payload, policy=USER_POLICY, partial=True)
        employee = user_service.update_user(actor=g.current_user, employee_id=employee_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"user": employee.to_dict()}), 200


@users_bp.post("/<int:employee_id>/toggle-active")
@require_auth
@require_permission("MANAGE_USERS")
def toggle_active_route(employee_id: int):
    """Flip is_active. Deactivation revokes every session the employee holds."""
    try:
        employee = user_service.toggle_active(actor=g.current_user, employee_id=employee_id)
    except UserError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"user": employee.to_dict()}), 200


@users_bp.post("/<int:employee_id>/reset-link")
@require_auth
@require_permission("SEND_RESET_LINK")
def send_reset_link_route(employee_id: int):
    try:
        employee = user_service.send_reset_link(actor=g.current_user, employee_id=employee_id)
    except UserError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    except Exception:
        current_app.logger.exception("Failed to send reset link")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"message": f"Reset link sent to {employee.contact_info}"}), 200


@users_bp.delete("/<int:employee_id>/invite")
@require_auth
@require_permission("MANAGE_USERS")
def cancel_invite_route(employee_id: int):
    try:
        user_service.cancel_invite(actor=g.current_user, employee_id=employee_id)
    except UserError as e:
        return jsonify({"error": str(e)}), e.status
    return jsonify({"message": "Invitation cancelled"}), 200
