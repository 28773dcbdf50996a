# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/medtory/routes/auth.py
"""
Authentication API routes

- Login by username for active employees, bearer token in the response
- Logout revokes the token (and the cart stored on it)
- Forgot password always answers the same way
- Reset password doubles as invitation acceptance
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..permissions import describe_position_permissions, get_position_permissions
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a reset link has been sent."


@auth_bp.post("/login")
def login_route():
    """
    Authenticate employee and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = (data.get("username") or "").strip()
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        employee = auth_service.authenticate(username, password)
        if not employee:
            current_app.logger.info("Failed login for username %r", username)
            return jsonify({"error": "Invalid username or password"}), 401

        session, token = session_service.create_session(
            employee_id=employee.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": employee.to_dict(),
            "permissions": sorted(get_position_permissions(employee.position)),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.post("/validate")
@require_auth
def validate_route():
    """Check a token and return the employee behind it."""
    return jsonify({
        "valid": True,
        "user": g.current_user.to_dict(),
        "permissions": sorted(get_position_permissions(g.current_user.position)),
        "permission_groups": describe_position_permissions(g.current_user.position),
    }), 200


@auth_bp.post("/forgot-password")
def forgot_password_route():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip()
    if not email:
        return jsonify({"error": "email required"}), 400

    try:
        auth_service.forgot_password(email)
    except Exception:
        current_app.logger.exception("Failed to process forgot-password request")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": FORGOT_PASSWORD_MESSAGE}), 200


@auth_bp.get("/reset-password")
def check_reset_token_route():
    """Tell the frontend whether a reset link is still usable."""
    token = request.args.get("token", "")
    employee = auth_service.get_employee_by_reset_token(token)
    if employee is None:
        return jsonify({"valid": False, "error": "Invalid or expired link. Please request a new one."}), 400
    return jsonify({"valid": True, "username": employee.username}), 200


@auth_bp.post("/reset-password")
def reset_password_route():
    data = request.get_json(silent=True) or {}
    token = data.get("token") or ""
    password = data.get("password") or ""
    confirm = data.get("confirm_password")

    if not token or not password:
        return jsonify({"error": "token and password required"}), 400
    if confirm is not None and confirm != password:
        return jsonify({"error": "Passwords do not match"}), 400

    try:
        employee = auth_service.reset_password(token, password)
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Password set. You can now log in.", "username": employee.username}), 200
