# Overview: Request and permission decorators for API routes.

"""
Decorator order on every protected route:

    @bp.get(...)
    @require_auth
    @require_permission("CODE")

require_auth resolves the bearer token into g.current_user (Employee) and
g.session (SessionToken, which also carries the POS cart). The permission
decorators only read g.current_user.position.

Permission codes are checked against the definitions table when a route is
decorated, so a typo fails at import instead of silently denying everyone.
"""

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service
from .permissions import has_permission, validate_permission_code


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(f):
    """
    Require a valid bearer token (401 otherwise).

    SECURITY: rejects missing/malformed headers, unknown, expired or revoked
    tokens, and tokens of deactivated employees.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session = context.session
        return f(*args, **kwargs)

    return decorated_function


def _gate(codes: tuple[str, ...], describe: str):
    unknown = [code for code in codes if not validate_permission_code(code)]
    if unknown:
        raise ValueError(f"Unknown permission code(s): {', '.join(unknown)}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            employee = getattr(g, "current_user", None)
            if employee is None:
                return jsonify({"error": "Authentication required"}), 401

            if not any(has_permission(employee.position, code) for code in codes):
                current_app.logger.warning(
                    "Permission denied: employee=%s position=%s needs %s path=%s",
                    employee.id, employee.position, describe, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permissions": list(codes),
                    "message": f"{employee.position} cannot {describe}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_permission(permission_code: str):
    """Require the caller's position to grant `permission_code` (403 otherwise)."""
    return _gate((permission_code,), permission_code)


def require_any_permission(*permission_codes):
    """Require any one of the given permission codes."""
    return _gate(tuple(permission_codes), " or ".join(permission_codes))
