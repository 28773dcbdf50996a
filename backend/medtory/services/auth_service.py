# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale, void and stock adjustment must be attributable. Uses bcrypt
for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
- Reset tokens: 64 hex chars, stored as SHA-256, single use, time-limited
- forgot_password() never reveals whether an address is registered
"""

import bcrypt
import re
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Employee
from medtory.time_utils import utcnow
from .session_service import hash_token, revoke_all_employee_sessions
from . import email_service
from .email_service import EmailError


FORGOT_PASSWORD_TTL = timedelta(hours=24)


class AuthError(Exception):
    """Raised for login and password-reset failures."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, *, check_strength: bool = True) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing unless the caller
    generated it itself (temporary invitation passwords).
    """
    if check_strength:
        validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def generate_temporary_password() -> str:
    """Random throwaway password for invited accounts; they set their own on first reset."""
    return secrets.token_urlsafe(24)


def issue_reset_token(employee: Employee, ttl: timedelta) -> str:
    """
    Attach a fresh reset token to `employee` (no commit).

    Returns the plaintext token for the email link; only its hash is stored.
    """
    token = secrets.token_hex(32)
    employee.reset_token_hash = hash_token(token)
    employee.reset_token_expiry = utcnow() + ttl
    return token


def authenticate(username: str, password: str) -> Employee | None:
    """
    Authenticate an employee with username and password.

    Returns the Employee if credentials are valid and the account is active,
    None otherwise. Updates last_login_at on success.
    """
    employee = db.session.query(Employee).filter(
        Employee.username == username,
        Employee.is_active.is_(True),
    ).first()

    if not employee:
        return None

    if not verify_password(password, employee.password_hash):
        return None

    employee.last_login_at = utcnow()
    db.session.commit()
    return employee


def forgot_password(email: str) -> None:
    """
    Email a 24h reset link if `email` belongs to an employee.

    Always returns quietly: callers respond the same way whether or not the
    address exists, so the endpoint can't be used to probe accounts.
    """
    employee = db.session.query(Employee).filter(Employee.contact_info == email.strip()).first()
    if employee is None:
        current_app.logger.info("Password reset requested for unknown address")
        return

    token = issue_reset_token(employee, FORGOT_PASSWORD_TTL)
    db.session.commit()

    try:
        email_service.send_reset_link(employee, token)
    except EmailError:
        current_app.logger.warning("Could not send reset email to employee %s", employee.id)


def get_employee_by_reset_token(token: str) -> Employee | None:
    """Employee holding this unexpired reset token, or None."""
    if not token:
        return None
    employee = db.session.query(Employee).filter(Employee.reset_token_hash == hash_token(token)).first()
    if employee is None or employee.reset_token_expiry is None:
        return None
    if employee.reset_token_expiry < utcnow():
        return None
    return employee


def reset_password(token: str, new_password: str) -> Employee:
    """
    Set a new password from a reset/invitation token.

    Clears the token, activates the account (this is how invited employees
    become active) and revokes any open sessions.
    """
    employee = get_employee_by_reset_token(token)
    if employee is None:
        raise AuthError("Invalid or expired link. Please request a new one.")

    employee.password_hash = hash_password(new_password)
    employee.reset_token_hash = None
    employee.reset_token_expiry = None
    employee.is_active = True
    revoke_all_employee_sessions(employee.id, reason="Password reset")
    db.session.commit()

    current_app.logger.info("Password reset completed for employee %s", employee.id)
    return employee
