# Overview: Service-layer operations for bearer sessions; encapsulates business logic and database work.

"""
Session Service

A session is one SessionToken row per login. The client holds the random
plaintext token; the row stores only its SHA-256 digest. The row also carries
the employee's POS cart, so ending a session always empties that cart.

A session stops validating when:
- it was revoked (logout, deactivation, password reset, idle timeout)
- it is past expires_at (SESSION_ABSOLUTE_TIMEOUT_HOURS after login)
- it went unused for longer than SESSION_IDLE_TIMEOUT_HOURS
- its employee is deactivated

WHY SHA-256 and not bcrypt: tokens carry 256 bits of entropy, so a fast hash
is enough and lookups can go through the unique index on token_hash.
Invitation and reset tokens use the same digest.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Employee, SessionToken
from medtory.time_utils import utcnow


# Revoked/expired rows are kept this long for auditing before cleanup deletes them
SESSION_RETENTION = timedelta(days=30)


@dataclass
class SessionContext:
    """Employee identity plus the session row it was validated from."""
    user: Employee
    session: SessionToken


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _hours(key: str) -> timedelta:
    return timedelta(hours=current_app.config[key])


def _find_open(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def _end(session: SessionToken, reason: str) -> None:
    """Mark revoked and drop the cart it held. Caller commits."""
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    session.cart_json = None
    session.cart_updated_at = None


def create_session(
    employee_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Open a session for an employee. Returns (row, plaintext token)."""
    if db.session.get(Employee, employee_id) is None:
        raise ValueError("Employee not found")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        employee_id=employee_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS"),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token, or None when it no longer grants access.

    A successful check refreshes last_used_at. Idle sessions and sessions of
    deactivated employees are revoked on the spot.
    """
    session = _find_open(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    end_reason = None
    if now - session.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS"):
        end_reason = "Idle timeout"
    elif session.employee is None or not session.employee.is_active:
        end_reason = "Employee account deactivated"

    if end_reason:
        _end(session, end_reason)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=session.employee, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """End one session (logout). False when the token is unknown or already ended."""
    session = _find_open(token)
    if session is None:
        return False
    _end(session, reason)
    db.session.commit()
    return True


def revoke_all_employee_sessions(employee_id: int, reason: str) -> int:
    """
    End every open session of an employee (deactivation, password reset).

    Does not commit; the caller's write owns the transaction.
    """
    sessions = db.session.query(SessionToken).filter_by(employee_id=employee_id, is_revoked=False).all()
    for session in sessions:
        _end(session, reason)
    return len(sessions)


def cleanup_expired_sessions() -> int:
    """Delete ended sessions created more than SESSION_RETENTION ago. Returns the count."""
    now = utcnow()
    deleted = (
        db.session.query(SessionToken)
        .filter(
            db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < now - SESSION_RETENTION,
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    current_app.logger.info("Session cleanup removed %s row(s)", deleted)
    return deleted
