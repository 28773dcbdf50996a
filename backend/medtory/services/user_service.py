# Overview: Service-layer operations for employee accounts; encapsulates business logic and database work.

"""
Employee management: invitations, edits, activation toggles, reset links.

Every write goes through the position hierarchy in permissions.roles:
- can_modify(actor, target) gates edit / toggle / reset link
- can_create(actor, target) gates invitations and position changes

Invited accounts carry a reset token until the employee sets a password;
list_active() and list_pending() split on that token.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Employee
from ..permissions import Position, can_create, can_modify
from medtory.time_utils import utcnow
from .auth_service import generate_temporary_password, hash_password, issue_reset_token
from .session_service import revoke_all_employee_sessions
from . import email_service
from .email_service import EmailError


INVITATION_TTL = timedelta(hours=48)
RESET_LINK_TTL = timedelta(hours=24)


class UserError(Exception):
    """Raised for employee management errors."""
    def __init__(self, message: str, details: dict | None = None, status: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status = status


_USER_SORTS = {
    "username": Employee.username,
    "name": Employee.employee_name,
    "role": Employee.position,
    "contact": Employee.contact_info,
}


def _get(employee_id: int) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise UserError("User not found", status=404)
    return employee


def _require_modify(actor: Employee, target: Employee) -> None:
    if not can_modify(actor.position, target.position):
        raise UserError("You do not have permission to modify this user.", status=403)


def _parse_position(value) -> Position:
    try:
        return Position.parse(value)
    except ValueError as exc:
        raise UserError(str(exc))


def _check_username(username: str, *, exclude_id: int | None = None) -> str:
    username = (username or "").strip()
    if not username:
        raise UserError("username is required")
    if any(ch.isspace() for ch in username):
        raise UserError("Username cannot contain spaces.")
    query = db.session.query(Employee).filter(Employee.username == username)
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    if query.first() is not None:
        raise UserError("Username is already taken.", status=409)
    return username


def list_active(sort: str | None = None):
    """Query of employees without a pending token; sort username|name|role|contact[_desc]."""
    key, _, direction = (sort or "username").partition("_")
    column = _USER_SORTS.get(key.lower(), Employee.username)
    order = column.desc() if direction == "desc" else column.asc()
    return db.session.query(Employee).filter(Employee.reset_token_hash.is_(None)).order_by(order, Employee.id.asc())


def list_pending():
    return (
        db.session.query(Employee)
        .filter(Employee.reset_token_hash.isnot(None))
        .order_by(Employee.reset_token_expiry.desc(), Employee.id.desc())
    )


def invite_user(*, actor: Employee, username: str, employee_name: str, position, contact_info: str) -> Employee:
    """
    Create an inactive-until-activated account and email an activation link.

    The account gets a random temporary password and a 48h token. If the
    email can't be sent the account is removed again so no orphan invite is
    left behind.
    """
    target_position = _parse_position(position)
    if not can_create(actor.position, target_position):
        if target_position in (Position.OWNER, Position.ADMIN):
            raise UserError("Only the System Owner can create Admin or Owner accounts.", status=403)
        raise UserError("You do not have permission to create this user.", status=403)

    username = _check_username(username)
    if not employee_name or not employee_name.strip():
        raise UserError("employee_name is required")
    if not contact_info or "@" not in contact_info:
        raise UserError("contact_info must be an email address")

    employee = Employee(
        username=username,
        employee_name=employee_name.strip(),
        position=target_position.value,
        contact_info=contact_info.strip(),
        password_hash=hash_password(generate_temporary_password(), check_strength=False),
        is_active=True,
        created_at=utcnow(),
    )
    token = issue_reset_token(employee, INVITATION_TTL)
    db.session.add(employee)
    db.session.commit()

    try:
        email_service.send_invitation(employee, token)
    except EmailError as exc:
        db.session.delete(employee)
        db.session.commit()
        raise UserError(f"Email failed. User not created. Error: {exc}", status=502)

    current_app.logger.info("Employee %s invited by %s as %s", employee.id, actor.id, employee.position)
    return employee


def update_user(*, actor: Employee, employee_id: int, patch: dict) -> Employee:
    """
    Edit name, username, position and contact. Password, token and active
    flag are never touched here.
    """
    employee = _get(employee_id)
    _require_modify(actor, employee)

    if "username" in patch:
        employee.username = _check_username(patch["username"], exclude_id=employee.id)
    if "employee_name" in patch:
        name = (patch["employee_name"] or "").strip()
        if not name:
            raise UserError("employee_name cannot be blank")
        employee.employee_name = name
    if "contact_info" in patch:
        contact = (patch["contact_info"] or "").strip()
        if "@" not in contact:
            raise UserError("contact_info must be an email address")
        employee.contact_info = contact
    if "position" in patch:
        new_position = _parse_position(patch["position"])
        if not can_create(actor.position, new_position):
            raise UserError("You cannot assign this position.", status=403)
        employee.position = new_position.value

    db.session.commit()
    return employee


def toggle_active(*, actor: Employee, employee_id: int) -> Employee:
    employee = _get(employee_id)
    if employee.id == actor.id:
        raise UserError("You cannot deactivate your own account.")
    _require_modify(actor, employee)

    employee.is_active = not employee.is_active
    if not employee.is_active:
        revoke_all_employee_sessions(employee.id, reason="Employee deactivated")
    db.session.commit()

    current_app.logger.info(
        "Employee %s %s by %s", employee.id, "reactivated" if employee.is_active else "deactivated", actor.id
    )
    return employee


def send_reset_link(*, actor: Employee, employee_id: int) -> Employee:
    """Issue a 24h reset token and email it. The token stays even if the email fails."""
    employee = _get(employee_id)
    _require_modify(actor, employee)

    token = issue_reset_token(employee, RESET_LINK_TTL)
    db.session.commit()

    try:
        email_service.send_reset_link(employee, token)
    except EmailError as exc:
        raise UserError("Failed to send email.", details={"cause": str(exc)}, status=502)
    return employee


def cancel_invite(*, actor: Employee, employee_id: int) -> None:
    employee = _get(employee_id)
    if not employee.is_pending:
        raise UserError("Cannot cancel. This user is already active.", status=409)
    _require_modify(actor, employee)
    if employee.last_login_at is not None or employee.sales or employee.session_tokens:
        raise UserError("Cannot cancel. This user already has activity on record.", status=409)

    db.session.delete(employee)
    db.session.commit()
    current_app.logger.info("Invitation for employee %s cancelled by %s", employee_id, actor.id)


def create_employee(*, username: str, password: str, employee_name: str, position, contact_info: str) -> Employee:
    """Direct account creation for the CLI bootstrap (no invitation flow)."""
    target_position = _parse_position(position)
    employee = Employee(
        username=_check_username(username),
        password_hash=hash_password(password),
        employee_name=employee_name,
        position=target_position.value,
        contact_info=contact_info,
        is_active=True,
        created_at=utcnow(),
    )
    db.session.add(employee)
    db.session.commit()
    return employee
