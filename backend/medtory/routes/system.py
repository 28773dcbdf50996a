# Overview: Unauthenticated health endpoint for deployment checks.

"""
GET /health runs three probes: the database, the session table and the
accounts table. Each probe returns details, a "degraded" warning, or fails
with a SQLAlchemy error. The endpoint answers 503 only when a probe fails.
A missing Owner account (before `flask system init`) is reported as degraded.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Employee, Product, SessionToken
from ..permissions import Position
from medtory.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


class Degraded(Exception):
    """Probe ran but found the system not fully usable."""


def _probe_database() -> dict:
    return {
        "products": db.session.query(Product).count(),
        "employees": db.session.query(Employee).count(),
    }


def _probe_sessions() -> dict:
    open_sessions = db.session.query(SessionToken).filter(SessionToken.is_revoked.is_(False))
    return {
        "active_sessions": open_sessions.count(),
        "expired_pending_cleanup": open_sessions.filter(SessionToken.expires_at < utcnow()).count(),
    }


def _probe_accounts() -> dict:
    owners = db.session.query(Employee).filter(
        Employee.position == Position.OWNER.value,
        Employee.is_active.is_(True),
    ).count()
    if owners == 0:
        raise Degraded("No active Owner account")
    return {"owners": owners}


PROBES = {
    "database": _probe_database,
    "session_service": _probe_sessions,
    "accounts": _probe_accounts,
}


def _run(name: str, probe) -> dict:
    started = time.perf_counter()
    try:
        result = {"status": "healthy", "details": probe()}
    except Degraded as e:
        result = {"status": "degraded", "warning": str(e)}
    except SQLAlchemyError:
        current_app.logger.exception("Health probe %s failed", name)
        db.session.rollback()
        result = {"status": "unhealthy", "error": f"{name} check failed"}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


@system_bp.get("/health")
def health():
    """200 when healthy or degraded, 503 when any probe is unhealthy."""
    started = time.perf_counter()
    checks = {name: _run(name, probe) for name, probe in PROBES.items()}

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "checks": checks,
    }, http_status
