# Overview: Transaction boundary helper shared by the multi-row write services.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


@contextmanager
def atomic():
    """
    Run a block as one database transaction.

    Commits when the block finishes, rolls back and re-raises on any
    exception so no partial write survives. No retry: the failure goes back
    to the caller.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
