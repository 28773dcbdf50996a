# Overview: Page slicing shared by the list endpoints.

from __future__ import annotations

from typing import Callable, Sequence


def _meta(page: int, per_page: int, total: int) -> dict:
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    return {
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def paginate_query(query, *, page: int | None, per_page: int, serialize: Callable) -> dict:
    """Page an SQLAlchemy query; `serialize` turns each row into a dict."""
    page = max(page or 1, 1)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "items": [serialize(row) for row in rows],
        "count": len(rows),
        "pagination": _meta(page, per_page, total),
    }


def paginate_list(items: Sequence, *, page: int | None, per_page: int) -> dict:
    """Page an already-built list of dicts (in-memory sorted results)."""
    page = max(page or 1, 1)
    start = (page - 1) * per_page
    chunk = list(items[start:start + per_page])
    return {
        "items": chunk,
        "count": len(chunk),
        "pagination": _meta(page, per_page, len(items)),
    }
