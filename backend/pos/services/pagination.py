# Overview: Shared offset pagination for list endpoints.

from __future__ import annotations

from typing import Callable

from flask import current_app


def paginate(query, page: int | None, per_page: int | None, serialize: Callable) -> dict:
    """
    Paginate a SQLAlchemy query (1-indexed pages).

    Returns dict with 'items', 'count' and 'pagination' metadata.
    """
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    per_page = min(per_page or default_size, max_size)
    per_page = max(per_page, 1)
    page = max(page or 1, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(row) for row in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def resolve_sort(columns: dict, sort_by: str | None, sort_dir: str | None, default: str):
    """Map a client sort key onto an ORDER BY clause, falling back to default."""
    column = columns.get(sort_by or default, columns[default])
    if (sort_dir or "asc").lower() == "desc":
        return column.desc()
    return column.asc()
