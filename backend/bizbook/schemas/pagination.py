"""Pagination helpers shared by the list endpoints."""

from typing import Any, Callable, Dict, TypeVar

from fastapi import Query

T = TypeVar("T")

SkipParam = Query(0, ge=0, description="Number of items to skip")
LimitParam = Query(50, ge=1, le=500, description="Maximum items to return")


def page(query, skip: int, limit: int, serialize: Callable[[T], Any]) -> Dict[str, Any]:
    """
    Run a SQLAlchemy query one page at a time.

    Returns the list envelope used across the API:
    ``{"items", "total", "skip", "limit", "has_more"}``.
    """
    total = query.count()
    items = [serialize(row) for row in query.offset(skip).limit(limit).all()]
    return {
        "items": items,
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }
