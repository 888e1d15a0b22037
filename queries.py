"""
List query builder.

Turns the list-page query string (q, a categorical filter, a time window,
page, limit) into a MongoDB filter and a paginated, newest-first result.
"""
import math
import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Type

from database import get_documents, count_documents, utcnow
from errors import InvalidInput
from schemas import Category, OrderStatus, Role, TimeWindow

ALL = "ALL"
MAX_LIMIT = 100

DEFAULT_LIMITS = {
    "customer": 24,
    "order": 24,
    "product": 12,
    "user": 10,
}

NEWEST_FIRST = [("created_at", -1), ("_id", -1)]


def _contains(q: str) -> dict:
    return {"$regex": re.escape(q), "$options": "i"}


def _text_match(q: Optional[str], fields) -> Optional[dict]:
    q = (q or "").strip()
    if not q:
        return None
    return {"$or": [{f: _contains(q)} for f in fields]}


def parse_choice(value: Optional[str], enum_cls: Type[Enum], field: str) -> Optional[Enum]:
    """'ALL' (or no value) means no filter; anything else must be an enum member."""
    if value is None or value == ALL:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join([ALL] + [m.value for m in enum_cls])
        raise InvalidInput("Invalid filter", {field: f"Must be one of: {allowed}"})


def time_window_bound(window: TimeWindow, now: Optional[datetime] = None) -> Optional[datetime]:
    now = now or utcnow()
    if window == TimeWindow.ALL:
        return None
    if window == TimeWindow.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == TimeWindow.LAST_7_DAYS:
        return now - timedelta(days=7)
    if window == TimeWindow.LAST_30_DAYS:
        return now - timedelta(days=30)
    raise ValueError(f"Unknown time window: {window}")


def _combine(*clauses: Optional[dict]) -> dict:
    parts = [c for c in clauses if c]
    if not parts:
        return {}
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


# ===================== Per-entity filters =====================
def customer_filter(q: Optional[str] = None) -> dict:
    return _combine(_text_match(q, ("name", "email")))


def product_filter(q: Optional[str] = None, category: Optional[str] = None) -> dict:
    chosen = parse_choice(category, Category, "category")
    return _combine(
        _text_match(q, ("name",)),
        {"category": chosen.value} if chosen else None,
    )


def user_filter(q: Optional[str] = None, role: Optional[str] = None) -> dict:
    chosen = parse_choice(role, Role, "role")
    return _combine(
        _text_match(q, ("name", "username")),
        {"role": chosen.value} if chosen else None,
    )


def order_filter(
    q: Optional[str] = None,
    status: Optional[str] = None,
    time: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    chosen = parse_choice(status, OrderStatus, "status")
    window = parse_choice(time, TimeWindow, "time") or TimeWindow.ALL
    bound = time_window_bound(window, now)

    search = None
    q = (q or "").strip()
    if q:
        # customer name / phone live on the customer document
        customers = get_documents(
            "customer",
            {"$or": [{"name": _contains(q)}, {"phone": _contains(q)}]},
            projection={"_id": 1},
        )
        alternatives = [{"order_number": _contains(q)}]
        if customers:
            alternatives.append({"customer_id": {"$in": [c["id"] for c in customers]}})
        alternatives.append({"id_text": _contains(q)})
        search = {"$or": alternatives}

    return _combine(
        search,
        {"status": chosen.value} if chosen else None,
        {"created_at": {"$gte": bound}} if bound else None,
    )


# ===================== Pagination =====================
def check_page(page: int, limit: int) -> int:
    """Validate paging input and return the effective limit, capped at MAX_LIMIT."""
    errors = {}
    if page < 1:
        errors["page"] = "Page must be at least 1"
    if limit < 1:
        errors["limit"] = "Limit must be at least 1"
    if errors:
        raise InvalidInput("Invalid pagination", errors)
    return min(limit, MAX_LIMIT)


def paginate(collection_name: str, filter_dict: dict, page: int, limit: int, projection: Optional[dict] = None) -> dict:
    limit = check_page(page, limit)
    total = count_documents(collection_name, filter_dict)
    data = get_documents(
        collection_name,
        filter_dict,
        limit=limit,
        sort=NEWEST_FIRST,
        skip=(page - 1) * limit,
        projection=projection,
    )
    return {
        "data": data,
        "pagination": {
            "total": total,
            "totalPages": math.ceil(total / limit),
            "currentPage": page,
            "limit": limit,
        },
    }
