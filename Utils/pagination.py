import math

from flask import current_app, request

from Utils.appError import InvalidRequest


def _positive_int(name, default):
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidRequest(f"{name} must be a positive integer")
    if value < 1:
        raise InvalidRequest(f"{name} must be a positive integer")
    return value


def get_page_params(default_limit):
    """Read ?page and ?limit from the query string."""
    page = _positive_int("page", 1)
    limit = min(_positive_int("limit", default_limit), current_app.config["MAX_PAGE_SIZE"])
    return page, limit


def paginate(queryset, page, limit):
    """Return (items, pagination meta) for a mongoengine queryset."""
    total = queryset.count()
    items = list(queryset.skip((page - 1) * limit).limit(limit))
    return items, pagination_meta(page, limit, total)


def pagination_meta(page, limit, total):
    return {
        "currentPage": page,
        "totalPages": math.ceil(total / limit),
        "totalItems": total,
        "itemsPerPage": limit
    }
