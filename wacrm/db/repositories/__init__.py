"""
Per-domain repository modules for database access.

Functions take an explicit ``db: Session``, commit their own writes and
return ORM objects; routers translate missing rows into HTTP errors.
"""
from typing import Tuple, List, Any

MAX_PAGE_SIZE = 200


def normalize_paging(page: int, page_size: int) -> Tuple[int, int]:
    """Clamp page to >= 1 and page_size to [1, MAX_PAGE_SIZE]."""
    page = max(1, int(page or 1))
    page_size = max(1, min(int(page_size or 20), MAX_PAGE_SIZE))
    return page, page_size


def paginate(query, page: int, page_size: int) -> Tuple[List[Any], int]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return items, total
