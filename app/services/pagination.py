import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings


def normalize_page(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    page = max(1, page or 1)
    limit = limit or settings.DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, settings.MAX_PAGE_SIZE))
    return page, limit


def page_meta(total_records: int, page: int, limit: int) -> Dict[str, Any]:
    total_pages = math.ceil(total_records / limit) if total_records else 0
    return {
        "current_page": page,
        "limit": limit,
        "total_records": total_records,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def paginate_query(query, page: Optional[int], limit: Optional[int]):
    """Apply offset/limit to an ordered query; returns (items, meta)."""
    page, limit = normalize_page(page, limit)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, page_meta(total, page, limit)


def paginate_rows(rows: Sequence[Any], page: Optional[int], limit: Optional[int]):
    """Paginate an already computed, deterministically ordered list."""
    page, limit = normalize_page(page, limit)
    start = (page - 1) * limit
    data: List[Any] = list(rows[start:start + limit])
    return data, page_meta(len(rows), page, limit)
