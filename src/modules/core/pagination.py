"""Page-number pagination shared by the admin list endpoints.

The admin console speaks ``page`` / ``pageSize`` (1-based) and expects a
``pagination`` block alongside the data::

    {"page": 2, "pageSize": 20, "totalItems": 45, "totalPages": 3,
     "hasNextPage": true, "hasPrevPage": true}
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def parse_positive_int(raw: Optional[str], default: int) -> int:
    """Parse a query-string integer leniently; fall back to *default*."""
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def clamp_page(page: int) -> int:
    return max(1, page)


def clamp_page_size(page_size: int, maximum: int = MAX_PAGE_SIZE) -> int:
    return min(maximum, max(1, page_size))


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total_items: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_items / self.page_size))

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "pageSize": self.page_size,
            "totalItems": self.total_items,
            "totalPages": self.total_pages,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }
