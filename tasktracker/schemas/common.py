from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


def envelope(
    data: Any = None,
    message: str = "Success",
    pagination: Optional[Pagination] = None,
) -> dict:
    """{success, message, data, pagination?} 응답 봉투."""
    body: dict = {"success": True, "message": message, "data": data}
    if pagination is not None:
        body["pagination"] = pagination
    return body
