"""Pagination utilities for list and match endpoints."""

import math
from dataclasses import dataclass

from triage_catalog.core.config import settings


# Pagination limits
DEFAULT_PAGE = 1


@dataclass
class PaginationParams:
    """Pagination parameters after coercion."""
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def _positive_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def coerce_page_params(
    page: object = None,
    per_page: object = None,
    default_per_page: int | None = None,
    max_per_page: int | None = None,
) -> PaginationParams:
    """
    Coerce loosely typed page/per_page values to positive integers.

    A missing, non-numeric or non-positive page becomes 1; the same for
    per_page falls back to the default. per_page is capped.
    """
    default_size = default_per_page or settings.MATCH_DEFAULT_PAGE_SIZE
    max_size = max_per_page or settings.MATCH_MAX_PAGE_SIZE

    resolved_page = _positive_int(page) or DEFAULT_PAGE
    resolved_size = _positive_int(per_page) or default_size
    return PaginationParams(page=resolved_page, per_page=min(resolved_size, max_size))


@dataclass
class PageMeta:
    """Pagination metadata returned alongside list and match results."""
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def create(cls, total: int, pagination: PaginationParams) -> "PageMeta":
        pages = math.ceil(total / pagination.per_page) if pagination.per_page > 0 else 0
        return cls(
            current_page=pagination.page,
            total_pages=pages,
            total_items=total,
            items_per_page=pagination.per_page,
            has_next_page=pagination.page < pages,
            has_prev_page=pagination.page > 1,
        )


def paginate_list(items: list, pagination: PaginationParams) -> list:
    """Slice an already ordered list for the requested page."""
    return items[pagination.offset:pagination.offset + pagination.per_page]
