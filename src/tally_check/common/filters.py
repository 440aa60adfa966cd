"""Search, filter and pagination helpers shared by the dashboard tables."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from ..core.constants import DEFAULT_PAGE_SIZE

T = TypeVar("T")


def matches_search(term: Optional[str], *fields: Optional[str]) -> bool:
    """Case-insensitive substring match of `term` against any of `fields`.

    An empty term matches everything.
    """

    needle = (term or "").strip().lower()
    if not needle:
        return True
    return any(needle in (f or "").lower() for f in fields)


def filter_by_method(items: Iterable[T], method: Optional[str], get_method: Callable[[T], Optional[str]]) -> list[T]:
    """Keep items whose method equals `method` ('all' or empty keeps everything)."""

    wanted = (method or "all").strip().upper()
    if wanted == "ALL":
        return list(items)
    return [i for i in items if (get_method(i) or "").upper() == wanted]


@dataclass(frozen=True)
class Page:
    items: list
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: Sequence[T], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
    page_size = max(int(page_size), 1)
    total_pages = math.ceil(len(items) / page_size)
    page = min(max(int(page), 1), max(total_pages, 1))
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total_items=len(items),
        total_pages=total_pages,
    )
