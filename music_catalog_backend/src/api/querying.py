"""
Shared list-query helpers: substring search, whitelisted ordering, pagination.

Important:
- Sort keys arrive from the query string. They are only ever used to look up a
  column in a per-entity allow-list; unknown keys are rejected, never passed
  through to the query.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, List, Mapping, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.orm import Session

from src.api.errors import ValidationFailedError

T = TypeVar("T")

MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    """1-based page number plus page size."""

    page: int = 1
    limit: int = 10

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationFailedError("page must be >= 1")
        if not 1 <= self.limit <= MAX_LIMIT:
            raise ValidationFailedError(f"limit must be between 1 and {MAX_LIMIT}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


# PUBLIC_INTERFACE
def contains(column, text: str) -> ColumnElement[bool]:
    """
    Case-insensitive substring match; `%` and `_` in `text` match literally.

    Case folding covers non-ASCII letters: PostgreSQL uses ILIKE, and SQLite
    connections get a Unicode-aware lower() from `src.api.db`.
    """
    return column.icontains(text, autoescape=True)


# PUBLIC_INTERFACE
def order_by_clause(
    allowed: Mapping[str, ColumnElement],
    sort_by: str,
    order: str,
    tiebreaker: ColumnElement,
) -> Tuple[ColumnElement, ...]:
    """
    Translate (sort_by, order) into ORDER BY expressions.

    `allowed` maps accepted query values (e.g. "createdAt") to columns. The id
    tiebreaker keeps paging stable when the sort column has duplicates.

    Raises:
        ValidationFailedError: unknown sort key or direction.
    """
    column = allowed.get(sort_by)
    if column is None:
        accepted = ", ".join(sorted(allowed))
        raise ValidationFailedError(f"Unsupported sortBy '{sort_by}'. Expected one of: {accepted}.")

    direction = (order or "asc").lower()
    if direction == "asc":
        return (column.asc(), tiebreaker.asc())
    if direction == "desc":
        return (column.desc(), tiebreaker.desc())
    raise ValidationFailedError(f"Unsupported order '{order}'. Expected 'asc' or 'desc'.")


# PUBLIC_INTERFACE
def paginate(db: Session, stmt: Select, page_request: PageRequest) -> Page:
    """
    Run `stmt` for one page and count the full filtered result.

    The statement must select a single ORM entity; filters must not multiply
    rows (use EXISTS-style `.any()`/`.has()` rather than joins).
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = int(db.scalar(count_stmt) or 0)

    items: Sequence = db.scalars(stmt.offset(page_request.offset).limit(page_request.limit)).all()
    return Page(items=list(items), total=total, page=page_request.page, limit=page_request.limit)


def normalize_search(text: Optional[str]) -> Optional[str]:
    """Blank search strings mean "no filter"."""
    if text is None:
        return None
    text = text.strip()
    return text or None
