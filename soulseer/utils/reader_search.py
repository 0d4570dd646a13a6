"""
Reader directory filtering and sorting

Every filter that is set must match (logical AND); an unset filter matches
everything. Sorting is stable, so ties keep their incoming order.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

SORT_OPTIONS = ("rating", "experience", "price-low", "price-high", "sessions")


@dataclass
class ReaderFilters:
    q: Optional[str] = None
    specialty: Optional[str] = None
    min_rating: Optional[float] = None
    max_price: Optional[Decimal] = None  # hourly
    session_type: Optional[str] = None
    language: Optional[str] = None
    status: Optional[str] = None


def _lower(values: Iterable[str]) -> List[str]:
    return [str(v).lower() for v in (values or [])]


def matches(reader, filters: ReaderFilters) -> bool:
    if filters.q:
        needle = filters.q.strip().lower()
        haystack = [reader.full_name.lower(), (reader.bio or "").lower(), *_lower(reader.specialties)]
        if needle and not any(needle in text for text in haystack):
            return False

    if filters.specialty and filters.specialty.lower() not in _lower(reader.specialties):
        return False

    if filters.min_rating is not None and (reader.average_rating or 0) < filters.min_rating:
        return False

    if filters.max_price is not None:
        hourly = reader.hourly_rate
        if hourly is None or hourly > Decimal(str(filters.max_price)):
            return False

    if filters.session_type and filters.session_type.upper() not in [s.upper() for s in reader.session_types or []]:
        return False

    if filters.language and filters.language.lower() not in _lower(reader.languages):
        return False

    if filters.status and reader.status != filters.status.upper():
        return False

    return True


def filter_readers(readers: Iterable[T], filters: ReaderFilters) -> List[T]:
    return [r for r in readers if matches(r, filters)]


def sort_readers(readers: Sequence[T], sort_by: str = "rating") -> List[T]:
    """
    rating / experience / sessions sort descending, price-low / price-high by
    hourly rate. Readers without a rate go last for both price orders.
    """
    readers = list(readers)

    if sort_by == "experience":
        return sorted(readers, key=lambda r: r.experience_years or 0, reverse=True)
    if sort_by == "sessions":
        return sorted(readers, key=lambda r: r.total_sessions or 0, reverse=True)
    if sort_by in ("price-low", "price-high"):
        priced = [r for r in readers if r.hourly_rate is not None]
        unpriced = [r for r in readers if r.hourly_rate is None]
        priced = sorted(priced, key=lambda r: r.hourly_rate, reverse=(sort_by == "price-high"))
        return priced + unpriced

    # sorted() with reverse=True is still stable
    return sorted(readers, key=lambda r: r.average_rating or 0, reverse=True)


def paginate(items: Sequence[T], limit: int, offset: int) -> Tuple[List[T], int, bool]:
    """(page, total, has_more)"""
    total = len(items)
    page = list(items[offset:offset + limit])
    return page, total, offset + limit < total
