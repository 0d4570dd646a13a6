"""Tests for reader directory filtering, sorting and paging."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from soulseer.utils.reader_search import (ReaderFilters, filter_readers,
                                          paginate, sort_readers)


def reader(name, *, rating=0.0, hourly=None, years=0, sessions=0, specialties=(),
           types=("CHAT",), languages=("English",), status="OFFLINE", bio=""):
    return SimpleNamespace(
        full_name=name,
        bio=bio,
        specialties=list(specialties),
        average_rating=rating,
        hourly_rate=Decimal(hourly) if hourly is not None else None,
        experience_years=years,
        total_sessions=sessions,
        session_types=list(types),
        languages=list(languages),
        status=status,
    )


@pytest.fixture
def readers():
    return [
        reader("Ada Moon", rating=4.8, hourly="120", years=10, sessions=50,
               specialties=["Tarot", "Love"], status="ONLINE"),
        reader("Bo Star", rating=4.2, hourly="60", years=3, sessions=200,
               specialties=["Astrology"], types=("CALL", "VIDEO"), languages=("Spanish",)),
        reader("Cy Sun", rating=4.8, hourly=None, years=6, sessions=5,
               specialties=["Tarot"], bio="Clairvoyant since childhood"),
    ]


def names(items):
    return [r.full_name for r in items]


def test_no_filters_match_everyone(readers):
    assert names(filter_readers(readers, ReaderFilters())) == ["Ada Moon", "Bo Star", "Cy Sun"]


def test_text_query_matches_name_bio_or_specialty(readers):
    assert names(filter_readers(readers, ReaderFilters(q="moon"))) == ["Ada Moon"]
    assert names(filter_readers(readers, ReaderFilters(q="clairvoyant"))) == ["Cy Sun"]
    assert names(filter_readers(readers, ReaderFilters(q="astro"))) == ["Bo Star"]


def test_filters_combine_with_and(readers):
    filters = ReaderFilters(specialty="tarot", min_rating=4.5, max_price=Decimal("150"))
    # Cy Sun has no rate, so a price ceiling excludes them
    assert names(filter_readers(readers, filters)) == ["Ada Moon"]


def test_session_type_language_and_status(readers):
    assert names(filter_readers(readers, ReaderFilters(session_type="video"))) == ["Bo Star"]
    assert names(filter_readers(readers, ReaderFilters(language="spanish"))) == ["Bo Star"]
    assert names(filter_readers(readers, ReaderFilters(status="online"))) == ["Ada Moon"]


def test_rating_sort_is_stable(readers):
    assert names(sort_readers(readers, "rating")) == ["Ada Moon", "Cy Sun", "Bo Star"]


def test_price_sorts_put_unpriced_last(readers):
    assert names(sort_readers(readers, "price-low")) == ["Bo Star", "Ada Moon", "Cy Sun"]
    assert names(sort_readers(readers, "price-high")) == ["Ada Moon", "Bo Star", "Cy Sun"]


def test_experience_and_session_sorts(readers):
    assert names(sort_readers(readers, "experience")) == ["Ada Moon", "Cy Sun", "Bo Star"]
    assert names(sort_readers(readers, "sessions")) == ["Bo Star", "Ada Moon", "Cy Sun"]


def test_paginate(readers):
    page, total, has_more = paginate(readers, limit=2, offset=0)
    assert names(page) == ["Ada Moon", "Bo Star"]
    assert total == 3
    assert has_more is True

    page, _, has_more = paginate(readers, limit=2, offset=2)
    assert names(page) == ["Cy Sun"]
    assert has_more is False
