"""
tests/test_pagination.py
"""

import pytest

from config.settings import settings
from shared.utils.pagination import normalize_page, total_pages


def test_defaults():
    params = normalize_page()
    assert params.page == 1
    assert params.limit == settings.DEFAULT_PAGE_SIZE
    assert params.offset == 0


@pytest.mark.parametrize(
    "page, limit, expected",
    [
        (0, 10, (1, 10)),
        (-3, 10, (1, 10)),
        (2, 0, (2, 1)),
        (2, 10_000, (2, settings.MAX_PAGE_SIZE)),
        (3, 20, (3, 20)),
    ],
)
def test_normalize_page(page, limit, expected):
    params = normalize_page(page, limit)
    assert (params.page, params.limit) == expected


def test_offset():
    assert normalize_page(3, 20).offset == 40


@pytest.mark.parametrize(
    "count, limit, expected",
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (50, 7, 8)],
)
def test_total_pages(count, limit, expected):
    assert total_pages(count, limit) == expected
