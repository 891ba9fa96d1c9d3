import pytest

from storefront.errors import InvalidInput
from storefront.pagination import paginate


@pytest.mark.parametrize("page", [0, -1, -50])
def test_non_positive_page_is_first_page(page):
    result = paginate(total_count=14, page=page, page_size=6)
    assert result.current_page == 1
    assert result.offset == 0


@pytest.mark.parametrize("total,size,pages", [(0, 6, 0), (1, 6, 1), (6, 6, 1), (7, 6, 2), (13, 6, 3), (100, 10, 10)])
def test_total_pages_is_ceiling(total, size, pages):
    assert paginate(total, 1, size).total_pages == pages


def test_offset_follows_current_page():
    assert paginate(30, 3, 6).offset == 12


def test_page_past_the_end_is_not_clamped():
    result = paginate(total_count=10, page=999, page_size=6)
    assert result.current_page == 999
    assert result.total_pages == 2
    assert result.offset == 998 * 6


def test_rejects_bad_page_size_and_negative_total():
    with pytest.raises(InvalidInput):
        paginate(10, 1, 0)
    with pytest.raises(InvalidInput):
        paginate(-1, 1, 6)
