import math

from .errors import InvalidInput
from .schemas import Pagination


def paginate(total_count: int, page: int, page_size: int) -> Pagination:
    """
    Compute page bounds for a listing.

    Pages are 1-based; anything at or below zero is treated as the first page.
    There is no upper clamp: asking for a page past the end yields an offset
    beyond the data, i.e. an empty window rather than an error.
    """
    if total_count < 0:
        raise InvalidInput("Total count cannot be negative")
    if page_size <= 0:
        raise InvalidInput("Page size must be positive")

    current_page = page if page > 0 else 1
    total_pages = math.ceil(total_count / page_size)
    return Pagination(
        current_page=current_page,
        total_pages=total_pages,
        offset=(current_page - 1) * page_size,
    )
