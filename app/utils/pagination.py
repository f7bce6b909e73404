"""Page/limit helpers shared by the paginated listing endpoints"""

import math

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def page_offset(page: int, limit: int) -> int:
    """Number of documents to skip for a 1-indexed page."""
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
