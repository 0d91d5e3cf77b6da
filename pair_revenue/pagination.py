"""
Offset pagination helper for cl-pair-revenue

lightningd list commands that support paging take a start index and a
limit and return at most `limit` records. query_paginated drains such a
source page by page until it returns a short page.
"""

from typing import Callable, List, Tuple, TypeVar

T = TypeVar('T')

# fetch_page(offset, page_size) -> (records, next_offset)
PageFetcher = Callable[[int, int], Tuple[List[T], int]]


def query_paginated(fetch_page: PageFetcher, page_size: int,
                    offset: int = 0, plugin=None) -> List[T]:
    """
    Fetch every record from a paginated source.

    Each call passes the offset returned by the previous call. Fetching
    stops once a page holds fewer than page_size records. Exceptions
    raised by fetch_page propagate unchanged and nothing is returned.

    Args:
        fetch_page: Callable returning (records, next_offset)
        page_size: Number of records requested per page
        offset: Offset of the first page
        plugin: Optional plugin instance for logging

    Returns:
        All records, in source order
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    records: List[T] = []

    while True:
        page, next_offset = fetch_page(offset, page_size)
        records.extend(page)

        if plugin:
            plugin.log(
                f"Fetched page at offset {offset}: {len(page)} records "
                f"(next offset {next_offset})",
                level='debug'
            )

        if len(page) < page_size:
            return records

        offset = next_offset
