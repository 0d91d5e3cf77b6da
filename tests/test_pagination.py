"""
Tests for the offset pagination loop.
"""

import pytest

from pair_revenue.pagination import query_paginated


class MockPageSource:
    """Serves a list of records in pages and records the calls made."""

    def __init__(self, records, error_at_call=None):
        self.records = records
        self.error_at_call = error_at_call
        self.calls = []

    def __call__(self, offset, page_size):
        self.calls.append((offset, page_size))
        if self.error_at_call is not None and len(self.calls) == self.error_at_call:
            raise RuntimeError("error thrown by mock")
        page = self.records[offset:offset + page_size]
        return page, offset + len(page)


class TestQueryPaginated:
    """Test draining a paginated source."""

    def test_single_short_page(self):
        """A first page shorter than page_size ends the query."""
        source = MockPageSource([1, 2])

        assert query_paginated(source, page_size=5) == [1, 2]
        assert source.calls == [(0, 5)]

    def test_multiple_pages_in_order(self):
        """Records from every page are concatenated in source order."""
        source = MockPageSource(list(range(7)))

        assert query_paginated(source, page_size=3) == list(range(7))
        assert source.calls == [(0, 3), (3, 3), (6, 3)]

    def test_exact_multiple_needs_empty_page(self):
        """A full last page is followed by one more (empty) request."""
        source = MockPageSource(list(range(6)))

        assert query_paginated(source, page_size=3) == list(range(6))
        assert source.calls == [(0, 3), (3, 3), (6, 3)]

    def test_empty_source(self):
        """An empty source returns an empty list after one call."""
        source = MockPageSource([])

        assert query_paginated(source, page_size=3) == []
        assert len(source.calls) == 1

    def test_next_offset_comes_from_source(self):
        """The offset returned by a page is passed to the next call unchanged."""
        calls = []

        def fetch(offset, page_size):
            calls.append(offset)
            if offset == 0:
                return ["a", "b"], 42
            return ["c"], 99

        assert query_paginated(fetch, page_size=2) == ["a", "b", "c"]
        assert calls == [0, 42]

    def test_error_propagates_without_partial_result(self):
        """An error on a later page is raised unchanged."""
        source = MockPageSource(list(range(10)), error_at_call=2)

        with pytest.raises(RuntimeError, match="error thrown by mock"):
            query_paginated(source, page_size=3)

    def test_invalid_page_size_raises(self):
        with pytest.raises(ValueError):
            query_paginated(MockPageSource([]), page_size=0)

    def test_logs_each_page(self, mock_plugin):
        """Each fetched page is logged at debug level."""
        source = MockPageSource(list(range(4)))

        query_paginated(source, page_size=3, plugin=mock_plugin)

        assert mock_plugin.log.call_count == 2
        assert all(c.kwargs["level"] == 'debug' for c in mock_plugin.log.call_args_list)
