"""
Cursor pagination primitive.
"""

from typing import Any, Callable, Generator, Generic, Optional, TypeVar

from .models import Page

T = TypeVar("T")

FetchOperation = Callable[[Optional[Any]], Page[T]]
# A truthy result stops paging; predicates may return the reason itself
StopPredicate = Callable[[Page[T], Optional[Any]], Any]


def cursor_exhausted(page: Page[Any], cursor: Optional[Any]) -> bool:
    """Mechanical stop rule: no next cursor, or the provider repeated the last one."""
    return page.next_cursor is None or page.next_cursor == cursor


class PagedFetcher(Generic[T]):
    """Drives a ``(cursor) -> Page`` operation over a remote collection.

    The fetcher knows nothing about what it is paging through. Callers
    supply the stopping policy; errors raised by the fetch operation
    propagate unchanged.
    """

    def __init__(
        self,
        fetch: FetchOperation[T],
        should_stop: StopPredicate[T] = cursor_exhausted,
    ):
        self.fetch = fetch
        self.should_stop = should_stop

    def fetch_page(self, cursor: Optional[Any] = None) -> Page[T]:
        """Fetch a single page starting at ``cursor``."""
        return self.fetch(cursor)

    def iter_pages(self) -> Generator[Page[T], None, None]:
        """Yield pages from the head of the collection until the stop policy fires."""
        cursor = None
        while True:
            page = self.fetch_page(cursor)
            yield page
            if self.should_stop(page, cursor):
                return
            cursor = page.next_cursor

    def fetch_all(self) -> list[T]:
        """Collect every item across all pages."""
        items: list[T] = []
        for page in self.iter_pages():
            items.extend(page.items)
        return items
