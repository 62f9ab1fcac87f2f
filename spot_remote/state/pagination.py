"""
Pagination cache for windowed remote collections.

Large collections (saved tracks, saved albums, playlist tracks, show
episodes...) are fetched one page at a time. A PaginationCache keeps the
pages fetched so far in fetch order, with a cursor on the page currently
shown.

The offset helpers below compute where the next fetch should start. They
return None when the move is a no-op (already on the last or first page),
so callers can write:

    offset = next_page_offset(current, limit, total)
    if offset is not None:
        await engine.execute(FetchPlaylistTracks(playlist_id, offset))
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from spot_remote.spotify.models import Page

T = TypeVar("T")


@dataclass
class PaginationCache(Generic[T]):
    """
    Ordered pages of one remote collection.

    Attributes:
        pages: Pages in the order they were first fetched.
        page_index: Index of the current page in `pages`.
        source_id: Id of the collection the pages belong to (playlist id,
                   show id), for caches reused across collections.

    Invariants:
        - Pages are never reordered or removed (only clear() resets).
        - Adding a page whose offset is already cached replaces that page
          in place, so re-fetching page N never duplicates it.
        - total_count() is the total of the latest page added, which
          Spotify reports for the whole collection.
    """
    pages: list[Page[T]] = field(default_factory=list)
    page_index: int = 0
    source_id: str | None = None
    _total: int = field(default=0, init=False, repr=False)

    def add_page(self, page: Page[T]) -> None:
        """
        Add a fetched page and make it current.

        Args:
            page: The page to add. Its offset identifies it.
        """
        for index, cached in enumerate(self.pages):
            if cached.offset == page.offset:
                self.pages[index] = page
                self.page_index = index
                break
        else:
            self.pages.append(page)
            self.page_index = len(self.pages) - 1
        self._total = page.total

    def current_page(self, index: int | None = None) -> Page[T] | None:
        """
        Return the page at `index`, or the current page when omitted.

        Returns None when nothing is cached or the index is out of range.
        """
        position = self.page_index if index is None else index
        if 0 <= position < len(self.pages):
            return self.pages[position]
        return None

    def page_at_offset(self, offset: int) -> Page[T] | None:
        """Return the cached page fetched at `offset`, if any."""
        for page in self.pages:
            if page.offset == offset:
                return page
        return None

    def total_count(self) -> int:
        return self._total

    def clear(self) -> None:
        self.pages.clear()
        self.page_index = 0
        self._total = 0

    def reset_for(self, source_id: str) -> None:
        """Start over when the cache holds pages of another collection."""
        if self.source_id != source_id:
            self.clear()
            self.source_id = source_id


# =========================================================================
# Offset arithmetic
# =========================================================================

def next_page_offset(offset: int, page_size: int, total: int) -> int | None:
    """
    Offset of the following page, or None when `offset` is the last page.

    Example:
        next_page_offset(0, 20, 45)   # 20
        next_page_offset(25, 20, 45)  # None (25 + 20 >= 45)
    """
    if offset + page_size < total:
        return offset + page_size
    return None


def previous_page_offset(offset: int, page_size: int) -> int | None:
    """
    Offset of the preceding page, or None when already on the first page.

    Example:
        previous_page_offset(25, 20)  # 5
        previous_page_offset(10, 20)  # None
    """
    if offset >= page_size:
        return offset - page_size
    return None


def last_page_offset(page_size: int, total: int) -> int | None:
    """
    Offset of the last page, or None when everything fits in one page.

    The last page starts at total rounded down to a multiple of page_size.
    When total is an exact multiple the page at that offset is empty.

    Example:
        last_page_offset(20, 45)  # 40
        last_page_offset(20, 40)  # 40
        last_page_offset(50, 45)  # None
    """
    if page_size < total:
        return total - (total % page_size)
    return None


def first_page_offset() -> int:
    return 0
