"""
State module for spot-remote.

    - pagination: PaginationCache and offset arithmetic
    - containment: ContainmentSet with three-state lookup
    - store: AppState aggregate and the lock-guarded SharedStore
"""

from spot_remote.state.containment import ContainmentSet, Membership
from spot_remote.state.pagination import (
    PaginationCache,
    first_page_offset,
    last_page_offset,
    next_page_offset,
    previous_page_offset,
)
from spot_remote.state.store import (
    ActiveBlock,
    AppState,
    RouteId,
    SharedStore,
    TrackTableContext,
)

__all__ = [
    "ContainmentSet",
    "Membership",
    "PaginationCache",
    "first_page_offset",
    "last_page_offset",
    "next_page_offset",
    "previous_page_offset",
    "ActiveBlock",
    "AppState",
    "RouteId",
    "SharedStore",
    "TrackTableContext",
]
