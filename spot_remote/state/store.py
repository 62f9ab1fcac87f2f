"""
Shared state store for spot-remote.

AppState is the single in-memory aggregate describing the account and
playback as last seen: the playback context, library caches, containment
sets, navigation stack, search results, the view state the interactive
and command layers read, and transient flags.

Access Rules:
    - Only the dispatch engine writes, and only inside
      `async with store.mutate() as state:` blocks.
    - A mutate block holds the store's single asyncio.Lock. It contains
      plain assignments only; no remote call is ever awaited inside one.
    - Readers call read()/snapshot(), which copy data out under the lock,
      so they never observe a half-applied mutation.

Lifecycle:
    Created once at startup with every field empty, lives for the process
    lifetime, discarded on exit (nothing is persisted).
"""

import asyncio
import copy
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from time import monotonic
from typing import TypeVar

from spot_remote.core.config import DEFAULT_LARGE_SEARCH_LIMIT, DEFAULT_SMALL_SEARCH_LIMIT
from spot_remote.core.exceptions import SpotRemoteError
from spot_remote.spotify.models import (
    Album,
    Artist,
    ArtistDetail,
    AudioAnalysis,
    Device,
    Episode,
    Page,
    PlaybackContext,
    PlayHistory,
    Playlist,
    SearchResults,
    Show,
    Track,
    User,
)
from spot_remote.state.containment import ContainmentSet
from spot_remote.state.pagination import PaginationCache

R = TypeVar("R")


# =========================================================================
# Navigation
# =========================================================================

class RouteId(Enum):
    HOME = "home"
    SEARCH = "search"
    TRACK_TABLE = "track_table"
    ALBUM_TRACKS = "album_tracks"
    ARTIST = "artist"
    PODCAST_EPISODES = "podcast_episodes"
    RECOMMENDATIONS = "recommendations"
    RECENTLY_PLAYED = "recently_played"
    SELECTED_DEVICE = "selected_device"
    ANALYSIS = "analysis"


class ActiveBlock(Enum):
    EMPTY = "empty"
    SEARCH_RESULTS = "search_results"
    TRACK_TABLE = "track_table"
    ALBUM_TRACKS = "album_tracks"
    ARTIST = "artist"
    EPISODE_TABLE = "episode_table"
    RECENTLY_PLAYED = "recently_played"
    SELECT_DEVICE = "select_device"
    ANALYSIS = "analysis"


@dataclass(frozen=True)
class Route:
    """One frame of the navigation stack."""
    route_id: RouteId
    active_block: ActiveBlock


class NavigationStack:
    """
    Stack of views. Push and pop only; the top frame is the current view.

    The root frame (HOME) is never popped.
    """

    def __init__(self) -> None:
        self._frames: list[Route] = [Route(RouteId.HOME, ActiveBlock.EMPTY)]

    def push(self, route_id: RouteId, active_block: ActiveBlock) -> None:
        """Push a frame unless it is already on top."""
        frame = Route(route_id, active_block)
        if self._frames[-1] != frame:
            self._frames.append(frame)

    def pop(self) -> Route | None:
        if len(self._frames) > 1:
            return self._frames.pop()
        return None

    @property
    def current(self) -> Route:
        return self._frames[-1]

    @property
    def frames(self) -> tuple[Route, ...]:
        return tuple(self._frames)

    def __len__(self) -> int:
        return len(self._frames)


# =========================================================================
# View state
# =========================================================================

class TrackTableContext(Enum):
    """What the flat track table is currently showing."""

    MY_PLAYLISTS = "my_playlists"
    SAVED_TRACKS = "saved_tracks"
    RECOMMENDED_TRACKS = "recommended_tracks"
    MADE_FOR_YOU = "made_for_you"
    ALBUM_SEARCH = "album_search"
    PLAYLIST_SEARCH = "playlist_search"


class EpisodeTableContext(Enum):
    SIMPLIFIED = "simplified"
    FULL = "full"


@dataclass
class TrackTable:
    tracks: list[Track] = field(default_factory=list)
    context: TrackTableContext | None = None
    selected_index: int = 0


@dataclass(frozen=True)
class SelectedAlbum:
    """An album opened in the album view, with its first page of tracks."""
    album: Album
    tracks: Page[Track]
    selected_index: int = 0


@dataclass
class Library:
    """One pagination cache per windowed collection."""
    saved_tracks: PaginationCache[Track] = field(default_factory=PaginationCache)
    saved_albums: PaginationCache[Album] = field(default_factory=PaginationCache)
    saved_shows: PaginationCache[Show] = field(default_factory=PaginationCache)
    followed_artists: PaginationCache[Artist] = field(default_factory=PaginationCache)
    made_for_you_playlists: PaginationCache[Playlist] = field(default_factory=PaginationCache)
    show_episodes: PaginationCache[Episode] = field(default_factory=PaginationCache)
    playlist_tracks: PaginationCache[Track] = field(default_factory=PaginationCache)
    made_for_you_tracks: PaginationCache[Track] = field(default_factory=PaginationCache)


@dataclass
class Transient:
    """
    Flags describing the intent in flight.

    Attributes:
        is_loading: True while an intent executes.
        last_error: Most recent recorded failure, kept until the next one.
        error_count: Number of failures recorded since startup. Callers
                     compare it before and after execute() to learn whether
                     their intent (or one of its follow-ups) failed.
    """
    is_loading: bool = False
    last_error: SpotRemoteError | None = None
    error_count: int = 0


@dataclass
class AppState:
    """
    The aggregate guarded by SharedStore.

    playback is replaced wholesale on each fetch; only the volume, shuffle
    and repeat patches touch it in between.

    The search limits and the target device are runtime settings: they start
    from config.yaml and change through UpdateSearchLimits and
    TransferPlayback. device_id None targets the active device.
    """
    playback: PlaybackContext | None = None
    last_playback_poll: float | None = None
    song_progress_ms: int = 0

    library: Library = field(default_factory=Library)

    liked_tracks: ContainmentSet = field(default_factory=lambda: ContainmentSet("liked tracks"))
    saved_albums: ContainmentSet = field(default_factory=lambda: ContainmentSet("saved albums"))
    saved_shows: ContainmentSet = field(default_factory=lambda: ContainmentSet("saved shows"))
    followed_artists: ContainmentSet = field(
        default_factory=lambda: ContainmentSet("followed artists")
    )

    navigation: NavigationStack = field(default_factory=NavigationStack)
    transient: Transient = field(default_factory=Transient)
    search_results: SearchResults = field(default_factory=SearchResults)

    large_search_limit: int = DEFAULT_LARGE_SEARCH_LIMIT
    small_search_limit: int = DEFAULT_SMALL_SEARCH_LIMIT
    device_id: str | None = None

    user: User | None = None
    devices: list[Device] = field(default_factory=list)
    selected_device_index: int | None = None

    playlists: Page[Playlist] | None = None
    selected_playlist_index: int | None = None
    playlist_offset: int = 0
    made_for_you_offset: int = 0

    track_table: TrackTable = field(default_factory=TrackTable)
    artists: list[Artist] = field(default_factory=list)
    artist: ArtistDetail | None = None
    selected_album: SelectedAlbum | None = None
    selected_show: Show | None = None
    episode_table_context: EpisodeTableContext = EpisodeTableContext.FULL
    recommended_tracks: list[Track] = field(default_factory=list)
    recently_played: list[PlayHistory] = field(default_factory=list)
    audio_analysis: AudioAnalysis | None = None


class SharedStore:
    """
    Owner of the AppState and of the lock guarding it.

    Example:
        store = SharedStore()

        async with store.mutate() as state:
            state.playback = playback
            state.last_playback_poll = store.now()

        playlists = await store.read(lambda s: s.playlists)
    """

    def __init__(self, state: AppState | None = None) -> None:
        self._state = state if state is not None else AppState()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def mutate(self) -> AsyncIterator[AppState]:
        """Hold the lock and yield the live state for assignment."""
        async with self._lock:
            yield self._state

    async def read(self, reader: Callable[[AppState], R]) -> R:
        """
        Copy a value out of the state under the lock.

        Args:
            reader: Selects what to read from the state.

        Returns:
            A deep copy of the selected value, safe to keep after the lock
            is released.
        """
        async with self._lock:
            return copy.deepcopy(reader(self._state))

    async def snapshot(self) -> AppState:
        """Deep copy of the whole state."""
        return await self.read(lambda state: state)

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @staticmethod
    def now() -> float:
        return monotonic()
