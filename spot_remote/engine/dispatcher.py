"""
Event dispatch engine.

The engine is the only writer of the SharedStore. Callers hand it an
intent; it performs the remote calls the intent needs, then applies the
result to the store in one short critical section.

Execution of one intent:
    1. validate_intent() rejects bad input with ValidationError, raised
       to the caller before any remote call is made.
    2. transient.is_loading is set, and cleared again in a finally block.
    3. The handler selected by the match in _handle() runs. Handlers await
       their remote calls first, then take the lock once and assign.
    4. A SpotRemoteError escaping a handler (SpotifyError from the remote,
       PreconditionError from the handler) is recorded as
       transient.last_error and ends that intent only. The rest of the
       store is left as it was.
    5. Follow-up intents the handler queued (containment checks for newly
       loaded items, a playback refresh after starting playback, playing
       fresh recommendations) run one by one, each isolated the same way,
       before execute() returns.

Concurrency:
    Calls that do not depend on each other within one intent run through
    _join() (the five-way search, the three artist fetches). Every call is
    awaited to completion before the first failure is raised, so nothing
    is left running when execute() returns. If any of them fails, nothing
    from the joined calls is stored.

Usage:
    engine = DispatchEngine.from_config(SpotifyClient.from_config(config.spotify), config)
    await engine.execute(FetchPlayback())
    playback = await engine.store.read(lambda state: state.playback)
"""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from typing import Any, assert_never

from spot_remote.core.config import Config
from spot_remote.core.exceptions import PreconditionError, SpotRemoteError, ValidationError
from spot_remote.core.logger import get_logger, log_intent_failure
from spot_remote.engine.intents import (
    AddToQueue,
    ChangeVolume,
    CheckFollowedArtists,
    CheckSavedAlbums,
    CheckSavedShows,
    CheckSavedTracks,
    CycleRepeat,
    FetchAlbum,
    FetchAlbumForTrack,
    FetchAlbumTracks,
    FetchArtist,
    FetchAudioAnalysis,
    FetchDevices,
    FetchFollowedArtists,
    FetchMadeForYouTracks,
    FetchMoreShowEpisodes,
    FetchPlayback,
    FetchPlaylists,
    FetchPlaylistTracks,
    FetchRecentlyPlayed,
    FetchRecommendations,
    FetchRecommendationsForTrack,
    FetchSavedAlbums,
    FetchSavedShows,
    FetchSavedTracks,
    FetchShow,
    FetchShowEpisodes,
    FetchUser,
    Intent,
    MadeForYouSearchAndAdd,
    NextTrack,
    PausePlayback,
    PreviousTrack,
    RefreshAuthentication,
    SearchAll,
    Seek,
    SelectDevice,
    SetArtistsToTable,
    SetTracksToTable,
    StartPlayback,
    ToggleFollowArtist,
    ToggleFollowPlaylist,
    ToggleSaveAlbum,
    ToggleSaveShow,
    ToggleSaveTrack,
    ToggleShuffle,
    TransferPlayback,
    UpdateSearchLimits,
)
from spot_remote.engine.playback import (
    SEEK_SETTLE_SECONDS,
    compute_random_offset,
    next_repeat_state,
    validate_search_limit,
    validate_volume,
    with_repeat,
    with_shuffle,
    with_volume,
)
from spot_remote.spotify.client import SEARCH_TYPES, RemoteClient
from spot_remote.spotify.models import (
    Album,
    ArtistDetail,
    Page,
    Playlist,
    RepeatState,
    SearchResults,
    Show,
    Track,
)
from spot_remote.state.containment import ContainmentSet
from spot_remote.state.store import (
    ActiveBlock,
    AppState,
    EpisodeTableContext,
    RouteId,
    SelectedAlbum,
    SharedStore,
    TrackTableContext,
)


logger = get_logger(__name__)

# Owner id of editorial and made-for-you playlists
SPOTIFY_USER_ID = "spotify"

# Spotify accepts at most five seeds per recommendations request
MAX_RECOMMENDATION_SEEDS = 5


# =========================================================================
# Validation
# =========================================================================

def _require_id(value: str | None, name: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{name} is required", details={"field": name})


def _require_offset(offset: int, name: str = "offset") -> None:
    if offset < 0:
        raise ValidationError(f"{name} must not be negative", details={"value": offset})


def validate_intent(intent: Intent) -> None:
    """
    Reject intents whose data is invalid before any remote call.

    Raises:
        ValidationError: Out-of-range volume, limit, offset or seek
                         position, or a missing entity id.
    """
    match intent:
        case ChangeVolume(percent=percent):
            validate_volume(percent)
        case UpdateSearchLimits(large=large, small=small):
            validate_search_limit(large)
            validate_search_limit(small)
        case Seek(position_ms=position_ms):
            _require_offset(position_ms, "seek position")
        case TransferPlayback(device_id=device_id) | SelectDevice(device_id=device_id):
            _require_id(device_id, "device id")
        case AddToQueue(uri=uri):
            _require_id(uri, "uri")
        case SearchAll(term=term) | MadeForYouSearchAndAdd(term=term):
            _require_id(term, "search term")
        case FetchPlaylistTracks(playlist_id=playlist_id, offset=offset) | FetchMadeForYouTracks(
            playlist_id=playlist_id, offset=offset
        ):
            _require_id(playlist_id, "playlist id")
            _require_offset(offset)
        case FetchSavedTracks(offset=offset) | FetchSavedAlbums(offset=offset) | FetchSavedShows(
            offset=offset
        ):
            _require_offset(offset)
        case FetchMoreShowEpisodes(show_id=show_id, offset=offset):
            _require_id(show_id, "show id")
            _require_offset(offset)
        case FetchArtist(artist_id=entity_id):
            _require_id(entity_id, "artist id")
        case FetchAlbum(album_id=entity_id):
            _require_id(entity_id, "album id")
        case FetchAlbumTracks(album=album):
            _require_id(album.id, "album id")
        case FetchShow(show_id=entity_id):
            _require_id(entity_id, "show id")
        case FetchShowEpisodes(show=show):
            _require_id(show.id, "show id")
        case (
            FetchAlbumForTrack(track_id=entity_id)
            | FetchRecommendationsForTrack(track_id=entity_id)
            | FetchAudioAnalysis(track_id=entity_id)
        ):
            _require_id(entity_id, "track id")
        case FetchRecommendations(seed_artist_ids=artist_ids, seed_track_ids=track_ids):
            seeds = len(artist_ids) + len(track_ids)
            if not 1 <= seeds <= MAX_RECOMMENDATION_SEEDS:
                raise ValidationError(
                    f"recommendations need between 1 and {MAX_RECOMMENDATION_SEEDS} seeds",
                    details={"seeds": seeds}
                )
        case StartPlayback(offset=offset) if offset is not None:
            _require_offset(offset)
        case (
            ToggleSaveTrack(id=entity_id)
            | ToggleSaveAlbum(id=entity_id)
            | ToggleSaveShow(id=entity_id)
            | ToggleFollowArtist(id=entity_id)
            | ToggleFollowPlaylist(id=entity_id)
        ):
            _require_id(entity_id, "id")
        case _:
            pass


async def _join(*calls: Awaitable[Any]) -> list[Any]:
    """Run `calls` concurrently; raise the first failure once all have finished."""
    results = await asyncio.gather(*calls, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def _track_ids(tracks: Sequence[Track]) -> tuple[str, ...]:
    return tuple(track.id for track in tracks if track.id)


def _album_ids(albums: Sequence[Album]) -> tuple[str, ...]:
    return tuple(album.id for album in albums if album.id)


class DispatchEngine:
    """
    Executes intents against a RemoteClient and the SharedStore.

    Attributes:
        remote: The remote client. Anything satisfying RemoteClient.
        store: The shared state store this engine owns.

    Example:
        engine = DispatchEngine(remote)
        await engine.execute(SearchAll("daft punk"))
        results = await engine.store.read(lambda s: s.search_results)
    """

    def __init__(
        self,
        remote: RemoteClient,
        store: SharedStore | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ) -> None:
        self.remote = remote
        self.store = store if store is not None else SharedStore()
        self._sleep = sleep
        self._follow_ups: deque[Intent] = deque()

    @classmethod
    def from_config(cls, remote: RemoteClient, config: Config) -> "DispatchEngine":
        """Create an engine whose store starts from the configured limits and device."""
        state = AppState(
            large_search_limit=config.search.large_limit,
            small_search_limit=config.search.small_limit,
            device_id=config.spotify.device_id,
        )
        return cls(remote, SharedStore(state))

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute(self, intent: Intent) -> None:
        """
        Execute one intent and its follow-ups.

        Raises:
            ValidationError: If the intent's data is invalid. Nothing else
                             is raised; failures are recorded in the store.
        """
        validate_intent(intent)

        async with self.store.mutate() as state:
            state.transient.is_loading = True
        try:
            await self._run(intent)
            while self._follow_ups:
                await self._run(self._follow_ups.popleft())
        finally:
            self._follow_ups.clear()
            async with self.store.mutate() as state:
                state.transient.is_loading = False

    async def _run(self, intent: Intent) -> None:
        logger.debug(f"Executing {type(intent).__name__}")
        try:
            await self._handle(intent)
        except SpotRemoteError as e:
            await self._record_error(intent, e)

    async def _record_error(self, intent: Intent, error: SpotRemoteError) -> None:
        async with self.store.mutate() as state:
            state.transient.last_error = error
            state.transient.error_count += 1
        log_intent_failure(logger, type(intent).__name__, error)

    def _follow_up(self, intent: Intent) -> None:
        """Queue an intent to run after the current handler returns."""
        self._follow_ups.append(intent)

    async def _handle(self, intent: Intent) -> None:
        match intent:
            case FetchPlayback():
                await self._fetch_playback()
            case RefreshAuthentication():
                await self.remote.refresh_authentication()
            case FetchUser():
                await self._fetch_user()
            case FetchDevices():
                await self._fetch_devices()
            case FetchRecentlyPlayed():
                await self._fetch_recently_played()
            case FetchPlaylists():
                await self._fetch_playlists()
            case SearchAll(term=term, market=market):
                await self._search_all(term, market)
            case SetTracksToTable(tracks=tracks):
                await self._set_tracks_to_table(tracks)
            case SetArtistsToTable(artists=artists):
                async with self.store.mutate() as state:
                    state.artists = list(artists)
                self._follow_up(CheckFollowedArtists(tuple(a.id for a in artists)))
            case FetchPlaylistTracks(playlist_id=playlist_id, offset=offset):
                await self._fetch_playlist_tracks(playlist_id, offset)
            case FetchMadeForYouTracks(playlist_id=playlist_id, offset=offset):
                await self._fetch_made_for_you_tracks(playlist_id, offset)
            case MadeForYouSearchAndAdd(term=term, market=market):
                await self._made_for_you_search_and_add(term, market)
            case FetchArtist(artist_id=artist_id, artist_name=artist_name, market=market):
                await self._fetch_artist(artist_id, artist_name, market)
            case FetchAlbum(album_id=album_id):
                album = await self.remote.get_album(album_id)
                await self._open_album(album)
            case FetchAlbumTracks(album=album):
                await self._open_album(album)
            case FetchAlbumForTrack(track_id=track_id):
                await self._fetch_album_for_track(track_id)
            case FetchShow(show_id=show_id):
                show = await self.remote.get_show(show_id)
                await self._open_show(show, EpisodeTableContext.FULL)
            case FetchShowEpisodes(show=show):
                await self._open_show(show, EpisodeTableContext.SIMPLIFIED)
            case FetchMoreShowEpisodes(show_id=show_id, offset=offset):
                await self._fetch_more_show_episodes(show_id, offset)
            case FetchRecommendations(
                seed_artist_ids=artist_ids,
                seed_track_ids=track_ids,
                first_track=first_track,
                market=market,
            ):
                await self._fetch_recommendations(artist_ids, track_ids, first_track, market)
            case FetchRecommendationsForTrack(track_id=track_id, market=market):
                track = await self.remote.get_track(track_id)
                await self._fetch_recommendations((), _track_ids([track]), track, market)
            case FetchAudioAnalysis(track_id=track_id):
                analysis = await self.remote.get_audio_analysis(track_id)
                async with self.store.mutate() as state:
                    state.audio_analysis = analysis
                    state.navigation.push(RouteId.ANALYSIS, ActiveBlock.ANALYSIS)
            case FetchSavedTracks(offset=offset):
                await self._fetch_saved_tracks(offset)
            case FetchSavedAlbums(offset=offset):
                await self._fetch_saved_albums(offset)
            case FetchSavedShows(offset=offset):
                await self._fetch_saved_shows(offset)
            case FetchFollowedArtists(after=after):
                await self._fetch_followed_artists(after)
            case StartPlayback(context_uri=context_uri, uris=uris, offset=offset, random=random):
                await self._start_playback(context_uri, uris, offset, random)
            case AddToQueue(uri=uri):
                await self.remote.add_to_queue(uri, await self._device_id())
            case Seek(position_ms=position_ms):
                await self._seek(position_ms)
            case NextTrack():
                await self.remote.next_track(await self._device_id())
                await self._fetch_playback()
            case PreviousTrack():
                await self.remote.previous_track(await self._device_id())
                await self._fetch_playback()
            case PausePlayback():
                await self.remote.pause_playback(await self._device_id())
                await self._fetch_playback()
            case ToggleShuffle(current=current):
                await self._toggle_shuffle(current)
            case CycleRepeat(current=current):
                await self._cycle_repeat(current)
            case ChangeVolume(percent=percent):
                await self._change_volume(percent)
            case TransferPlayback(device_id=device_id):
                await self._transfer_playback(device_id)
            case SelectDevice(device_id=device_id):
                await self._select_device(device_id)
            case UpdateSearchLimits(large=large, small=small):
                async with self.store.mutate() as state:
                    state.large_search_limit = large
                    state.small_search_limit = small
            case CheckSavedTracks(ids=ids):
                await self._check(ids, self.remote.contains_saved_tracks, lambda s: s.liked_tracks)
            case CheckSavedAlbums(ids=ids):
                await self._check(ids, self.remote.contains_saved_albums, lambda s: s.saved_albums)
            case CheckSavedShows(ids=ids):
                await self._check(ids, self.remote.contains_saved_shows, lambda s: s.saved_shows)
            case CheckFollowedArtists(ids=ids):
                await self._check(
                    ids, self.remote.contains_followed_artists, lambda s: s.followed_artists
                )
            case ToggleSaveTrack(id=track_id, desired=desired):
                await self._toggle(
                    track_id,
                    desired,
                    self.remote.contains_saved_tracks,
                    self.remote.save_tracks,
                    self.remote.remove_saved_tracks,
                    lambda s: s.liked_tracks,
                )
            case ToggleSaveAlbum(id=album_id, desired=desired):
                await self._toggle(
                    album_id,
                    desired,
                    self.remote.contains_saved_albums,
                    self.remote.save_albums,
                    self.remote.remove_saved_albums,
                    lambda s: s.saved_albums,
                )
            case ToggleSaveShow(id=show_id, desired=desired):
                await self._toggle(
                    show_id,
                    desired,
                    self.remote.contains_saved_shows,
                    self.remote.save_shows,
                    self.remote.remove_saved_shows,
                    lambda s: s.saved_shows,
                )
            case ToggleFollowArtist(id=artist_id, desired=desired):
                await self._toggle(
                    artist_id,
                    desired,
                    self.remote.contains_followed_artists,
                    self.remote.follow_artists,
                    self.remote.unfollow_artists,
                    lambda s: s.followed_artists,
                )
            case ToggleFollowPlaylist(id=playlist_id, desired=desired):
                await self._toggle_follow_playlist(playlist_id, desired)
            case _:
                assert_never(intent)

    # =========================================================================
    # Store helpers
    # =========================================================================

    async def _device_id(self) -> str | None:
        return await self.store.read(lambda state: state.device_id)

    async def _large_limit(self) -> int:
        return await self.store.read(lambda state: state.large_search_limit)

    # =========================================================================
    # Account and playback state
    # =========================================================================

    async def _fetch_playback(self) -> None:
        """
        Replace the playback context.

        When nothing is playing the remote answers with no context; the
        previous one is kept and only the poll time moves.
        """
        playback = await self.remote.get_current_playback()

        async with self.store.mutate() as state:
            state.last_playback_poll = self.store.now()
            if playback is not None:
                state.playback = playback
                state.song_progress_ms = playback.progress_ms or 0

        if playback is not None and isinstance(playback.item, Track) and playback.item.id:
            self._follow_up(CheckSavedTracks((playback.item.id,)))

    async def _fetch_user(self) -> None:
        user = await self.remote.get_current_user()
        async with self.store.mutate() as state:
            state.user = user

    async def _fetch_devices(self) -> None:
        devices = await self.remote.get_devices()
        async with self.store.mutate() as state:
            state.navigation.push(RouteId.SELECTED_DEVICE, ActiveBlock.SELECT_DEVICE)
            if devices:
                state.devices = devices
                state.selected_device_index = 0

    async def _fetch_recently_played(self) -> None:
        history = await self.remote.get_recently_played(await self._large_limit())
        async with self.store.mutate() as state:
            state.recently_played = history
            state.navigation.push(RouteId.RECENTLY_PLAYED, ActiveBlock.RECENTLY_PLAYED)
        self._follow_up(CheckSavedTracks(_track_ids([item.track for item in history])))

    # =========================================================================
    # Browsing
    # =========================================================================

    async def _fetch_playlists(self) -> None:
        playlists = await self.remote.get_playlists(await self._large_limit(), 0)
        async with self.store.mutate() as state:
            state.playlists = playlists
            state.selected_playlist_index = 0

    async def _search_all(self, term: str, market: str | None) -> None:
        limit = await self.store.read(lambda state: state.small_search_limit)

        # Order follows SEARCH_TYPES: track, album, artist, playlist, show
        tracks, albums, artists, playlists, shows = await _join(
            *(self.remote.search(term, kind, limit, market) for kind in SEARCH_TYPES)
        )

        async with self.store.mutate() as state:
            state.search_results = SearchResults(
                tracks=tracks,
                albums=albums,
                artists=artists,
                playlists=playlists,
                shows=shows,
            )

        self._follow_up(CheckSavedTracks(_track_ids(tracks.items)))
        self._follow_up(CheckSavedAlbums(_album_ids(albums.items)))
        self._follow_up(CheckFollowedArtists(tuple(a.id for a in artists.items)))
        self._follow_up(CheckSavedShows(tuple(s.id for s in shows.items)))

    async def _set_tracks_to_table(self, tracks: Sequence[Track]) -> None:
        async with self.store.mutate() as state:
            state.track_table.tracks = list(tracks)
        self._follow_up(CheckSavedTracks(_track_ids(tracks)))

    async def _fetch_playlist_tracks(self, playlist_id: str, offset: int) -> None:
        page = await self.remote.get_playlist_tracks(playlist_id, await self._large_limit(), offset)

        async with self.store.mutate() as state:
            state.library.playlist_tracks.reset_for(playlist_id)
            state.library.playlist_tracks.add_page(page)
            state.playlist_offset = offset
            state.track_table.tracks = list(page.items)
            state.track_table.context = TrackTableContext.MY_PLAYLISTS
            state.navigation.push(RouteId.TRACK_TABLE, ActiveBlock.TRACK_TABLE)

        self._follow_up(CheckSavedTracks(_track_ids(page.items)))

    async def _fetch_made_for_you_tracks(self, playlist_id: str, offset: int) -> None:
        page = await self.remote.get_playlist_tracks(playlist_id, await self._large_limit(), offset)

        async with self.store.mutate() as state:
            state.library.made_for_you_tracks.reset_for(playlist_id)
            state.library.made_for_you_tracks.add_page(page)
            state.made_for_you_offset = offset
            state.track_table.tracks = list(page.items)
            state.track_table.context = TrackTableContext.MADE_FOR_YOU
            state.navigation.push(RouteId.TRACK_TABLE, ActiveBlock.TRACK_TABLE)

        self._follow_up(CheckSavedTracks(_track_ids(page.items)))

    async def _made_for_you_search_and_add(self, term: str, market: str | None) -> None:
        """Keep Spotify-owned playlists named exactly `term` and append them to the list."""
        page: Page[Playlist] = await self.remote.search(
            term, "playlist", await self._large_limit(), market
        )
        matches = tuple(
            playlist for playlist in page.items
            if playlist.owner_id == SPOTIFY_USER_ID and playlist.name == term
        )

        async with self.store.mutate() as state:
            cache = state.library.made_for_you_playlists
            current = cache.current_page()
            if current is not None:
                cache.add_page(replace(current, items=current.items + matches))
            else:
                cache.add_page(replace(page, items=matches))

    async def _fetch_artist(self, artist_id: str, artist_name: str, market: str | None) -> None:
        if not artist_name:
            artist_name = (await self.remote.get_artist(artist_id)).name

        albums, top_tracks, related_artists = await _join(
            self.remote.get_artist_albums(artist_id, await self._large_limit(), market),
            self.remote.get_artist_top_tracks(artist_id, market),
            self.remote.get_related_artists(artist_id),
        )

        async with self.store.mutate() as state:
            state.artist = ArtistDetail(
                artist_id=artist_id,
                artist_name=artist_name,
                albums=albums,
                top_tracks=tuple(top_tracks),
                related_artists=tuple(related_artists),
            )
            state.navigation.push(RouteId.ARTIST, ActiveBlock.ARTIST)

        self._follow_up(CheckSavedAlbums(_album_ids(albums.items)))
        self._follow_up(CheckSavedTracks(_track_ids(top_tracks)))
        self._follow_up(
            CheckFollowedArtists((artist_id, *(a.id for a in related_artists)))
        )

    async def _open_album(self, album: Album, track_number: int = 1) -> None:
        """
        Show an album with the page of tracks containing `track_number`.

        Raises:
            PreconditionError: If the album has no id (local files).
        """
        if album.id is None:
            raise PreconditionError("album has no id", details={"album": album.name})

        limit = await self._large_limit()
        position = max(track_number - 1, 0)
        offset = position - position % limit
        tracks = await self.remote.get_album_tracks(album, limit, offset)

        async with self.store.mutate() as state:
            state.selected_album = SelectedAlbum(
                album=album,
                tracks=tracks,
                selected_index=position - offset,
            )
            state.navigation.push(RouteId.ALBUM_TRACKS, ActiveBlock.ALBUM_TRACKS)

        self._follow_up(CheckSavedTracks(_track_ids(tracks.items)))
        self._follow_up(CheckSavedAlbums((album.id,)))

    async def _fetch_album_for_track(self, track_id: str) -> None:
        track = await self.remote.get_track(track_id)
        if track.album is None or track.album.id is None:
            raise PreconditionError(
                f"track '{track.name}' has no album", details={"track_id": track_id}
            )
        album = await self.remote.get_album(track.album.id)
        await self._open_album(album, track.track_number)

    async def _open_show(self, show: Show, context: EpisodeTableContext) -> None:
        episodes = await self.remote.get_show_episodes(show, await self._large_limit(), 0)

        async with self.store.mutate() as state:
            state.selected_show = show
            state.episode_table_context = context
            state.library.show_episodes.clear()
            state.library.show_episodes.reset_for(show.id)
            state.library.show_episodes.add_page(episodes)
            state.navigation.push(RouteId.PODCAST_EPISODES, ActiveBlock.EPISODE_TABLE)

        self._follow_up(CheckSavedShows((show.id,)))

    async def _fetch_more_show_episodes(self, show_id: str, offset: int) -> None:
        selected = await self.store.read(lambda state: state.selected_show)
        show = selected if selected is not None and selected.id == show_id else Show(
            id=show_id, name="", uri=f"spotify:show:{show_id}"
        )
        episodes = await self.remote.get_show_episodes(show, await self._large_limit(), offset)

        # An empty page would replace the view with nothing
        if not episodes.items:
            return

        async with self.store.mutate() as state:
            state.library.show_episodes.reset_for(show_id)
            state.library.show_episodes.add_page(episodes)

    async def _fetch_recommendations(
        self,
        seed_artist_ids: Sequence[str],
        seed_track_ids: Sequence[str],
        first_track: Track | None,
        market: str | None
    ) -> None:
        tracks = await self.remote.get_recommendations(
            list(seed_artist_ids), list(seed_track_ids), await self._large_limit(), market
        )
        if first_track is not None:
            tracks = [first_track, *tracks]

        async with self.store.mutate() as state:
            state.recommended_tracks = tracks
            state.track_table.tracks = list(tracks)
            state.track_table.context = TrackTableContext.RECOMMENDED_TRACKS
            state.navigation.push(RouteId.RECOMMENDATIONS, ActiveBlock.TRACK_TABLE)

        self._follow_up(CheckSavedTracks(_track_ids(tracks)))
        uris = tuple(track.uri for track in tracks if track.id)
        if uris:
            self._follow_up(StartPlayback(uris=uris, offset=0))

    # =========================================================================
    # Library pages
    # =========================================================================

    async def _fetch_saved_tracks(self, offset: int) -> None:
        page = await self.remote.get_saved_tracks(await self._large_limit(), offset)

        async with self.store.mutate() as state:
            state.library.saved_tracks.add_page(page)
            state.liked_tracks.update(_track_ids(page.items))
            state.track_table.tracks = list(page.items)
            state.track_table.context = TrackTableContext.SAVED_TRACKS

    async def _fetch_saved_albums(self, offset: int) -> None:
        page = await self.remote.get_saved_albums(await self._large_limit(), offset)
        if not page.items:
            return

        async with self.store.mutate() as state:
            state.library.saved_albums.add_page(page)
            state.saved_albums.update(_album_ids(page.items))

    async def _fetch_saved_shows(self, offset: int) -> None:
        page = await self.remote.get_saved_shows(await self._large_limit(), offset)
        if not page.items:
            return

        async with self.store.mutate() as state:
            state.library.saved_shows.add_page(page)
            state.saved_shows.update(show.id for show in page.items)

    async def _fetch_followed_artists(self, after: str | None) -> None:
        """
        Fetch the page of followed artists that follows the cursor `after`.

        Cursor pages carry no offset; one is derived from the cached page
        whose cursor is `after`, so re-fetching a page overwrites it.
        """
        page = await self.remote.get_followed_artists(await self._large_limit(), after)

        async with self.store.mutate() as state:
            cache = state.library.followed_artists
            offset = 0
            if after is not None:
                previous = next((p for p in cache.pages if p.cursor == after), None)
                if previous is not None:
                    offset = previous.offset + len(previous.items)
                else:
                    offset = sum(len(p.items) for p in cache.pages)
            cache.add_page(replace(page, offset=offset))
            state.artists = list(page.items)
            state.followed_artists.update(artist.id for artist in page.items)

    # =========================================================================
    # Playback control
    # =========================================================================

    async def _start_playback(
        self,
        context_uri: str | None,
        uris: tuple[str, ...] | None,
        offset: int | None,
        random: bool = False
    ) -> None:
        if random and context_uri is not None:
            offset = await self._random_offset(context_uri, offset)
        await self.remote.start_playback(
            await self._device_id(),
            context_uri,
            list(uris) if uris is not None else None,
            offset,
        )
        async with self.store.mutate() as state:
            state.song_progress_ms = 0
        self._follow_up(FetchPlayback())

    async def _random_offset(self, context_uri: str, offset: int | None) -> int | None:
        """
        Random start position within a playlist or album.

        Other contexts keep `offset`.

        Raises:
            PreconditionError: If the playlist or album is empty.
        """
        parts = context_uri.split(":")
        kind, context_id = (parts[1], parts[2]) if len(parts) == 3 else ("", "")
        match kind:
            case "playlist":
                total = (await self.remote.get_playlist(context_id)).total_tracks
            case "album":
                total = (await self.remote.get_album(context_id)).total_tracks
            case _:
                return offset
        return compute_random_offset(total)

    async def _seek(self, position_ms: int) -> None:
        await self.remote.seek(position_ms, await self._device_id())
        await self._sleep(SEEK_SETTLE_SECONDS)
        await self._fetch_playback()

    async def _toggle_shuffle(self, current: bool) -> None:
        shuffle_state = not current
        await self.remote.set_shuffle(shuffle_state, await self._device_id())
        async with self.store.mutate() as state:
            if state.playback is not None:
                state.playback = with_shuffle(state.playback, shuffle_state)

    async def _cycle_repeat(self, current: RepeatState) -> None:
        repeat_state = next_repeat_state(current)
        await self.remote.set_repeat(repeat_state, await self._device_id())
        async with self.store.mutate() as state:
            if state.playback is not None:
                state.playback = with_repeat(state.playback, repeat_state)

    async def _change_volume(self, percent: int) -> None:
        await self.remote.set_volume(percent, await self._device_id())
        async with self.store.mutate() as state:
            if state.playback is not None:
                state.playback = with_volume(state.playback, percent)

    async def _transfer_playback(self, device_id: str) -> None:
        await self.remote.transfer_playback(device_id)
        async with self.store.mutate() as state:
            state.device_id = device_id
            state.navigation.pop()
        await self._fetch_playback()

    async def _select_device(self, device_id: str) -> None:
        async with self.store.mutate() as state:
            state.device_id = device_id
            state.selected_device_index = next(
                (i for i, device in enumerate(state.devices) if device.id == device_id),
                state.selected_device_index,
            )

    # =========================================================================
    # Containment
    # =========================================================================

    async def _check(
        self,
        ids: tuple[str, ...],
        contains: Callable[[list[str]], Awaitable[list[bool]]],
        select: Callable[[AppState], ContainmentSet]
    ) -> None:
        """Query containment for `ids` and record the answers. No ids, no call."""
        if not ids:
            return
        answers = await contains(list(ids))
        async with self.store.mutate() as state:
            select(state).apply(ids, answers)

    async def _toggle(
        self,
        entity_id: str,
        desired: bool | None,
        contains: Callable[[list[str]], Awaitable[list[bool]]],
        add: Callable[[list[str]], Awaitable[None]],
        remove: Callable[[list[str]], Awaitable[None]],
        select: Callable[[AppState], ContainmentSet]
    ) -> None:
        """
        Query, then add or remove, then update the local set.

        The local set is never consulted: it may be stale. When the remote
        already is in the desired state no mutating call is made, and the
        local set is brought in line with the answer.
        """
        answers = await contains([entity_id])
        currently = bool(answers and answers[0])
        target = not currently if desired is None else desired

        if target != currently:
            await (add if target else remove)([entity_id])

        async with self.store.mutate() as state:
            if target:
                select(state).add(entity_id)
            else:
                select(state).discard(entity_id)

    async def _toggle_follow_playlist(self, playlist_id: str, desired: bool | None) -> None:
        user = await self.store.read(lambda state: state.user)
        if user is None:
            user = await self.remote.get_current_user()
            async with self.store.mutate() as state:
                state.user = user

        currently = await self.remote.is_following_playlist(playlist_id, user.id)
        target = not currently if desired is None else desired

        if target and not currently:
            await self.remote.follow_playlist(playlist_id)
        elif currently and not target:
            await self.remote.unfollow_playlist(playlist_id)
