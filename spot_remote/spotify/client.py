"""
Spotify Web API client for spot-remote.

This module defines the contract the dispatch engine requires from a
remote client (RemoteClient), and its production implementation
(SpotifyClient) built on the spotipy library.

RemoteClient:
    A typing.Protocol with one async method per remote need. Every method
    returns typed models from spot_remote.spotify.models or raises
    SpotifyError; nothing else escapes. Tests substitute a fake that
    satisfies the same protocol.

SpotifyClient:
    spotipy is synchronous. Each call runs in a worker thread through
    asyncio.to_thread, so the event loop keeps serving other coroutines
    (the periodic re-authentication, readers of the store) while a call
    is in flight. Token caching, refresh and HTTP retries are spotipy's.

Authentication:
    Authorization Code with PKCE (no client secret). The first run opens
    the browser; afterwards the token cache is reused and refreshed by
    spotipy.

Usage:
    from spot_remote.spotify.client import SpotifyClient

    client = SpotifyClient.from_config(config.spotify)
    playback = await client.get_current_playback()
"""

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, TypeVar

import requests
import spotipy
from spotipy.oauth2 import SpotifyOauthError, SpotifyPKCE

from spot_remote.core.config import SpotifyConfig
from spot_remote.core.exceptions import SpotifyError
from spot_remote.core.logger import get_logger
from spot_remote.spotify.models import (
    Album,
    Artist,
    AudioAnalysis,
    Device,
    Episode,
    Page,
    PlaybackContext,
    PlayHistory,
    Playlist,
    RepeatState,
    Show,
    Track,
    User,
)


logger = get_logger(__name__)

R = TypeVar("R")

SCOPES = (
    "playlist-read-collaborative",
    "playlist-read-private",
    "playlist-modify-private",
    "playlist-modify-public",
    "user-follow-read",
    "user-follow-modify",
    "user-library-modify",
    "user-library-read",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-read-playback-state",
    "user-read-playback-position",
    "user-read-private",
    "user-read-recently-played",
)

TOKEN_CACHE_PATH = "~/.cache/spot-remote/token.json"

# Spotify accepts at most 50 ids per tracks() request
MAX_IDS_PER_REQUEST = 50

SEARCH_TYPES = ("track", "album", "artist", "playlist", "show")


class RemoteClient(Protocol):
    """
    Operations the dispatch engine performs against Spotify.

    Every method raises SpotifyError on failure. Playback-control methods
    take the device to target; None means the currently active device.
    """

    # Account
    async def refresh_authentication(self) -> None: ...
    async def get_current_user(self) -> User: ...
    async def get_devices(self) -> list[Device]: ...
    async def get_current_playback(self) -> PlaybackContext | None: ...
    async def get_recently_played(self, limit: int) -> list[PlayHistory]: ...

    # Browsing
    async def search(self, term: str, kind: str, limit: int, market: str | None) -> Page[Any]: ...
    async def get_playlists(self, limit: int, offset: int) -> Page[Playlist]: ...
    async def get_playlist(self, playlist_id: str) -> Playlist: ...
    async def get_playlist_tracks(self, playlist_id: str, limit: int, offset: int) -> Page[Track]: ...
    async def get_track(self, track_id: str) -> Track: ...
    async def get_tracks(self, track_ids: list[str], market: str | None) -> list[Track]: ...
    async def get_album(self, album_id: str) -> Album: ...
    async def get_album_tracks(self, album: Album, limit: int, offset: int) -> Page[Track]: ...
    async def get_artist(self, artist_id: str) -> Artist: ...
    async def get_artist_albums(self, artist_id: str, limit: int, market: str | None) -> Page[Album]: ...
    async def get_artist_top_tracks(self, artist_id: str, market: str | None) -> list[Track]: ...
    async def get_related_artists(self, artist_id: str) -> list[Artist]: ...
    async def get_show(self, show_id: str) -> Show: ...
    async def get_show_episodes(self, show: Show, limit: int, offset: int) -> Page[Episode]: ...
    async def get_recommendations(
        self,
        seed_artist_ids: list[str],
        seed_track_ids: list[str],
        limit: int,
        market: str | None
    ) -> list[Track]: ...
    async def get_audio_analysis(self, track_id: str) -> AudioAnalysis: ...

    # Library
    async def get_saved_tracks(self, limit: int, offset: int) -> Page[Track]: ...
    async def get_saved_albums(self, limit: int, offset: int) -> Page[Album]: ...
    async def get_saved_shows(self, limit: int, offset: int) -> Page[Show]: ...
    async def get_followed_artists(self, limit: int, after: str | None) -> Page[Artist]: ...
    async def contains_saved_tracks(self, ids: list[str]) -> list[bool]: ...
    async def save_tracks(self, ids: list[str]) -> None: ...
    async def remove_saved_tracks(self, ids: list[str]) -> None: ...
    async def contains_saved_albums(self, ids: list[str]) -> list[bool]: ...
    async def save_albums(self, ids: list[str]) -> None: ...
    async def remove_saved_albums(self, ids: list[str]) -> None: ...
    async def contains_saved_shows(self, ids: list[str]) -> list[bool]: ...
    async def save_shows(self, ids: list[str]) -> None: ...
    async def remove_saved_shows(self, ids: list[str]) -> None: ...
    async def contains_followed_artists(self, ids: list[str]) -> list[bool]: ...
    async def follow_artists(self, ids: list[str]) -> None: ...
    async def unfollow_artists(self, ids: list[str]) -> None: ...
    async def is_following_playlist(self, playlist_id: str, user_id: str) -> bool: ...
    async def follow_playlist(self, playlist_id: str) -> None: ...
    async def unfollow_playlist(self, playlist_id: str) -> None: ...

    # Playback control
    async def start_playback(
        self,
        device_id: str | None,
        context_uri: str | None,
        uris: list[str] | None,
        offset: int | None
    ) -> None: ...
    async def add_to_queue(self, uri: str, device_id: str | None) -> None: ...
    async def seek(self, position_ms: int, device_id: str | None) -> None: ...
    async def next_track(self, device_id: str | None) -> None: ...
    async def previous_track(self, device_id: str | None) -> None: ...
    async def pause_playback(self, device_id: str | None) -> None: ...
    async def set_shuffle(self, state: bool, device_id: str | None) -> None: ...
    async def set_repeat(self, state: RepeatState, device_id: str | None) -> None: ...
    async def set_volume(self, percent: int, device_id: str | None) -> None: ...
    async def transfer_playback(self, device_id: str) -> None: ...


def to_spotify_error(error: Exception, action: str, details: dict | None = None) -> SpotifyError:
    """
    Convert an exception raised by spotipy or requests into a SpotifyError.

    Args:
        error: The original exception.
        action: What was being attempted, for the message ("fetch playback").
        details: Extra context (ids) to attach.

    Returns:
        SpotifyError with is_auth_error set for 401 and OAuth failures,
        is_rate_limit set for 429, and http_status in details when known.
    """
    details = dict(details or {})
    details["original_error"] = str(error)

    if isinstance(error, spotipy.SpotifyException):
        status = error.http_status
        details["http_status"] = status
        if status == 429:
            return SpotifyError(
                f"Rate limited while trying to {action}",
                details=details,
                is_rate_limit=True
            )
        if status == 401:
            return SpotifyError(
                f"Not authorized to {action}: {error.msg}",
                details=details,
                is_auth_error=True
            )
        if status == 404:
            return SpotifyError(f"Failed to {action}: not found ({error.msg})", details=details)
        return SpotifyError(f"Failed to {action}: {error.msg}", details=details)

    if isinstance(error, SpotifyOauthError):
        return SpotifyError(
            f"Authentication failed while trying to {action}: {error}",
            details=details,
            is_auth_error=True
        )

    return SpotifyError(f"Network error while trying to {action}: {error}", details=details)


class SpotifyClient:
    """
    RemoteClient backed by spotipy.

    Attributes:
        _spotify: The underlying spotipy.Spotify instance.
        _auth_manager: The PKCE auth manager, kept for explicit refreshes.

    Example:
        client = SpotifyClient.from_config(config.spotify)
        devices = await client.get_devices()
    """

    def __init__(self, spotify: spotipy.Spotify, auth_manager: SpotifyPKCE | None = None) -> None:
        self._spotify = spotify
        self._auth_manager = auth_manager

    @classmethod
    def from_config(cls, config: SpotifyConfig, cache_path: str = TOKEN_CACHE_PATH) -> "SpotifyClient":
        """
        Build a client using the PKCE flow.

        Args:
            config: Spotify application settings.
            cache_path: Where spotipy stores the token (~ expanded).

        Returns:
            A ready client. No request is made until the first call.
        """
        cache_file = Path(cache_path).expanduser()
        cache_file.parent.mkdir(parents=True, exist_ok=True)

        auth_manager = SpotifyPKCE(
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            scope=" ".join(SCOPES),
            cache_handler=spotipy.CacheFileHandler(cache_path=str(cache_file)),
            open_browser=True,
        )
        return cls(spotipy.Spotify(auth_manager=auth_manager), auth_manager)

    async def _execute(
        self,
        action: str,
        func: Callable[..., R],
        *args: Any,
        details: dict | None = None,
        **kwargs: Any
    ) -> R:
        """
        Run one blocking spotipy call in a worker thread.

        Raises:
            SpotifyError: For any SpotifyException, OAuth failure or
                          requests exception raised by the call.
        """
        logger.debug(f"Spotify call: {action}")
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (spotipy.SpotifyException, SpotifyOauthError, requests.RequestException) as e:
            raise to_spotify_error(e, action, details) from e

    # =========================================================================
    # Account
    # =========================================================================

    async def refresh_authentication(self) -> None:
        """
        Refresh the access token if it is expired or about to expire.

        spotipy refreshes lazily on each request as well; calling this on a
        timer keeps long idle sessions from failing on their first request.
        """
        if self._auth_manager is None:
            return
        await self._execute("refresh authentication", self._auth_manager.get_access_token)

    async def get_current_user(self) -> User:
        data = await self._execute("fetch the current user", self._spotify.current_user)
        return User.from_spotify_api(data)

    async def get_devices(self) -> list[Device]:
        data = await self._execute("fetch devices", self._spotify.devices)
        return [Device.from_spotify_api(d) for d in (data or {}).get("devices", [])]

    async def get_current_playback(self) -> PlaybackContext | None:
        """Return the playback snapshot, or None when nothing is playing (HTTP 204)."""
        data = await self._execute(
            "fetch playback",
            self._spotify.current_playback,
            additional_types="episode,track"
        )
        return PlaybackContext.from_spotify_api(data) if data else None

    async def get_recently_played(self, limit: int) -> list[PlayHistory]:
        data = await self._execute(
            "fetch recently played", self._spotify.current_user_recently_played, limit=limit
        )
        return list(Page.from_spotify_api(data or {}, PlayHistory.from_spotify_api).items)

    # =========================================================================
    # Browsing
    # =========================================================================

    async def search(self, term: str, kind: str, limit: int, market: str | None) -> Page[Any]:
        """
        Search one category.

        Args:
            term: The search query.
            kind: One of "track", "album", "artist", "playlist", "show".
            limit: Maximum results (1-50).
            market: ISO country code, or None for the account's market.

        Returns:
            Page of the matching model type. Null entries (Spotify returns
            them for unavailable playlists) are dropped.
        """
        parsers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "track": Track.from_spotify_api,
            "album": Album.from_spotify_api,
            "artist": Artist.from_spotify_api,
            "playlist": Playlist.from_spotify_api,
            "show": Show.from_spotify_api,
        }
        data = await self._execute(
            f"search {kind}s",
            self._spotify.search,
            q=term,
            limit=limit,
            offset=0,
            type=kind,
            market=market,
            details={"term": term, "kind": kind},
        )
        return Page.from_spotify_api((data or {}).get(f"{kind}s") or {}, parsers[kind])

    async def get_playlists(self, limit: int, offset: int) -> Page[Playlist]:
        data = await self._execute(
            "fetch playlists", self._spotify.current_user_playlists, limit=limit, offset=offset
        )
        return Page.from_spotify_api(data or {}, Playlist.from_spotify_api)

    async def get_playlist(self, playlist_id: str) -> Playlist:
        data = await self._execute(
            "fetch playlist",
            self._spotify.playlist,
            playlist_id,
            details={"playlist_id": playlist_id},
        )
        return Playlist.from_spotify_api(data)

    async def get_playlist_tracks(self, playlist_id: str, limit: int, offset: int) -> Page[Track]:
        data = await self._execute(
            "fetch playlist tracks",
            self._spotify.playlist_items,
            playlist_id,
            limit=limit,
            offset=offset,
            additional_types=("track",),
            details={"playlist_id": playlist_id, "offset": offset},
        )
        return Page.from_spotify_api(data or {}, Track.from_saved_item)

    async def get_track(self, track_id: str) -> Track:
        data = await self._execute(
            "fetch track", self._spotify.track, track_id, details={"track_id": track_id}
        )
        return Track.from_spotify_api(data)

    async def get_tracks(self, track_ids: list[str], market: str | None) -> list[Track]:
        """Fetch full tracks in batches of 50, preserving input order."""
        tracks: list[Track] = []
        for i in range(0, len(track_ids), MAX_IDS_PER_REQUEST):
            batch = track_ids[i:i + MAX_IDS_PER_REQUEST]
            data = await self._execute(
                "fetch tracks", self._spotify.tracks, batch, market=market,
                details={"batch_size": len(batch)},
            )
            tracks.extend(Track.from_spotify_api(t) for t in (data or {}).get("tracks", []) if t)
        return tracks

    async def get_album(self, album_id: str) -> Album:
        data = await self._execute(
            "fetch album", self._spotify.album, album_id, details={"album_id": album_id}
        )
        return Album.from_spotify_api(data)

    async def get_album_tracks(self, album: Album, limit: int, offset: int) -> Page[Track]:
        """Fetch one page of an album's tracks, attaching the album to each track."""
        data = await self._execute(
            "fetch album tracks",
            self._spotify.album_tracks,
            album.id,
            limit=limit,
            offset=offset,
            details={"album_id": album.id},
        )
        return Page.from_spotify_api(
            data or {}, lambda raw: Track.from_spotify_api(raw, album=album)
        )

    async def get_artist(self, artist_id: str) -> Artist:
        data = await self._execute(
            "fetch artist", self._spotify.artist, artist_id, details={"artist_id": artist_id}
        )
        return Artist.from_spotify_api(data)

    async def get_artist_albums(self, artist_id: str, limit: int, market: str | None) -> Page[Album]:
        data = await self._execute(
            "fetch artist albums",
            self._spotify.artist_albums,
            artist_id,
            country=market,
            limit=limit,
            offset=0,
            details={"artist_id": artist_id},
        )
        return Page.from_spotify_api(data or {}, Album.from_spotify_api)

    async def get_artist_top_tracks(self, artist_id: str, market: str | None) -> list[Track]:
        data = await self._execute(
            "fetch artist top tracks",
            self._spotify.artist_top_tracks,
            artist_id,
            country=market or "from_token",
            details={"artist_id": artist_id},
        )
        return [Track.from_spotify_api(t) for t in (data or {}).get("tracks", [])]

    async def get_related_artists(self, artist_id: str) -> list[Artist]:
        data = await self._execute(
            "fetch related artists",
            self._spotify.artist_related_artists,
            artist_id,
            details={"artist_id": artist_id},
        )
        return [Artist.from_spotify_api(a) for a in (data or {}).get("artists", [])]

    async def get_show(self, show_id: str) -> Show:
        data = await self._execute(
            "fetch show", self._spotify.show, show_id, details={"show_id": show_id}
        )
        return Show.from_spotify_api(data)

    async def get_show_episodes(self, show: Show, limit: int, offset: int) -> Page[Episode]:
        data = await self._execute(
            "fetch show episodes",
            self._spotify.show_episodes,
            show.id,
            limit=limit,
            offset=offset,
            details={"show_id": show.id, "offset": offset},
        )
        return Page.from_spotify_api(
            data or {}, lambda raw: Episode.from_spotify_api(raw, show=show)
        )

    async def get_recommendations(
        self,
        seed_artist_ids: list[str],
        seed_track_ids: list[str],
        limit: int,
        market: str | None
    ) -> list[Track]:
        """
        Fetch recommended tracks for the given seeds.

        The recommendations endpoint returns trimmed track objects, so the
        full tracks are fetched again by id.
        """
        data = await self._execute(
            "fetch recommendations",
            self._spotify.recommendations,
            seed_artists=seed_artist_ids or None,
            seed_tracks=seed_track_ids or None,
            limit=limit,
            country=market,
        )
        ids = [t["id"] for t in (data or {}).get("tracks", []) if t and t.get("id")]
        return await self.get_tracks(ids, market)

    async def get_audio_analysis(self, track_id: str) -> AudioAnalysis:
        data = await self._execute(
            "fetch audio analysis",
            self._spotify.audio_analysis,
            track_id,
            details={"track_id": track_id},
        )
        return AudioAnalysis.from_spotify_api(track_id, data or {})

    # =========================================================================
    # Library
    # =========================================================================

    async def get_saved_tracks(self, limit: int, offset: int) -> Page[Track]:
        data = await self._execute(
            "fetch saved tracks", self._spotify.current_user_saved_tracks, limit=limit, offset=offset
        )
        return Page.from_spotify_api(data or {}, Track.from_saved_item)

    async def get_saved_albums(self, limit: int, offset: int) -> Page[Album]:
        data = await self._execute(
            "fetch saved albums", self._spotify.current_user_saved_albums, limit=limit, offset=offset
        )
        return Page.from_spotify_api(data or {}, Album.from_saved_item)

    async def get_saved_shows(self, limit: int, offset: int) -> Page[Show]:
        data = await self._execute(
            "fetch saved shows", self._spotify.current_user_saved_shows, limit=limit, offset=offset
        )
        return Page.from_spotify_api(data or {}, Show.from_saved_item)

    async def get_followed_artists(self, limit: int, after: str | None) -> Page[Artist]:
        data = await self._execute(
            "fetch followed artists",
            self._spotify.current_user_followed_artists,
            limit=limit,
            after=after,
        )
        return Page.from_spotify_api((data or {}).get("artists") or {}, Artist.from_spotify_api)

    async def contains_saved_tracks(self, ids: list[str]) -> list[bool]:
        return await self._execute(
            "check saved tracks", self._spotify.current_user_saved_tracks_contains, ids
        )

    async def save_tracks(self, ids: list[str]) -> None:
        await self._execute("save tracks", self._spotify.current_user_saved_tracks_add, ids)

    async def remove_saved_tracks(self, ids: list[str]) -> None:
        await self._execute("remove saved tracks", self._spotify.current_user_saved_tracks_delete, ids)

    async def contains_saved_albums(self, ids: list[str]) -> list[bool]:
        return await self._execute(
            "check saved albums", self._spotify.current_user_saved_albums_contains, ids
        )

    async def save_albums(self, ids: list[str]) -> None:
        await self._execute("save albums", self._spotify.current_user_saved_albums_add, ids)

    async def remove_saved_albums(self, ids: list[str]) -> None:
        await self._execute("remove saved albums", self._spotify.current_user_saved_albums_delete, ids)

    async def contains_saved_shows(self, ids: list[str]) -> list[bool]:
        return await self._execute(
            "check saved shows", self._spotify.current_user_saved_shows_contains, ids
        )

    async def save_shows(self, ids: list[str]) -> None:
        await self._execute("save shows", self._spotify.current_user_saved_shows_add, ids)

    async def remove_saved_shows(self, ids: list[str]) -> None:
        await self._execute("remove saved shows", self._spotify.current_user_saved_shows_delete, ids)

    async def contains_followed_artists(self, ids: list[str]) -> list[bool]:
        return await self._execute(
            "check followed artists", self._spotify.current_user_following_artists, ids
        )

    async def follow_artists(self, ids: list[str]) -> None:
        await self._execute("follow artists", self._spotify.user_follow_artists, ids)

    async def unfollow_artists(self, ids: list[str]) -> None:
        await self._execute("unfollow artists", self._spotify.user_unfollow_artists, ids)

    async def is_following_playlist(self, playlist_id: str, user_id: str) -> bool:
        answers = await self._execute(
            "check playlist follow",
            self._spotify.playlist_is_following,
            playlist_id,
            [user_id],
            details={"playlist_id": playlist_id},
        )
        return bool(answers and answers[0])

    async def follow_playlist(self, playlist_id: str) -> None:
        await self._execute(
            "follow playlist",
            self._spotify.current_user_follow_playlist,
            playlist_id,
            details={"playlist_id": playlist_id},
        )

    async def unfollow_playlist(self, playlist_id: str) -> None:
        await self._execute(
            "unfollow playlist",
            self._spotify.current_user_unfollow_playlist,
            playlist_id,
            details={"playlist_id": playlist_id},
        )

    # =========================================================================
    # Playback control
    # =========================================================================

    async def start_playback(
        self,
        device_id: str | None,
        context_uri: str | None,
        uris: list[str] | None,
        offset: int | None
    ) -> None:
        """
        Start or resume playback.

        A context URI wins over a list of URIs; with neither, playback
        resumes where it was. offset is a 0-based position in the context
        or URI list.
        """
        await self._execute(
            "start playback",
            self._spotify.start_playback,
            device_id=device_id,
            context_uri=context_uri,
            uris=None if context_uri else uris,
            offset={"position": offset} if offset is not None else None,
        )

    async def add_to_queue(self, uri: str, device_id: str | None) -> None:
        await self._execute(
            "add to queue", self._spotify.add_to_queue, uri, device_id=device_id,
            details={"uri": uri},
        )

    async def seek(self, position_ms: int, device_id: str | None) -> None:
        await self._execute(
            "seek", self._spotify.seek_track, position_ms, device_id=device_id,
            details={"position_ms": position_ms},
        )

    async def next_track(self, device_id: str | None) -> None:
        await self._execute("skip to next track", self._spotify.next_track, device_id=device_id)

    async def previous_track(self, device_id: str | None) -> None:
        await self._execute("skip to previous track", self._spotify.previous_track, device_id=device_id)

    async def pause_playback(self, device_id: str | None) -> None:
        await self._execute("pause playback", self._spotify.pause_playback, device_id=device_id)

    async def set_shuffle(self, state: bool, device_id: str | None) -> None:
        await self._execute("set shuffle", self._spotify.shuffle, state, device_id=device_id)

    async def set_repeat(self, state: RepeatState, device_id: str | None) -> None:
        await self._execute("set repeat", self._spotify.repeat, state.value, device_id=device_id)

    async def set_volume(self, percent: int, device_id: str | None) -> None:
        await self._execute(
            "set volume", self._spotify.volume, percent, device_id=device_id,
            details={"volume_percent": percent},
        )

    async def transfer_playback(self, device_id: str) -> None:
        await self._execute(
            "transfer playback",
            self._spotify.transfer_playback,
            device_id,
            force_play=True,
            details={"device_id": device_id},
        )
