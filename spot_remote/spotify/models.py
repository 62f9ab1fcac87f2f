"""
Data models for Spotify entities.

This module defines immutable dataclasses representing the Spotify objects
the dispatch engine stores and the output formatter renders: tracks,
albums, artists, playlists, shows, episodes, devices and the current
playback context.

Design Decisions:
    - All dataclasses are frozen (immutable); the engine replaces them,
      never mutates them in place
    - Ids and URIs are opaque strings, passed back to the API untouched
    - Each model is built from the raw API dict by from_spotify_api()
    - Fields that Spotify omits for some payloads (simplified vs full
      objects) have defaults

Usage:
    from spot_remote.spotify.models import Track, Page

    track = Track.from_spotify_api(response)
    page = Page.from_spotify_api(response, Track.from_saved_item)
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

OPEN_SPOTIFY_URL = "https://open.spotify.com"


class RepeatState(str, Enum):
    """Repeat mode of the player, with the API's string values."""

    OFF = "off"
    TRACK = "track"
    CONTEXT = "context"


def share_url(kind: str, entity_id: str) -> str:
    """
    Build the public web link for an entity.

    Args:
        kind: Entity kind as it appears in URIs ("track", "album", "show", ...).
        entity_id: The entity id.

    Returns:
        The https://open.spotify.com/{kind}/{id} link.
    """
    return f"{OPEN_SPOTIFY_URL}/{kind}/{entity_id}"


@dataclass(frozen=True)
class Artist:
    """
    Immutable representation of a Spotify artist.

    Attributes:
        id: Spotify artist ID.
        name: Artist name. Example: "Queen"
        uri: Spotify URI. Example: "spotify:artist:1dfeR4HaWDbWqFHLkxsg1d"
        genres: Genres from the full artist object (empty for simplified ones).
    """
    id: str
    name: str
    uri: str
    genres: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Artist":
        return cls(
            id=data.get("id") or "",
            name=data.get("name", ""),
            uri=data.get("uri", ""),
            genres=tuple(data.get("genres") or ()),
        )


def join_artists(artists: tuple[Artist, ...]) -> str:
    """Join artist names with ", " for display."""
    return ", ".join(artist.name for artist in artists)


@dataclass(frozen=True)
class Album:
    """
    Immutable representation of a Spotify album.

    Attributes:
        id: Spotify album ID. None only for local files.
        name: Album name. Example: "A Night at the Opera"
        uri: Spotify URI, empty when the album has no id.
        artists: Album artists, in API order.
        album_type: "album", "single" or "compilation".
        release_date: Release date string as returned ("1975-11-21" or "1975").
        total_tracks: Number of tracks on the album.
    """
    id: str | None
    name: str
    uri: str
    artists: tuple[Artist, ...] = field(default_factory=tuple)
    album_type: str = "album"
    release_date: str = ""
    total_tracks: int = 0

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Album":
        """
        Create an Album from an album object (simplified or full).

        Saved-album pages wrap the album as {"added_at": ..., "album": {...}};
        use from_saved_item() for those.
        """
        tracks = data.get("tracks")
        total_tracks = data.get("total_tracks")
        if total_tracks is None and isinstance(tracks, dict):
            total_tracks = tracks.get("total", 0)

        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            uri=data.get("uri") or "",
            artists=tuple(Artist.from_spotify_api(a) for a in data.get("artists") or ()),
            album_type=data.get("album_type") or "album",
            release_date=data.get("release_date") or "",
            total_tracks=total_tracks or 0,
        )

    @classmethod
    def from_saved_item(cls, item: dict[str, Any]) -> "Album | None":
        album = item.get("album")
        return cls.from_spotify_api(album) if album else None


@dataclass(frozen=True)
class Track:
    """
    Immutable representation of a Spotify track.

    Attributes:
        id: Spotify track ID (22-character base62 string).
            None for local files, which cannot be saved or shared.
        name: Track title. Example: "Bohemian Rhapsody"
        uri: Spotify URI. Example: "spotify:track:4u7EnebtmKWzUH433cf5Qv"
        artists: Track artists, in API order.
        album: The track's album. None for tracks fetched through an album
               (album_tracks omits it) unless the caller attaches one.
        duration_ms: Track duration in milliseconds.
        track_number: Position on the album, 1-indexed as Spotify reports it.
        explicit: Whether the track is marked explicit.
    """
    id: str | None
    name: str
    uri: str
    artists: tuple[Artist, ...]
    duration_ms: int
    album: Album | None = None
    track_number: int = 1
    explicit: bool = False

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any], album: Album | None = None) -> "Track":
        """
        Create a Track from a track object.

        Args:
            data: The track object (from track(), tracks(), search results
                  or the 'track' field of a playlist/saved item).
            album: Album to attach when the payload has none.

        Returns:
            Track: A new Track instance.
        """
        album_data = data.get("album")
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            uri=data.get("uri") or "",
            artists=tuple(Artist.from_spotify_api(a) for a in data.get("artists") or ()),
            duration_ms=data.get("duration_ms") or 0,
            album=Album.from_spotify_api(album_data) if album_data else album,
            track_number=data.get("track_number") or 1,
            explicit=bool(data.get("explicit", False)),
        )

    @classmethod
    def from_saved_item(cls, item: dict[str, Any]) -> "Track | None":
        """
        Extract the track from a saved-track or playlist item wrapper.

        Returns None for removed tracks and for episodes inside playlists,
        so Page.from_spotify_api() drops them.
        """
        track = item.get("track")
        if not track or track.get("type", "track") != "track":
            return None
        return cls.from_spotify_api(track)

    @property
    def artist_names(self) -> str:
        return join_artists(self.artists)


@dataclass(frozen=True)
class Show:
    """
    Immutable representation of a Spotify show (podcast).

    Attributes:
        id: Spotify show ID.
        name: Show name.
        uri: Spotify URI.
        publisher: Publisher name, rendered as the artist placeholder.
        total_episodes: Episode count reported by Spotify.
    """
    id: str
    name: str
    uri: str
    publisher: str = ""
    total_episodes: int = 0

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Show":
        return cls(
            id=data.get("id") or "",
            name=data.get("name", ""),
            uri=data.get("uri", ""),
            publisher=data.get("publisher") or "",
            total_episodes=data.get("total_episodes") or 0,
        )

    @classmethod
    def from_saved_item(cls, item: dict[str, Any]) -> "Show | None":
        show = item.get("show")
        return cls.from_spotify_api(show) if show else None


@dataclass(frozen=True)
class Episode:
    """
    Immutable representation of a podcast episode.

    Attributes:
        id: Spotify episode ID.
        name: Episode title.
        uri: Spotify URI.
        duration_ms: Episode duration in milliseconds.
        release_date: Release date string.
        show: Parent show. Missing from show_episodes() payloads.
    """
    id: str
    name: str
    uri: str
    duration_ms: int
    release_date: str = ""
    show: Show | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any], show: Show | None = None) -> "Episode":
        show_data = data.get("show")
        return cls(
            id=data.get("id") or "",
            name=data.get("name", ""),
            uri=data.get("uri", ""),
            duration_ms=data.get("duration_ms") or 0,
            release_date=data.get("release_date") or "",
            show=Show.from_spotify_api(show_data) if show_data else show,
        )


@dataclass(frozen=True)
class Playlist:
    """
    Immutable representation of a Spotify playlist (simplified object).

    Attributes:
        id: Spotify playlist ID.
        name: Playlist name.
        uri: Spotify URI.
        owner_id: User id of the owner. "spotify" for editorial and
                  made-for-you playlists.
        owner_name: Owner display name.
        total_tracks: Number of items in the playlist.
    """
    id: str
    name: str
    uri: str
    owner_id: str = ""
    owner_name: str = ""
    total_tracks: int = 0

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Playlist":
        owner = data.get("owner") or {}
        tracks = data.get("tracks") or data.get("items") or {}
        return cls(
            id=data.get("id") or "",
            name=data.get("name", ""),
            uri=data.get("uri", ""),
            owner_id=owner.get("id") or "",
            owner_name=owner.get("display_name") or "",
            total_tracks=tracks.get("total", 0) if isinstance(tracks, dict) else 0,
        )


@dataclass(frozen=True)
class Device:
    """
    A Spotify Connect device.

    Attributes:
        id: Device id. None for restricted devices that cannot be targeted.
        name: Human-readable device name, used by --device and --transfer.
        type: Device type ("Computer", "Smartphone", "Speaker", ...).
        is_active: Whether the device is the current playback target.
        volume_percent: Current volume 0-100, None when unavailable.
    """
    id: str | None
    name: str
    type: str = ""
    is_active: bool = False
    volume_percent: int | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Device":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            type=data.get("type") or "",
            is_active=bool(data.get("is_active", False)),
            volume_percent=data.get("volume_percent"),
        )


Playable = Track | Episode


@dataclass(frozen=True)
class PlaybackContext:
    """
    Snapshot of the current playback, as returned by current_playback().

    Replaced wholesale on each successful fetch. The volume, shuffle and
    repeat fields may briefly hold an optimistic value set by the engine
    (see spot_remote.engine.playback) until the next fetch replaces them.

    Attributes:
        device: Device playing, if Spotify reports one.
        is_playing: True while playing, False while paused.
        progress_ms: Position in the current item, None if unknown.
        shuffle_state: Whether shuffle is on.
        repeat_state: Current repeat mode.
        item: The playing track or episode, None between items.
        context_uri: URI of the playing album/playlist/artist, if any.
        timestamp: Server timestamp (ms since epoch) of the snapshot.
    """
    device: Device | None
    is_playing: bool
    progress_ms: int | None = None
    shuffle_state: bool = False
    repeat_state: RepeatState = RepeatState.OFF
    item: Playable | None = None
    context_uri: str | None = None
    timestamp: int = 0

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "PlaybackContext":
        """
        Create a PlaybackContext from a current_playback() payload.

        The item is parsed as an Episode when currently_playing_type is
        "episode" (requires additional_types="episode,track").
        """
        device_data = data.get("device")
        item_data = data.get("item")
        item: Playable | None = None
        if item_data:
            if item_data.get("type") == "episode":
                item = Episode.from_spotify_api(item_data)
            else:
                item = Track.from_spotify_api(item_data)

        context = data.get("context") or {}
        return cls(
            device=Device.from_spotify_api(device_data) if device_data else None,
            is_playing=bool(data.get("is_playing", False)),
            progress_ms=data.get("progress_ms"),
            shuffle_state=bool(data.get("shuffle_state", False)),
            repeat_state=RepeatState(data.get("repeat_state") or "off"),
            item=item,
            context_uri=context.get("uri"),
            timestamp=data.get("timestamp") or 0,
        )

    @property
    def volume_percent(self) -> int | None:
        return self.device.volume_percent if self.device else None


@dataclass(frozen=True)
class User:
    """The authenticated user (current_user())."""
    id: str
    display_name: str = ""
    country: str | None = None
    product: str = ""

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=data.get("id") or "",
            display_name=data.get("display_name") or "",
            country=data.get("country"),
            product=data.get("product") or "",
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One window of a remote collection.

    Attributes:
        items: Parsed items, in API order.
        total: Size of the whole remote collection. Authoritative even
               before all pages are fetched.
        offset: Offset the page was fetched with.
        limit: Page size the page was fetched with.
        cursor: "after" cursor for cursor-paged collections
                (followed artists, recently played). None otherwise or
                on the last page.
    """
    items: tuple[T, ...]
    total: int
    offset: int = 0
    limit: int = 0
    cursor: str | None = None

    @classmethod
    def from_spotify_api(
        cls,
        data: dict[str, Any],
        parse_item: Callable[[dict[str, Any]], T | None]
    ) -> "Page[T]":
        """
        Create a Page from a paging object.

        Args:
            data: A Spotify paging object ({"items", "total", "offset",
                  "limit", "cursors"?}).
            parse_item: Converts one raw item; items it maps to None
                        (removed tracks, null search hits) are dropped.

        Returns:
            Page: A new Page with parsed items.
        """
        items = tuple(
            parsed for raw in data.get("items") or ()
            if raw is not None and (parsed := parse_item(raw)) is not None
        )
        cursors = data.get("cursors") or {}
        return cls(
            items=items,
            total=data.get("total") or 0,
            offset=data.get("offset") or 0,
            limit=data.get("limit") or 0,
            cursor=cursors.get("after"),
        )

    @classmethod
    def empty(cls) -> "Page[T]":
        return cls(items=(), total=0)


@dataclass(frozen=True)
class SearchResults:
    """Results of the five-way search; each field replaced on every search."""
    tracks: Page[Track] | None = None
    albums: Page[Album] | None = None
    artists: Page[Artist] | None = None
    playlists: Page[Playlist] | None = None
    shows: Page[Show] | None = None


@dataclass(frozen=True)
class ArtistDetail:
    """
    Everything shown for one artist: the result of the joined fetch.

    Attributes:
        artist_id: The artist's id.
        artist_name: Display name (looked up when the caller had none).
        albums: First page of the artist's albums.
        top_tracks: Top tracks in the requested market.
        related_artists: Artists Spotify considers similar.
    """
    artist_id: str
    artist_name: str
    albums: Page[Album]
    top_tracks: tuple[Track, ...]
    related_artists: tuple[Artist, ...]


@dataclass(frozen=True)
class AudioAnalysis:
    """Summary of a track's audio analysis."""
    track_id: str
    duration_s: float
    tempo: float
    key: int
    mode: int
    time_signature: int
    loudness: float
    bar_count: int = 0
    beat_count: int = 0
    section_count: int = 0

    @classmethod
    def from_spotify_api(cls, track_id: str, data: dict[str, Any]) -> "AudioAnalysis":
        summary = data.get("track") or {}
        return cls(
            track_id=track_id,
            duration_s=summary.get("duration") or 0.0,
            tempo=summary.get("tempo") or 0.0,
            key=summary.get("key", -1),
            mode=summary.get("mode", 0),
            time_signature=summary.get("time_signature") or 4,
            loudness=summary.get("loudness") or 0.0,
            bar_count=len(data.get("bars") or ()),
            beat_count=len(data.get("beats") or ()),
            section_count=len(data.get("sections") or ()),
        )


@dataclass(frozen=True)
class PlayHistory:
    """A recently played track and when it was played."""
    track: Track
    played_at: str

    @classmethod
    def from_spotify_api(cls, item: dict[str, Any]) -> "PlayHistory | None":
        track = item.get("track")
        if not track:
            return None
        return cls(track=Track.from_spotify_api(track), played_at=item.get("played_at") or "")
