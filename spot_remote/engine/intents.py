"""
Intents: the closed set of operations the dispatch engine executes.

Each intent is a frozen dataclass carrying exactly the data its handler
needs. `Intent` is the union of all of them; the engine dispatches with a
single match statement that ends in typing.assert_never, so a new variant
without a handler fails type checking.

Usage:
    from spot_remote.engine.intents import Seek, ToggleSaveTrack

    await engine.execute(Seek(position_ms=90_000))
    await engine.execute(ToggleSaveTrack(id="4u7EnebtmKWzUH433cf5Qv"))
"""

from dataclasses import dataclass

from spot_remote.spotify.models import Album, Artist, RepeatState, Show, Track


# =========================================================================
# Account and playback state
# =========================================================================

@dataclass(frozen=True)
class FetchPlayback:
    pass


@dataclass(frozen=True)
class RefreshAuthentication:
    pass


@dataclass(frozen=True)
class FetchUser:
    pass


@dataclass(frozen=True)
class FetchDevices:
    pass


@dataclass(frozen=True)
class FetchRecentlyPlayed:
    pass


# =========================================================================
# Browsing
# =========================================================================

@dataclass(frozen=True)
class FetchPlaylists:
    pass


@dataclass(frozen=True)
class SearchAll:
    """Search the five categories at once with the small search limit."""
    term: str
    market: str | None = None


@dataclass(frozen=True)
class SetTracksToTable:
    tracks: tuple[Track, ...]


@dataclass(frozen=True)
class SetArtistsToTable:
    artists: tuple[Artist, ...]


@dataclass(frozen=True)
class FetchPlaylistTracks:
    playlist_id: str
    offset: int = 0


@dataclass(frozen=True)
class FetchMadeForYouTracks:
    playlist_id: str
    offset: int = 0


@dataclass(frozen=True)
class MadeForYouSearchAndAdd:
    """Find Spotify-owned playlists named `term` and add them to the made-for-you list."""
    term: str
    market: str | None = None


@dataclass(frozen=True)
class FetchArtist:
    """
    Load the artist view: albums, top tracks and related artists, fetched
    concurrently. An empty artist_name is looked up first.
    """
    artist_id: str
    artist_name: str = ""
    market: str | None = None


@dataclass(frozen=True)
class FetchAlbum:
    album_id: str


@dataclass(frozen=True)
class FetchAlbumTracks:
    album: Album


@dataclass(frozen=True)
class FetchAlbumForTrack:
    track_id: str


@dataclass(frozen=True)
class FetchShow:
    show_id: str


@dataclass(frozen=True)
class FetchShowEpisodes:
    show: Show


@dataclass(frozen=True)
class FetchMoreShowEpisodes:
    show_id: str
    offset: int


@dataclass(frozen=True)
class FetchRecommendations:
    """
    Fill the track table with recommendations and start playing them.

    first_track, when given, is placed at the top of the list.
    """
    seed_artist_ids: tuple[str, ...] = ()
    seed_track_ids: tuple[str, ...] = ()
    first_track: Track | None = None
    market: str | None = None


@dataclass(frozen=True)
class FetchRecommendationsForTrack:
    track_id: str
    market: str | None = None


@dataclass(frozen=True)
class FetchAudioAnalysis:
    track_id: str


# =========================================================================
# Library pages
# =========================================================================

@dataclass(frozen=True)
class FetchSavedTracks:
    offset: int = 0


@dataclass(frozen=True)
class FetchSavedAlbums:
    offset: int = 0


@dataclass(frozen=True)
class FetchSavedShows:
    offset: int = 0


@dataclass(frozen=True)
class FetchFollowedArtists:
    """Followed artists are cursor-paged: `after` is the last artist id seen."""
    after: str | None = None


# =========================================================================
# Playback control
# =========================================================================

@dataclass(frozen=True)
class StartPlayback:
    """
    Start playback of a context or a list of URIs; resume when both are None.

    offset is the 0-based position to start from. With random set, a
    playlist or album context starts at a random track instead; other
    contexts ignore it.
    """
    context_uri: str | None = None
    uris: tuple[str, ...] | None = None
    offset: int | None = None
    random: bool = False


@dataclass(frozen=True)
class AddToQueue:
    uri: str


@dataclass(frozen=True)
class Seek:
    position_ms: int


@dataclass(frozen=True)
class NextTrack:
    pass


@dataclass(frozen=True)
class PreviousTrack:
    pass


@dataclass(frozen=True)
class PausePlayback:
    pass


@dataclass(frozen=True)
class ToggleShuffle:
    """Flip shuffle; `current` is the state shown to the user."""
    current: bool


@dataclass(frozen=True)
class CycleRepeat:
    """Advance repeat Off -> Context -> Track -> Off from `current`."""
    current: RepeatState


@dataclass(frozen=True)
class ChangeVolume:
    percent: int


@dataclass(frozen=True)
class TransferPlayback:
    device_id: str


@dataclass(frozen=True)
class SelectDevice:
    """Target `device_id` with later playback commands without transferring playback."""
    device_id: str


@dataclass(frozen=True)
class UpdateSearchLimits:
    large: int
    small: int


# =========================================================================
# Containment checks and toggles
# =========================================================================
#
# Toggles query the remote first. With desired=None they flip the current
# state; with desired=True/False they only mutate when the remote state
# differs, so repeating a "like" is a no-op.

@dataclass(frozen=True)
class CheckSavedTracks:
    ids: tuple[str, ...]


@dataclass(frozen=True)
class CheckSavedAlbums:
    ids: tuple[str, ...]


@dataclass(frozen=True)
class CheckSavedShows:
    ids: tuple[str, ...]


@dataclass(frozen=True)
class CheckFollowedArtists:
    ids: tuple[str, ...]


@dataclass(frozen=True)
class ToggleSaveTrack:
    id: str
    desired: bool | None = None


@dataclass(frozen=True)
class ToggleSaveAlbum:
    id: str
    desired: bool | None = None


@dataclass(frozen=True)
class ToggleSaveShow:
    id: str
    desired: bool | None = None


@dataclass(frozen=True)
class ToggleFollowArtist:
    id: str
    desired: bool | None = None


@dataclass(frozen=True)
class ToggleFollowPlaylist:
    id: str
    desired: bool | None = None


Intent = (
    FetchPlayback
    | RefreshAuthentication
    | FetchUser
    | FetchDevices
    | FetchRecentlyPlayed
    | FetchPlaylists
    | SearchAll
    | SetTracksToTable
    | SetArtistsToTable
    | FetchPlaylistTracks
    | FetchMadeForYouTracks
    | MadeForYouSearchAndAdd
    | FetchArtist
    | FetchAlbum
    | FetchAlbumTracks
    | FetchAlbumForTrack
    | FetchShow
    | FetchShowEpisodes
    | FetchMoreShowEpisodes
    | FetchRecommendations
    | FetchRecommendationsForTrack
    | FetchAudioAnalysis
    | FetchSavedTracks
    | FetchSavedAlbums
    | FetchSavedShows
    | FetchFollowedArtists
    | StartPlayback
    | AddToQueue
    | Seek
    | NextTrack
    | PreviousTrack
    | PausePlayback
    | ToggleShuffle
    | CycleRepeat
    | ChangeVolume
    | TransferPlayback
    | SelectDevice
    | UpdateSearchLimits
    | CheckSavedTracks
    | CheckSavedAlbums
    | CheckSavedShows
    | CheckFollowedArtists
    | ToggleSaveTrack
    | ToggleSaveAlbum
    | ToggleSaveShow
    | ToggleFollowArtist
    | ToggleFollowPlaylist
)
