"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from spot_remote.core.config import IconConfig
from spot_remote.core.exceptions import SpotifyError
from spot_remote.engine.dispatcher import DispatchEngine
from spot_remote.formatting import Formatter
from spot_remote.spotify.models import (
    Album,
    Artist,
    AudioAnalysis,
    Device,
    Episode,
    Page,
    PlaybackContext,
    Playlist,
    RepeatState,
    Show,
    Track,
    User,
)
from spot_remote.state.store import SharedStore


def make_artist(artist_id="artist_1", name="Band"):
    return Artist(id=artist_id, name=name, uri=f"spotify:artist:{artist_id}")


def make_album(album_id="album_1", name="Record", total_tracks=10):
    return Album(
        id=album_id,
        name=name,
        uri=f"spotify:album:{album_id}" if album_id else "",
        artists=(make_artist(),),
        total_tracks=total_tracks,
    )


def make_track(track_id="track_1", name="Song", duration_ms=200_000, track_number=1, album=None):
    return Track(
        id=track_id,
        name=name,
        uri=f"spotify:track:{track_id}" if track_id else "",
        artists=(make_artist(),),
        duration_ms=duration_ms,
        album=album if album is not None else make_album(),
        track_number=track_number,
    )


def make_show(show_id="show_1", name="Podcast"):
    return Show(id=show_id, name=name, uri=f"spotify:show:{show_id}", publisher="Publisher")


def make_episode(episode_id="episode_1", name="Episode One", show=None):
    return Episode(
        id=episode_id,
        name=name,
        uri=f"spotify:episode:{episode_id}",
        duration_ms=1_800_000,
        show=show if show is not None else make_show(),
    )


def make_playlist(playlist_id="playlist_1", name="Mix", owner_id="user_1", total_tracks=30):
    return Playlist(
        id=playlist_id,
        name=name,
        uri=f"spotify:playlist:{playlist_id}",
        owner_id=owner_id,
        total_tracks=total_tracks,
    )


def make_page(items, total=None, offset=0, limit=20, cursor=None):
    items = tuple(items)
    return Page(
        items=items,
        total=len(items) if total is None else total,
        offset=offset,
        limit=limit,
        cursor=cursor,
    )


class FakeRemote:
    """
    In-memory RemoteClient.

    Every call is recorded in `calls` as (method name, args). Methods named
    in `failing` raise SpotifyError. Library membership lives in plain sets,
    so contains/save/remove behave like the real account.
    """

    MUTATING = {
        "save_tracks", "remove_saved_tracks", "save_albums", "remove_saved_albums",
        "save_shows", "remove_saved_shows", "follow_artists", "unfollow_artists",
        "follow_playlist", "unfollow_playlist",
    }

    def __init__(self):
        self.calls = []
        self.failing = set()

        self.user = User(id="user_1", display_name="Tester")
        self.devices = [
            Device(id="device_1", name="Laptop", type="Computer", is_active=True, volume_percent=50),
            Device(id="device_2", name="Kitchen", type="Speaker", volume_percent=30),
        ]
        self.playback = None
        self.search_pages = {}
        self.tracks = {}
        self.albums = {}
        self.playlists = {}
        self.playlist_tracks = []
        self.saved_track_items = []
        self.album_track_items = []
        self.episode_items = []
        self.recommendations = []

        self.liked_tracks = set()
        self.saved_albums = set()
        self.saved_shows = set()
        self.followed_artists = set()
        self.followed_playlists = set()

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.failing:
            raise SpotifyError(f"Failed to {name}", details={"method": name})

    def called(self, name):
        return [args for call_name, args in self.calls if call_name == name]

    def mutating_calls(self):
        return [name for name, _ in self.calls if name in self.MUTATING]

    @staticmethod
    def _window(items, limit, offset):
        return make_page(items[offset:offset + limit], total=len(items), offset=offset, limit=limit)

    # Account

    async def refresh_authentication(self):
        self._record("refresh_authentication")

    async def get_current_user(self):
        self._record("get_current_user")
        return self.user

    async def get_devices(self):
        self._record("get_devices")
        return list(self.devices)

    async def get_current_playback(self):
        self._record("get_current_playback")
        return self.playback

    async def get_recently_played(self, limit):
        self._record("get_recently_played", limit)
        return []

    # Browsing

    async def search(self, term, kind, limit, market):
        self._record("search", term, kind, limit, market)
        return self.search_pages.get(kind, Page.empty())

    async def get_playlists(self, limit, offset):
        self._record("get_playlists", limit, offset)
        return self._window(list(self.playlists.values()), limit, offset)

    async def get_playlist(self, playlist_id):
        self._record("get_playlist", playlist_id)
        return self.playlists[playlist_id]

    async def get_playlist_tracks(self, playlist_id, limit, offset):
        self._record("get_playlist_tracks", playlist_id, limit, offset)
        return self._window(self.playlist_tracks, limit, offset)

    async def get_track(self, track_id):
        self._record("get_track", track_id)
        return self.tracks[track_id]

    async def get_tracks(self, track_ids, market):
        self._record("get_tracks", track_ids, market)
        return [self.tracks[track_id] for track_id in track_ids]

    async def get_album(self, album_id):
        self._record("get_album", album_id)
        return self.albums.get(album_id) or make_album(album_id)

    async def get_album_tracks(self, album, limit, offset):
        self._record("get_album_tracks", album.id, limit, offset)
        return self._window(self.album_track_items, limit, offset)

    async def get_artist(self, artist_id):
        self._record("get_artist", artist_id)
        return make_artist(artist_id, name="Looked Up")

    async def get_artist_albums(self, artist_id, limit, market):
        self._record("get_artist_albums", artist_id, limit, market)
        return make_page([make_album("album_a"), make_album("album_b")])

    async def get_artist_top_tracks(self, artist_id, market):
        self._record("get_artist_top_tracks", artist_id, market)
        return [make_track("top_1"), make_track("top_2")]

    async def get_related_artists(self, artist_id):
        self._record("get_related_artists", artist_id)
        return [make_artist("related_1", "Other Band")]

    async def get_show(self, show_id):
        self._record("get_show", show_id)
        return make_show(show_id)

    async def get_show_episodes(self, show, limit, offset):
        self._record("get_show_episodes", show.id, limit, offset)
        return self._window(self.episode_items, limit, offset)

    async def get_recommendations(self, seed_artist_ids, seed_track_ids, limit, market):
        self._record("get_recommendations", seed_artist_ids, seed_track_ids, limit, market)
        return list(self.recommendations)

    async def get_audio_analysis(self, track_id):
        self._record("get_audio_analysis", track_id)
        return AudioAnalysis(
            track_id=track_id, duration_s=200.0, tempo=120.0, key=0, mode=1,
            time_signature=4, loudness=-7.5,
        )

    # Library

    async def get_saved_tracks(self, limit, offset):
        self._record("get_saved_tracks", limit, offset)
        return self._window(self.saved_track_items, limit, offset)

    async def get_saved_albums(self, limit, offset):
        self._record("get_saved_albums", limit, offset)
        return Page.empty()

    async def get_saved_shows(self, limit, offset):
        self._record("get_saved_shows", limit, offset)
        return Page.empty()

    async def get_followed_artists(self, limit, after):
        self._record("get_followed_artists", limit, after)
        return Page.empty()

    async def contains_saved_tracks(self, ids):
        self._record("contains_saved_tracks", ids)
        return [i in self.liked_tracks for i in ids]

    async def save_tracks(self, ids):
        self._record("save_tracks", ids)
        self.liked_tracks.update(ids)

    async def remove_saved_tracks(self, ids):
        self._record("remove_saved_tracks", ids)
        self.liked_tracks.difference_update(ids)

    async def contains_saved_albums(self, ids):
        self._record("contains_saved_albums", ids)
        return [i in self.saved_albums for i in ids]

    async def save_albums(self, ids):
        self._record("save_albums", ids)
        self.saved_albums.update(ids)

    async def remove_saved_albums(self, ids):
        self._record("remove_saved_albums", ids)
        self.saved_albums.difference_update(ids)

    async def contains_saved_shows(self, ids):
        self._record("contains_saved_shows", ids)
        return [i in self.saved_shows for i in ids]

    async def save_shows(self, ids):
        self._record("save_shows", ids)
        self.saved_shows.update(ids)

    async def remove_saved_shows(self, ids):
        self._record("remove_saved_shows", ids)
        self.saved_shows.difference_update(ids)

    async def contains_followed_artists(self, ids):
        self._record("contains_followed_artists", ids)
        return [i in self.followed_artists for i in ids]

    async def follow_artists(self, ids):
        self._record("follow_artists", ids)
        self.followed_artists.update(ids)

    async def unfollow_artists(self, ids):
        self._record("unfollow_artists", ids)
        self.followed_artists.difference_update(ids)

    async def is_following_playlist(self, playlist_id, user_id):
        self._record("is_following_playlist", playlist_id, user_id)
        return playlist_id in self.followed_playlists

    async def follow_playlist(self, playlist_id):
        self._record("follow_playlist", playlist_id)
        self.followed_playlists.add(playlist_id)

    async def unfollow_playlist(self, playlist_id):
        self._record("unfollow_playlist", playlist_id)
        self.followed_playlists.discard(playlist_id)

    # Playback control

    async def start_playback(self, device_id, context_uri, uris, offset):
        self._record("start_playback", device_id, context_uri, uris, offset)

    async def add_to_queue(self, uri, device_id):
        self._record("add_to_queue", uri, device_id)

    async def seek(self, position_ms, device_id):
        self._record("seek", position_ms, device_id)

    async def next_track(self, device_id):
        self._record("next_track", device_id)

    async def previous_track(self, device_id):
        self._record("previous_track", device_id)

    async def pause_playback(self, device_id):
        self._record("pause_playback", device_id)

    async def set_shuffle(self, state, device_id):
        self._record("set_shuffle", state, device_id)

    async def set_repeat(self, state, device_id):
        self._record("set_repeat", state, device_id)

    async def set_volume(self, percent, device_id):
        self._record("set_volume", percent, device_id)

    async def transfer_playback(self, device_id):
        self._record("transfer_playback", device_id)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the delays it was asked for."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def store():
    return SharedStore()


@pytest.fixture
def engine(remote, store, sleep):
    return DispatchEngine(remote, store, sleep=sleep)


@pytest.fixture
def icons():
    return IconConfig(
        playing_icon="P",
        paused_icon="II",
        shuffle_icon="S",
        repeat_track_icon="RT",
        repeat_context_icon="RC",
        liked_icon="L",
    )


@pytest.fixture
def formatter(icons):
    return Formatter(icons)


@pytest.fixture
def sample_track():
    return make_track()


@pytest.fixture
def sample_playback(sample_track):
    """Playback of sample_track, 30 seconds in, on the Laptop."""
    return PlaybackContext(
        device=Device(id="device_1", name="Laptop", is_active=True, volume_percent=50),
        is_playing=True,
        progress_ms=30_000,
        shuffle_state=False,
        repeat_state=RepeatState.OFF,
        item=sample_track,
    )
