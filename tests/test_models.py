"""Test Spotify data models"""

import pytest

from spot_remote.spotify.models import (
    Album,
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
    share_url,
)


@pytest.fixture
def track_payload():
    return {
        "id": "4u7EnebtmKWzUH433cf5Qv",
        "name": "Bohemian Rhapsody",
        "uri": "spotify:track:4u7EnebtmKWzUH433cf5Qv",
        "type": "track",
        "duration_ms": 354_320,
        "track_number": 11,
        "explicit": False,
        "artists": [{"id": "1dfeR4HaWDbWqFHLkxsg1d", "name": "Queen", "uri": "spotify:artist:1dfeR4HaWDbWqFHLkxsg1d"}],
        "album": {
            "id": "6i6folBtxKV28WX3msQ4FE",
            "name": "A Night at the Opera",
            "uri": "spotify:album:6i6folBtxKV28WX3msQ4FE",
            "album_type": "album",
            "release_date": "1975-11-21",
            "total_tracks": 12,
            "artists": [{"id": "1dfeR4HaWDbWqFHLkxsg1d", "name": "Queen", "uri": "spotify:artist:1dfeR4HaWDbWqFHLkxsg1d"}],
        },
    }


class TestTrack:
    """Test Track parsing"""

    def test_from_spotify_api(self, track_payload):
        track = Track.from_spotify_api(track_payload)

        assert track.id == "4u7EnebtmKWzUH433cf5Qv"
        assert track.name == "Bohemian Rhapsody"
        assert track.duration_ms == 354_320
        assert track.track_number == 11
        assert track.artist_names == "Queen"
        assert track.album.name == "A Night at the Opera"
        assert track.album.total_tracks == 12

    def test_local_track_has_no_id(self, track_payload):
        track_payload["id"] = None
        track_payload["album"]["id"] = None

        track = Track.from_spotify_api(track_payload)

        assert track.id is None
        assert track.album.id is None

    def test_attached_album_used_when_payload_has_none(self, track_payload):
        album = Album.from_spotify_api(track_payload.pop("album"))

        track = Track.from_spotify_api(track_payload, album=album)

        assert track.album == album

    def test_from_saved_item(self, track_payload):
        assert Track.from_saved_item({"added_at": "2024-01-01", "track": track_payload}).id == track_payload["id"]

    def test_saved_item_skips_removed_and_episodes(self):
        assert Track.from_saved_item({"track": None}) is None
        assert Track.from_saved_item({"track": {"type": "episode", "id": "e1"}}) is None


class TestAlbum:
    """Test Album parsing"""

    def test_total_from_tracks_object(self):
        album = Album.from_spotify_api({"id": "a1", "name": "Record", "tracks": {"total": 9}})

        assert album.total_tracks == 9
        assert album.uri == ""

    def test_from_saved_item(self):
        assert Album.from_saved_item({"album": {"id": "a1", "name": "Record"}}).id == "a1"
        assert Album.from_saved_item({}) is None


class TestPlaylist:
    """Test Playlist parsing"""

    def test_owner_and_total(self):
        playlist = Playlist.from_spotify_api({
            "id": "37i9dQZEVXcJZyENOWUFo7",
            "name": "Discover Weekly",
            "uri": "spotify:playlist:37i9dQZEVXcJZyENOWUFo7",
            "owner": {"id": "spotify", "display_name": "Spotify"},
            "tracks": {"total": 30},
        })

        assert playlist.owner_id == "spotify"
        assert playlist.owner_name == "Spotify"
        assert playlist.total_tracks == 30

    def test_missing_owner(self):
        assert Playlist.from_spotify_api({"id": "p1", "name": "Mix"}).owner_id == ""


class TestPlaybackContext:
    """Test PlaybackContext parsing"""

    def test_track_playback(self, track_payload):
        context = PlaybackContext.from_spotify_api({
            "device": {"id": "d1", "name": "Laptop", "type": "Computer", "is_active": True, "volume_percent": 64},
            "is_playing": True,
            "progress_ms": 12_000,
            "shuffle_state": True,
            "repeat_state": "context",
            "item": track_payload,
            "context": {"uri": "spotify:album:6i6folBtxKV28WX3msQ4FE"},
            "timestamp": 1_700_000_000_000,
        })

        assert isinstance(context.item, Track)
        assert context.device.name == "Laptop"
        assert context.volume_percent == 64
        assert context.repeat_state is RepeatState.CONTEXT
        assert context.shuffle_state is True
        assert context.context_uri == "spotify:album:6i6folBtxKV28WX3msQ4FE"

    def test_episode_playback(self):
        context = PlaybackContext.from_spotify_api({
            "is_playing": False,
            "item": {
                "type": "episode",
                "id": "e1",
                "name": "Episode",
                "uri": "spotify:episode:e1",
                "duration_ms": 60_000,
                "show": {"id": "s1", "name": "Podcast", "publisher": "Publisher"},
            },
        })

        assert isinstance(context.item, Episode)
        assert context.item.show.publisher == "Publisher"
        assert context.device is None
        assert context.volume_percent is None
        assert context.repeat_state is RepeatState.OFF

    def test_between_items(self):
        context = PlaybackContext.from_spotify_api({"is_playing": False, "item": None})

        assert context.item is None
        assert context.progress_ms is None


class TestPage:
    """Test Page parsing"""

    def test_drops_null_and_unparsable_items(self, track_payload):
        page = Page.from_spotify_api(
            {
                "items": [{"track": track_payload}, None, {"track": None}],
                "total": 3,
                "offset": 20,
                "limit": 20,
            },
            Track.from_saved_item,
        )

        assert len(page.items) == 1
        assert page.total == 3
        assert page.offset == 20
        assert page.cursor is None

    def test_cursor(self):
        page = Page.from_spotify_api(
            {"items": [], "total": 50, "cursors": {"after": "artist_20"}},
            Show.from_spotify_api,
        )

        assert page.cursor == "artist_20"

    def test_empty(self):
        assert Page.empty() == Page(items=(), total=0)


class TestOtherModels:
    """Test the remaining models"""

    def test_device_without_id(self):
        device = Device.from_spotify_api({"id": None, "name": "Restricted", "is_active": False})

        assert device.id is None
        assert device.volume_percent is None

    def test_user(self):
        user = User.from_spotify_api({"id": "u1", "display_name": "Tester", "country": "SE", "product": "premium"})

        assert user == User(id="u1", display_name="Tester", country="SE", product="premium")

    def test_show_from_saved_item(self):
        assert Show.from_saved_item({"show": {"id": "s1", "name": "Podcast"}}).id == "s1"

    def test_audio_analysis(self):
        analysis = AudioAnalysis.from_spotify_api("t1", {
            "track": {"duration": 200.5, "tempo": 98.2, "key": 5, "mode": 1, "time_signature": 3, "loudness": -6.1},
            "bars": [{}, {}],
            "beats": [{}, {}, {}],
            "sections": [{}],
        })

        assert analysis.tempo == 98.2
        assert analysis.time_signature == 3
        assert (analysis.bar_count, analysis.beat_count, analysis.section_count) == (2, 3, 1)

    def test_play_history(self, track_payload):
        history = PlayHistory.from_spotify_api({"track": track_payload, "played_at": "2024-05-01T10:00:00Z"})

        assert history.track.name == "Bohemian Rhapsody"
        assert PlayHistory.from_spotify_api({"track": None}) is None

    def test_share_url(self):
        assert share_url("album", "a1") == "https://open.spotify.com/album/a1"
