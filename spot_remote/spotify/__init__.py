"""
Spotify module for spot-remote.

This module handles all interaction with the Spotify Web API:
    - models: Frozen dataclasses for tracks, albums, artists, playback...
    - client: RemoteClient protocol and the spotipy-backed SpotifyClient
"""

from spot_remote.spotify.client import RemoteClient, SpotifyClient
from spot_remote.spotify.models import (
    Album,
    Artist,
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

__all__ = [
    "RemoteClient",
    "SpotifyClient",
    "Album",
    "Artist",
    "Device",
    "Episode",
    "Page",
    "PlaybackContext",
    "Playlist",
    "RepeatState",
    "Show",
    "Track",
    "User",
]
