"""
Output formatter for command mode.

Renders entities into a user-supplied template by placeholder
substitution. Each field type owns exactly one two-character token:

    %b album     %a artist(s)   %p playlist   %t track    %h show
    %u uri       %d device      %v volume     %r position
    %f flags     %s playing

Rendering replaces each supplied field's token in the order the fields
are given. Every token of the full set that received no field becomes the
literal text "None", and the result is stripped.

Usage:
    formatter = Formatter(config.icons)
    line = formatter.render("%t by %a [%u]", fields_for(track))
"""

from dataclasses import dataclass
from typing import ClassVar

from spot_remote.core.config import IconConfig
from spot_remote.spotify.models import (
    Album,
    Artist,
    Episode,
    Playlist,
    RepeatState,
    Show,
    Track,
    join_artists,
)

MISSING_FIELD_TEXT = "None"


# =========================================================================
# Fields
# =========================================================================

class Field:
    """Base class for a value rendered into one placeholder."""

    placeholder: ClassVar[str]

    def render(self, icons: IconConfig) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class TextField(Field):
    text: str

    def render(self, icons: IconConfig) -> str:
        return self.text


class AlbumField(TextField):
    placeholder = "%b"


class ArtistField(TextField):
    placeholder = "%a"


class PlaylistField(TextField):
    placeholder = "%p"


class TrackField(TextField):
    placeholder = "%t"


class ShowField(TextField):
    placeholder = "%h"


class UriField(TextField):
    placeholder = "%u"


class DeviceField(TextField):
    placeholder = "%d"


@dataclass(frozen=True)
class VolumeField(Field):
    percent: int

    placeholder = "%v"

    def render(self, icons: IconConfig) -> str:
        return str(self.percent)


@dataclass(frozen=True)
class PositionField(Field):
    """Elapsed and total time of the playing item."""

    elapsed_ms: int
    total_ms: int

    placeholder = "%r"

    def render(self, icons: IconConfig) -> str:
        return format_progress(self.elapsed_ms, self.total_ms)


@dataclass(frozen=True)
class FlagsField(Field):
    """
    Shuffle, repeat and liked state.

    Renders the configured icons of the flags that are set, in the order
    shuffle, repeat, liked, joined by single spaces. Repeat off has no icon.
    """

    repeat_state: RepeatState
    shuffle: bool
    liked: bool

    placeholder = "%f"

    def render(self, icons: IconConfig) -> str:
        shuffle = icons.shuffle_icon if self.shuffle else ""
        match self.repeat_state:
            case RepeatState.TRACK:
                repeat = icons.repeat_track_icon
            case RepeatState.CONTEXT:
                repeat = icons.repeat_context_icon
            case _:
                repeat = ""
        liked = icons.liked_icon if self.liked else ""
        return " ".join(icon for icon in (shuffle, repeat, liked) if icon)


@dataclass(frozen=True)
class PlayingField(Field):
    is_playing: bool

    placeholder = "%s"

    def render(self, icons: IconConfig) -> str:
        return icons.playing_icon if self.is_playing else icons.paused_icon


FIELD_TYPES: tuple[type[Field], ...] = (
    AlbumField,
    ArtistField,
    PlaylistField,
    TrackField,
    ShowField,
    UriField,
    DeviceField,
    VolumeField,
    PositionField,
    FlagsField,
    PlayingField,
)

PLACEHOLDERS: tuple[str, ...] = tuple(field_type.placeholder for field_type in FIELD_TYPES)


# =========================================================================
# Rendering
# =========================================================================

def _minutes_seconds(ms: int) -> str:
    minutes, seconds = divmod(max(ms, 0) // 1000, 60)
    return f"{minutes}:{seconds:02d}"


def format_progress(elapsed_ms: int, total_ms: int) -> str:
    """
    Render elapsed/total time.

    Example:
        format_progress(65_000, 200_000)  # "1:05/3:20"
    """
    return f"{_minutes_seconds(elapsed_ms)}/{_minutes_seconds(total_ms)}"


class Formatter:
    """
    Renders fields into templates with the configured icons.

    Attributes:
        icons: Icons for the flags and playing placeholders.
    """

    def __init__(self, icons: IconConfig | None = None) -> None:
        self.icons = icons if icons is not None else IconConfig()

    def render(self, template: str, fields: list[Field]) -> str:
        """
        Substitute `fields` into `template`.

        Args:
            template: Text containing zero or more placeholder tokens.
            fields: Values to substitute, applied in order.

        Returns:
            The rendered text, stripped. Tokens without a field read "None".

        Example:
            render("%t by %a [%u]", [TrackField("Song"), ArtistField("Band")])
            # "Song by Band [None]"
        """
        output = template
        for field in fields:
            output = output.replace(field.placeholder, field.render(self.icons))

        for placeholder in PLACEHOLDERS:
            output = output.replace(placeholder, MISSING_FIELD_TEXT)

        return output.strip()


def fields_for(entity: Album | Artist | Playlist | Track | Show | Episode) -> list[Field]:
    """
    Extract the displayable fields of an entity.

    Albums and tracks without an id (local files) have no uri field.
    Shows and episodes render their publisher as the artist.
    """
    match entity:
        case Track():
            fields: list[Field] = [
                AlbumField(entity.album.name if entity.album else ""),
                ArtistField(entity.artist_names),
                TrackField(entity.name),
            ]
            if entity.id:
                fields.append(UriField(entity.uri))
            return fields
        case Album():
            fields = [AlbumField(entity.name), ArtistField(join_artists(entity.artists))]
            if entity.id:
                fields.append(UriField(entity.uri))
            return fields
        case Artist():
            return [ArtistField(entity.name), UriField(entity.uri)]
        case Playlist():
            return [PlaylistField(entity.name), UriField(entity.uri)]
        case Show():
            return [ArtistField(entity.publisher), ShowField(entity.name), UriField(entity.uri)]
        case Episode():
            show = entity.show
            return [
                ShowField(show.name if show else ""),
                ArtistField(show.publisher if show else ""),
                TrackField(entity.name),
                UriField(entity.uri),
            ]
    raise TypeError(f"cannot format {type(entity).__name__}")
