"""
Command-mode operations for spot-remote.

CliApp is the command layer used by `spot-remote playback|play|list|search`.
Each operation issues intents to the DispatchEngine, awaits them, then
reads the SharedStore back and, where there is output, renders it with
the Formatter.

Error Handling:
    The engine records remote failures in the store instead of raising.
    CliApp compares transient.error_count before and after every intent
    and re-raises the recorded error, so a command fails with the
    SpotifyError (or PreconditionError) that ended its intent.

Usage:
    app = CliApp(engine, Formatter(config.icons))
    print(await app.get_status("%f %s %t - %a"))
    await app.seek("+30")
"""

from typing import Literal

from tqdm import tqdm

from spot_remote.core.exceptions import PreconditionError, ValidationError
from spot_remote.core.logger import get_logger
from spot_remote.engine.dispatcher import DispatchEngine
from spot_remote.engine.intents import (
    AddToQueue,
    ChangeVolume,
    CycleRepeat,
    FetchDevices,
    FetchPlayback,
    FetchPlaylists,
    FetchSavedTracks,
    Intent,
    NextTrack,
    PausePlayback,
    PreviousTrack,
    SearchAll,
    Seek,
    SelectDevice,
    StartPlayback,
    ToggleSaveTrack,
    ToggleShuffle,
    TransferPlayback,
    UpdateSearchLimits,
)
from spot_remote.engine.playback import compute_seek_target
from spot_remote.formatting import (
    DeviceField,
    Field,
    FlagsField,
    Formatter,
    PlayingField,
    PositionField,
    VolumeField,
    fields_for,
)
from spot_remote.spotify.models import Device, Episode, PlaybackContext, Track, share_url
from spot_remote.state.pagination import next_page_offset

logger = get_logger(__name__)

ItemKind = Literal["track", "album", "artist", "playlist", "show"]
ListKind = Literal["devices", "playlists", "liked"]
Mark = Literal["like", "dislike", "shuffle", "repeat"]

# URI kinds that name a context to play, and kinds that name a single item
CONTEXT_KINDS = ("artist", "album", "playlist", "show")
PLAYABLE_KINDS = ("track", "episode")


def _parse_int(raw: str, message: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ValidationError(message, details={"value": raw}) from e


def parse_uri(uri: str) -> tuple[str, str]:
    """
    Split a Spotify URI into kind and id.

    Example:
        parse_uri("spotify:album:4aawyAB9vmqN3uQ7FjRGTy")  # ("album", "4aawyAB9vmqN3uQ7FjRGTy")

    Raises:
        ValidationError: If `uri` is not of the form spotify:<kind>:<id>.
    """
    parts = uri.strip().split(":")
    if len(parts) != 3 or parts[0] != "spotify" or not parts[1] or not parts[2]:
        raise ValidationError(f"'{uri}' is not a Spotify URI", details={"uri": uri})
    return parts[1], parts[2]


class CliApp:
    """
    Command-mode front end over the dispatch engine.

    Attributes:
        engine: Engine executing the intents.
        formatter: Formatter for every printed line.
    """

    def __init__(self, engine: DispatchEngine, formatter: Formatter) -> None:
        self.engine = engine
        self.formatter = formatter

    # =========================================================================
    # Engine access
    # =========================================================================

    async def _execute(self, intent: Intent) -> None:
        """
        Execute an intent and raise the error it recorded, if any.

        Raises:
            ValidationError: Raised by the engine before any remote call.
            SpotRemoteError: The failure recorded by the intent or one of
                             its follow-ups.
        """
        before = await self.engine.store.read(lambda state: state.transient.error_count)
        await self.engine.execute(intent)
        after, error = await self.engine.store.read(
            lambda state: (state.transient.error_count, state.transient.last_error)
        )
        if after != before and error is not None:
            raise error

    async def _require_playback(self, refresh: bool = False) -> PlaybackContext:
        if refresh:
            await self._execute(FetchPlayback())
        playback = await self.engine.store.read(lambda state: state.playback)
        if playback is None:
            await self._execute(FetchPlayback())
            playback = await self.engine.store.read(lambda state: state.playback)
        if playback is None:
            raise PreconditionError("no context available")
        return playback

    async def _devices(self) -> list[Device]:
        await self._execute(FetchDevices())
        return await self.engine.store.read(lambda state: state.devices)

    def _render_all(self, template: str, rows: list[list[Field]]) -> str:
        return "\n".join(self.formatter.render(template, row) for row in rows)

    # =========================================================================
    # Playback
    # =========================================================================

    async def toggle_playback(self) -> None:
        """Pause when playing, resume otherwise."""
        playback = await self.engine.store.read(lambda state: state.playback)
        if playback is None:
            await self._execute(FetchPlayback())
            playback = await self.engine.store.read(lambda state: state.playback)

        if playback is not None and playback.is_playing:
            await self._execute(PausePlayback())
        else:
            await self._execute(StartPlayback())

    async def share_track(self) -> str:
        """Web link of the playing track or episode."""
        playback = await self._require_playback()
        match playback.item:
            case Track(id=str(track_id)):
                return share_url("track", track_id)
            case Episode(id=episode_id):
                return share_url("episode", episode_id)
        raise PreconditionError("failed to generate a shareable url for the current song")

    async def share_album(self) -> str:
        """Web link of the playing track's album or the playing episode's show."""
        playback = await self._require_playback()
        match playback.item:
            case Track(album=album) if album is not None and album.id:
                return share_url("album", album.id)
            case Episode(show=show) if show is not None:
                return share_url("show", show.id)
        raise PreconditionError("failed to generate a shareable url for the current song")

    async def set_device(self, name: str) -> None:
        """
        Direct later commands to the device called `name`.

        Raises:
            PreconditionError: If no device is available or none has that name.
        """
        devices = await self._devices()
        if not devices:
            raise PreconditionError("no device available")

        for device in devices:
            if device.name == name:
                if not device.id:
                    raise PreconditionError(f"failed to use device with name '{name}'")
                logger.debug(f"Controlling device '{name}' ({device.id})")
                await self._execute(SelectDevice(device.id))
                return
        raise PreconditionError(f"no device with name '{name}'", details={"device": name})

    async def update_query_limits(self, raw: str) -> None:
        """Set both search limits from user input ("1".."50")."""
        limit = _parse_int(raw, "limit must be between 1 and 50")
        await self._execute(UpdateSearchLimits(large=limit, small=limit))

    async def volume(self, raw: str) -> None:
        """Set the volume from user input ("0".."100")."""
        percent = _parse_int(raw, "volume must be between 0 and 100")
        await self._execute(ChangeVolume(percent))

    async def jump(self, direction: Literal["next", "previous"], times: int = 1) -> None:
        for _ in range(times):
            await self._execute(NextTrack() if direction == "next" else PreviousTrack())

    async def transfer_playback(self, name: str) -> None:
        devices = await self._devices()
        device = next((d for d in devices if d.name == name and d.id), None)
        if device is None:
            raise PreconditionError(f"no device with name '{name}'", details={"device": name})
        await self._execute(TransferPlayback(device.id))

    async def seek(self, raw: str) -> None:
        """
        Seek within the playing item.

        Args:
            raw: "+N" / "-N" seconds relative to the current position,
                 "N" seconds from the start. A target past the end of the
                 item skips to the next track.
        """
        playback = await self._require_playback(refresh=True)
        if playback.progress_ms is None or playback.item is None:
            raise PreconditionError("no context available")

        target = compute_seek_target(raw, playback.progress_ms, playback.item.duration_ms)
        if target.skip_to_next:
            logger.debug("Seek target is past the end of the item, skipping to next")
            await self.jump("next")
        else:
            await self._execute(Seek(target.position_ms))

    async def mark(self, flag: Mark) -> None:
        """
        Like/dislike the playing track, or flip shuffle, or advance repeat.

        Liking a track that is already liked (or disliking one that is not)
        changes nothing.
        """
        playback = await self._require_playback()

        match flag:
            case "like" | "dislike":
                match playback.item:
                    case Track(id=str(track_id)):
                        await self._execute(ToggleSaveTrack(track_id, desired=flag == "like"))
                    case Track():
                        raise PreconditionError("item has no id")
                    case Episode():
                        raise PreconditionError("saving episodes is not supported")
                    case _:
                        raise PreconditionError("no item playing")
            case "shuffle":
                await self._execute(ToggleShuffle(playback.shuffle_state))
            case "repeat":
                await self._execute(CycleRepeat(playback.repeat_state))

    async def get_status(self, template: str) -> str:
        """Render the current playback into `template`."""
        playback = await self._require_playback(refresh=True)
        item = playback.item

        match item:
            case Track():
                if not item.id:
                    raise PreconditionError("no id for track")
                fields = fields_for(item)
                # FetchPlayback already queued the saved-track check
                liked = await self.engine.store.read(
                    lambda state: state.liked_tracks.contains(item.id)
                )
            case Episode():
                fields = fields_for(item)
                liked = False
            case _:
                raise PreconditionError("no track playing")

        if playback.progress_ms is not None:
            fields.append(PositionField(playback.progress_ms, item.duration_ms))
        fields.append(FlagsField(playback.repeat_state, playback.shuffle_state, liked))
        if playback.device is not None:
            fields.append(DeviceField(playback.device.name))
        fields.append(VolumeField(playback.volume_percent or 0))
        fields.append(PlayingField(playback.is_playing))

        return self.formatter.render(template, fields)

    # =========================================================================
    # Listing and searching
    # =========================================================================

    async def list_items(self, kind: ListKind, template: str, all_pages: bool = False) -> str:
        """
        List devices, playlists or liked songs.

        Args:
            kind: What to list.
            template: Output format for each line.
            all_pages: For liked songs, walk every page instead of the first.
        """
        match kind:
            case "devices":
                devices = await self._devices()
                if not devices:
                    return "No devices available"
                return self._render_all(
                    template,
                    [[DeviceField(d.name), VolumeField(d.volume_percent or 0)] for d in devices],
                )
            case "playlists":
                await self._execute(FetchPlaylists())
                playlists = await self.engine.store.read(lambda state: state.playlists)
                if playlists is None or not playlists.items:
                    return "No playlists found"
                return self._render_all(template, [fields_for(p) for p in playlists.items])
            case "liked":
                tracks = await self._liked_tracks(all_pages)
                if not tracks:
                    return "No liked songs found"
                return self._render_all(template, [fields_for(t) for t in tracks])

    async def _liked_tracks(self, all_pages: bool) -> list[Track]:
        await self._execute(FetchSavedTracks(0))
        if not all_pages:
            return await self.engine.store.read(lambda state: state.track_table.tracks)

        cache = await self.engine.store.read(lambda state: state.library.saved_tracks)
        first = cache.page_at_offset(0)
        if first is None:
            return []

        # Removed tracks are dropped when parsing, so step by the requested size
        size = first.limit or await self.engine.store.read(lambda state: state.large_search_limit)
        total = cache.total_count()
        offset = 0
        with tqdm(total=total, desc="Liked songs", unit="track") as progress:
            progress.update(len(first.items))
            while (offset := next_page_offset(offset, size, total)) is not None:
                await self._execute(FetchSavedTracks(offset))
                page = await self.engine.store.read(
                    lambda state, o=offset: state.library.saved_tracks.page_at_offset(o)
                )
                if page is None:
                    break
                progress.update(len(page.items))

        cache = await self.engine.store.read(lambda state: state.library.saved_tracks)
        pages = sorted(cache.pages, key=lambda page: page.offset)
        return [track for page in pages for track in page.items]

    async def query(self, term: str, kind: ItemKind, template: str) -> str:
        """Search `term` and render the results of one category."""
        await self._execute(SearchAll(term))
        results = await self.engine.store.read(
            lambda state: getattr(state.search_results, f"{kind}s")
        )
        if results is None or not results.items:
            return f"no {kind}s with name '{term}'"
        return self._render_all(template, [fields_for(item) for item in results.items])

    # =========================================================================
    # Playing
    # =========================================================================

    async def play_uri(self, uri: str, queue: bool = False, random: bool = False) -> None:
        """
        Play or queue a Spotify URI.

        Raises:
            ValidationError: If the URI names nothing playable.
        """
        kind, _ = parse_uri(uri)
        if kind in CONTEXT_KINDS:
            await self._play(uri, None, queue, random, uri)
        elif kind in PLAYABLE_KINDS:
            await self._play(None, uri, queue, random, uri)
        else:
            raise ValidationError(f"Cannot play '{uri}'", details={"uri": uri})

    async def play(
        self,
        name: str,
        kind: ItemKind,
        queue: bool = False,
        random: bool = False
    ) -> None:
        """Search `name` and play (or queue) the first result of `kind`."""
        await self._execute(SearchAll(name))
        results = await self.engine.store.read(
            lambda state: getattr(state.search_results, f"{kind}s")
        )
        if results is None or not results.items:
            raise PreconditionError(f"no {kind}s with name '{name}'", details={"name": name})

        first = results.items[0]
        if kind == "track":
            if not first.id:
                raise PreconditionError(f"track {first.name} has no id")
            await self._play(None, first.uri, queue, random, name)
        else:
            if not first.uri:
                raise PreconditionError(f"{kind} {first.name} has no uri")
            await self._play(first.uri, None, queue, random, name)

    async def _play(
        self,
        context_uri: str | None,
        playable_uri: str | None,
        queue: bool,
        random: bool,
        display_name: str
    ) -> None:
        if queue:
            if playable_uri is None:
                raise PreconditionError(
                    f"Cannot queue '{display_name}', try playing without queue"
                )
            await self._execute(AddToQueue(playable_uri))
            return

        await self._execute(
            StartPlayback(
                context_uri=context_uri,
                uris=(playable_uri,) if playable_uri is not None else None,
                random=random,
            )
        )

