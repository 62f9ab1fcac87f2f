"""
Command-line interface for spot-remote.

This module implements command mode using Click, driving the dispatch
engine through CliApp and printing formatted results.
rich-click is used for the output colors.

Commands:
    spot-remote playback                    Show the current playback
    spot-remote playback --toggle           Pause / resume
    spot-remote playback --next [--next]    Skip forward (once per flag)
    spot-remote playback --seek +30         Seek relative or absolute (seconds)
    spot-remote playback --like             Like the playing track
    spot-remote playback --volume 40        Set the volume
    spot-remote playback --transfer NAME    Move playback to another device
    spot-remote play --uri URI              Play a Spotify URI
    spot-remote play --name NAME --album    Search and play the first album
    spot-remote list --devices              List devices
    spot-remote list --liked --all          List every liked song
    spot-remote search TERM --tracks        Search tracks

Options:
    --config <path>                         config.yaml to use
    --device <name>                         Device to control

Format Placeholders:
    %b album  %a artist  %p playlist  %t track  %h show  %u uri
    %d device  %v volume  %r position  %f flags  %s playing
    Placeholders without a value print "None".

Exit Codes:
    0 success, 1 configuration error, 2 invalid input,
    3 Spotify error, 4 other error, 130 interrupted.
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100

from spot_remote import __version__
from spot_remote.commands import CliApp
from spot_remote.core import (
    ConfigError,
    SpotifyError,
    SpotRemoteError,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_remote.engine import DispatchEngine
from spot_remote.formatting import Formatter
from spot_remote.spotify import SpotifyClient

logger = get_logger(__name__)

ITEM_KINDS = ("track", "album", "artist", "playlist", "show")

DEFAULT_STATUS_FORMAT = "%f %s %t - %a"

DEFAULT_LIST_FORMATS = {
    "devices": "%v% %d",
    "playlists": "%p (%u)",
    "liked": "%t - %a (%u)",
}

DEFAULT_SEARCH_FORMATS = {
    "track": "%t - %a (%u)",
    "album": "%b - %a (%u)",
    "artist": "%a (%u)",
    "playlist": "%p (%u)",
    "show": "%h - %a (%u)",
}

Operation = Callable[[CliApp], Awaitable[Optional[str]]]


def _one_of(flags: dict[str, bool], what: str) -> str:
    """Return the single selected flag name, or raise a usage error."""
    selected = [name for name, is_set in flags.items() if is_set]
    if len(selected) != 1:
        options = ", ".join(f"--{name}" for name in flags)
        raise click.UsageError(f"Choose exactly one {what}: {options}")
    return selected[0]


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml or ~/.config/spot-remote/)"
)
@click.option(
    "--device", "-d",
    type=str,
    default=None,
    metavar="<name>",
    help="Device to control"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    device: Optional[str],
    version: bool
) -> None:
    """
    spot-remote: control Spotify playback from the terminal.

    \b
    EXAMPLES:
        spot-remote playback                     # What is playing
        spot-remote playback --toggle            # Pause / resume
        spot-remote play --name "Abbey Road" --album --random
        spot-remote search "daft punk" --artists --limit 5
        spot-remote --device Kitchen playback --volume 30
    """
    if version:
        click.echo(f"spot-remote {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["device"] = device


@cli.command()
@click.option("--status", "-s", is_flag=True, help="Print the current playback")
@click.option(
    "--format", "-f", "output_format",
    default=DEFAULT_STATUS_FORMAT,
    show_default=True,
    help="Format of the status line"
)
@click.option("--toggle", "-t", is_flag=True, help="Pause or resume playback")
@click.option("--next", "-n", "next_count", count=True, help="Next track (repeatable)")
@click.option("--previous", "-p", "previous_count", count=True, help="Previous track (repeatable)")
@click.option("--like", is_flag=True, help="Like the playing track")
@click.option("--dislike", is_flag=True, help="Remove the playing track from liked songs")
@click.option("--shuffle", is_flag=True, help="Toggle shuffle")
@click.option("--repeat", is_flag=True, help="Cycle repeat: off, context, track")
@click.option("--volume", "-v", default=None, metavar="<0-100>", help="Set the volume")
@click.option("--seek", default=None, metavar="<[+|-]seconds>", help="Seek in the playing item")
@click.option("--transfer", default=None, metavar="<device>", help="Transfer playback to a device")
@click.option("--share-track", is_flag=True, help="Print the web link of the playing track")
@click.option("--share-album", is_flag=True, help="Print the web link of the playing album")
@click.pass_context
def playback(
    ctx: click.Context,
    status: bool,
    output_format: str,
    toggle: bool,
    next_count: int,
    previous_count: int,
    like: bool,
    dislike: bool,
    shuffle: bool,
    repeat: bool,
    volume: Optional[str],
    seek: Optional[str],
    transfer: Optional[str],
    share_track: bool,
    share_album: bool
) -> None:
    """
    Control and inspect the current playback.

    Actions run in the order listed in --help. Without any action, or with
    --status, the current playback is printed afterwards.
    """
    if like and dislike:
        raise click.UsageError("Cannot use both --like and --dislike")
    if next_count and previous_count:
        raise click.UsageError("Cannot use both --next and --previous")

    has_action = any([
        toggle, next_count, previous_count, like, dislike, shuffle, repeat,
        volume is not None, seek is not None, transfer is not None,
        share_track, share_album,
    ])

    async def operation(app: CliApp) -> Optional[str]:
        lines: list[str] = []
        if transfer is not None:
            await app.transfer_playback(transfer)
        if toggle:
            await app.toggle_playback()
        if next_count:
            await app.jump("next", next_count)
        if previous_count:
            await app.jump("previous", previous_count)
        if seek is not None:
            await app.seek(seek)
        if like or dislike:
            await app.mark("like" if like else "dislike")
        if shuffle:
            await app.mark("shuffle")
        if repeat:
            await app.mark("repeat")
        if volume is not None:
            await app.volume(volume)
        if share_track:
            lines.append(await app.share_track())
        if share_album:
            lines.append(await app.share_album())
        if status or not has_action:
            lines.append(await app.get_status(output_format))
        return "\n".join(lines) if lines else None

    _run(ctx.obj, operation)


@cli.command()
@click.option("--uri", "-u", default=None, metavar="<spotify-uri>", help="URI to play")
@click.option("--name", "-n", default=None, metavar="<name>", help="Search NAME and play the first match")
@click.option("--track", is_flag=True, help="NAME is a track")
@click.option("--album", is_flag=True, help="NAME is an album")
@click.option("--artist", is_flag=True, help="NAME is an artist")
@click.option("--playlist", is_flag=True, help="NAME is a playlist")
@click.option("--show", is_flag=True, help="NAME is a show")
@click.option("--queue", "-q", is_flag=True, help="Add to the queue instead of playing")
@click.option("--random", "-r", "random_offset", is_flag=True, help="Start at a random track of the album or playlist")
@click.pass_context
def play(
    ctx: click.Context,
    uri: Optional[str],
    name: Optional[str],
    track: bool,
    album: bool,
    artist: bool,
    playlist: bool,
    show: bool,
    queue: bool,
    random_offset: bool
) -> None:
    """Play or queue a URI, or the first search result for a name."""
    if (uri is None) == (name is None):
        raise click.UsageError("Use exactly one of --uri and --name")

    if uri is not None:
        async def operation(app: CliApp) -> Optional[str]:
            await app.play_uri(uri, queue=queue, random=random_offset)
            return None
    else:
        kind = _one_of(
            {"track": track, "album": album, "artist": artist, "playlist": playlist, "show": show},
            "type to play"
        )

        async def operation(app: CliApp) -> Optional[str]:
            await app.play(name, kind, queue=queue, random=random_offset)
            return None

    _run(ctx.obj, operation)


@cli.command(name="list")
@click.option("--devices", is_flag=True, help="List available devices")
@click.option("--playlists", is_flag=True, help="List your playlists")
@click.option("--liked", is_flag=True, help="List your liked songs")
@click.option("--all", "all_pages", is_flag=True, help="With --liked: fetch every page")
@click.option("--limit", default=None, metavar="<1-50>", help="Page size")
@click.option("--format", "-f", "output_format", default=None, help="Format of each line")
@click.pass_context
def list_command(
    ctx: click.Context,
    devices: bool,
    playlists: bool,
    liked: bool,
    all_pages: bool,
    limit: Optional[str],
    output_format: Optional[str]
) -> None:
    """List devices, playlists or liked songs."""
    kind = _one_of({"devices": devices, "playlists": playlists, "liked": liked}, "thing to list")
    if all_pages and kind != "liked":
        raise click.UsageError("--all can only be used with --liked")
    template = output_format or DEFAULT_LIST_FORMATS[kind]

    async def operation(app: CliApp) -> Optional[str]:
        if limit is not None:
            await app.update_query_limits(limit)
        return await app.list_items(kind, template, all_pages=all_pages)

    _run(ctx.obj, operation)


@cli.command()
@click.argument("term")
@click.option("--tracks", is_flag=True, help="Search tracks")
@click.option("--albums", is_flag=True, help="Search albums")
@click.option("--artists", is_flag=True, help="Search artists")
@click.option("--playlists", is_flag=True, help="Search playlists")
@click.option("--shows", is_flag=True, help="Search shows")
@click.option("--limit", default=None, metavar="<1-50>", help="Number of results")
@click.option("--format", "-f", "output_format", default=None, help="Format of each line")
@click.pass_context
def search(
    ctx: click.Context,
    term: str,
    tracks: bool,
    albums: bool,
    artists: bool,
    playlists: bool,
    shows: bool,
    limit: Optional[str],
    output_format: Optional[str]
) -> None:
    """Search TERM in one category."""
    selected = _one_of(
        {"tracks": tracks, "albums": albums, "artists": artists, "playlists": playlists, "shows": shows},
        "category"
    )
    kind = selected[:-1]
    template = output_format or DEFAULT_SEARCH_FORMATS[kind]

    async def operation(app: CliApp) -> Optional[str]:
        if limit is not None:
            await app.update_query_limits(limit)
        return await app.query(term, kind, template)

    _run(ctx.obj, operation)


def _run(options: dict, operation: Operation) -> None:
    """
    Load configuration, set up logging and run one command operation.

    Maps every error to a message on stderr and an exit code.

    Raises:
        SystemExit: On any error (with the matching exit code).
    """
    try:
        config = load_config(options.get("config_path"))

        setup_logging(config.logging.directory, config.logging.level)
        logger.debug("spot-remote starting")

        remote = SpotifyClient.from_config(config.spotify)
        engine = DispatchEngine.from_config(remote, config)
        app = CliApp(engine, Formatter(config.icons))

        output = asyncio.run(_execute(app, options.get("device"), operation))
        if output:
            click.echo(output)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except ValidationError as e:
        click.echo(f"Invalid input: {e.message}", err=True)
        sys.exit(2)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check your client_id and redirect_uri in config.yaml", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(3)

    except SpotRemoteError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}")
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


async def _execute(app: CliApp, device: Optional[str], operation: Operation) -> Optional[str]:
    if device is not None:
        await app.set_device(device)
    return await operation(app)


def main() -> None:
    """Entry point for the spot-remote console script."""
    cli()


if __name__ == "__main__":
    main()
