"""
spot-remote: control Spotify playback from the terminal.

This package provides the core of a Spotify terminal client: an engine
that turns user intents into Spotify Web API calls and keeps an in-memory
picture of the account and the playback, plus a command mode built on it.

Architecture:
    Callers issue intents; the dispatch engine executes them one at a time
    and is the only writer of the shared state store.

    engine/ (intents -> remote calls -> store)
        - Validate the intent before any remote call
        - Run the remote calls (joined when independent)
        - Apply the results in one locked mutation
        - Record failures in the store instead of raising

    state/ (shared state)
        - Playback context, navigation stack, view state
        - Pagination caches for windowed collections
        - Containment sets for liked/saved/followed membership

    formatting.py / commands.py / cli.py (command mode)
        - Issue intents, read the store back, print formatted lines

Modules:
    core/           - Configuration, logging, exceptions
    spotify/        - Entity models, RemoteClient protocol, spotipy client
    state/          - Shared state store, pagination, containment
    engine/         - Intents, dispatch engine, worker, playback helpers
    formatting.py   - Output formatter
    commands.py     - Command-mode operations
    cli.py          - Command-line interface

Usage:
    Command Line:
        spot-remote playback
        spot-remote playback --seek -15
        spot-remote play --name "Discovery" --album
        spot-remote list --liked --all

    Python API:
        from spot_remote.core import load_config, setup_logging
        from spot_remote.engine import DispatchEngine
        from spot_remote.engine.intents import FetchPlayback
        from spot_remote.spotify import SpotifyClient

        config = load_config()
        engine = DispatchEngine.from_config(SpotifyClient.from_config(config.spotify), config)
        await engine.execute(FetchPlayback())
        playback = await engine.store.read(lambda state: state.playback)

Dependencies:
    - spotipy: Spotify API client
    - click: CLI framework
    - rich-click: CLI colors
    - tqdm: Progress bars
    - colorama: Colored console logging
    - pyyaml: Configuration file parsing
    - python-dotenv: .env overrides
"""

__version__ = "0.1.0"
__author__ = "spot-remote"
__license__ = "MIT"

# Convenience imports for common usage
from spot_remote.core import (
    Config,
    ConfigError,
    PreconditionError,
    SpotifyError,
    SpotRemoteError,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
)
from spot_remote.engine import DispatchEngine, IntentWorker
from spot_remote.spotify import SpotifyClient
from spot_remote.state import SharedStore

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    # Exceptions
    "SpotRemoteError",
    "ConfigError",
    "SpotifyError",
    "ValidationError",
    "PreconditionError",
    # Engine
    "DispatchEngine",
    "IntentWorker",
    "SharedStore",
    "SpotifyClient",
]
