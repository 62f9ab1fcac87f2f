"""
Configuration management for spot-remote.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Spotify application settings (client_id, redirect_uri, default device)
    - Display icons used by the output formatter
    - Search result limits (small for multi-category search, large for paging)
    - Log directory and console log level

Configuration File Location:
    An explicit path wins. Otherwise config.yaml is looked up in the
    current working directory, then in ~/.config/spot-remote/.
    A missing file is not an error: every section has defaults, and the
    client id can come from the environment instead.

Environment:
    A .env file is loaded with python-dotenv. SPOTIFY_CLIENT_ID and
    SPOTIFY_REDIRECT_URI override the values from config.yaml.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      redirect_uri: "http://127.0.0.1:8888/callback"
      device_id: null

    behavior:
      playing_icon: "▶"
      paused_icon: "⏸"
      shuffle_icon: "🔀"
      repeat_track_icon: "🔂"
      repeat_context_icon: "🔁"
      liked_icon: "♥"

    search:
      large_limit: 20
      small_limit: 4

    logging:
      directory: "~/.cache/spot-remote/logs"
      level: "INFO"
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from spot_remote.core.exceptions import ConfigError


CONFIG_FILENAME = "config.yaml"
USER_CONFIG_DIR = Path("~/.config/spot-remote").expanduser()

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_LOG_DIRECTORY = "~/.cache/spot-remote/logs"

# Spotify rejects search and paging limits above 50
MAX_SEARCH_LIMIT = 50
DEFAULT_LARGE_SEARCH_LIMIT = 20
DEFAULT_SMALL_SEARCH_LIMIT = 4

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application settings.

    These are obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        redirect_uri: Redirect URI registered for the application.
                      Used by the PKCE flow run by spotipy.
        device_id: Device to control when none is selected explicitly.
                   None means "whatever device Spotify considers active".
    """
    client_id: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    device_id: str | None = None


@dataclass(frozen=True)
class IconConfig:
    """
    Icons used by the output formatter.

    Attributes:
        playing_icon: Rendered by %s while playing.
        paused_icon: Rendered by %s while paused.
        shuffle_icon: Part of %f when shuffle is on.
        repeat_track_icon: Part of %f when repeating the track.
        repeat_context_icon: Part of %f when repeating the context.
        liked_icon: Part of %f when the playing track is saved.
    """
    playing_icon: str = "▶"
    paused_icon: str = "⏸"
    shuffle_icon: str = "🔀"
    repeat_track_icon: str = "🔂"
    repeat_context_icon: str = "🔁"
    liked_icon: str = "♥"


@dataclass(frozen=True)
class SearchConfig:
    """
    Search result limits.

    Attributes:
        large_limit: Page size for single-category paging (playlist tracks,
                     saved collections). Default: 20.
        small_limit: Per-category size of the five-way search. Default: 4.
    """
    large_limit: int = DEFAULT_LARGE_SEARCH_LIMIT
    small_limit: int = DEFAULT_SMALL_SEARCH_LIMIT


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging settings.

    Attributes:
        directory: Directory for log files (~ expanded).
        level: Console log level name.
    """
    directory: Path
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable. Runtime changes
    (search limits, selected device) are held by the dispatch engine,
    not written back here.

    Attributes:
        spotify: Spotify application settings.
        icons: Formatter icons.
        search: Search result limits.
        logging: Log directory and level.
    """
    spotify: SpotifyConfig
    icons: IconConfig
    search: SearchConfig
    logging: LoggingConfig


def find_config_file(config_path: Path | None = None) -> Path | None:
    """
    Locate the configuration file.

    Args:
        config_path: Explicit path given by the user, if any.

    Returns:
        The first existing candidate, or None when there is no file.

    Raises:
        ConfigError: If an explicit path was given but does not exist.
    """
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        return config_path

    for candidate in (Path.cwd() / CONFIG_FILENAME, USER_CONFIG_DIR / CONFIG_FILENAME):
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to config file.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the file has invalid YAML syntax, a section is not a
                     mapping, a value is invalid, or no client id can be
                     found in the file or the environment.

    Behavior:
        1. Load .env into the process environment (existing vars win)
        2. Locate and parse config.yaml (missing file -> empty mapping)
        3. Parse each section, applying defaults
        4. Apply environment overrides to the spotify section
    """
    load_dotenv()

    path = find_config_file(config_path)
    raw_config: dict[str, Any] = {}

    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except IOError as e:
            raise ConfigError(
                f"Failed to read configuration file: {e}",
                details={"file_path": str(path), "original_error": str(e)}
            ) from e

        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML syntax in configuration file: {e}",
                details={"file_path": str(path), "original_error": str(e)}
            ) from e

        if parsed is not None and not isinstance(parsed, dict):
            raise ConfigError(
                "Configuration file must contain a YAML dictionary",
                details={"file_path": str(path)}
            )
        raw_config = parsed or {}

    return Config(
        spotify=_parse_spotify_config(_section(raw_config, "spotify")),
        icons=_parse_icon_config(_section(raw_config, "behavior")),
        search=_parse_search_config(_section(raw_config, "search")),
        logging=_parse_logging_config(_section(raw_config, "logging")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section, or an empty dict when it is absent."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    """
    Parse the Spotify section, letting the environment override it.

    Raises:
        ConfigError: If no client id is available.
    """
    client_id = os.environ.get("SPOTIFY_CLIENT_ID") or spotify_section.get("client_id", "")
    redirect_uri = (
        os.environ.get("SPOTIFY_REDIRECT_URI")
        or spotify_section.get("redirect_uri")
        or DEFAULT_REDIRECT_URI
    )
    device_id = spotify_section.get("device_id")

    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            "'spotify.client_id' must be set in config.yaml or SPOTIFY_CLIENT_ID",
            details={"field": "spotify.client_id"}
        )

    if device_id is not None and not isinstance(device_id, str):
        raise ConfigError(
            "'spotify.device_id' must be a string",
            details={"field": "spotify.device_id"}
        )

    return SpotifyConfig(
        client_id=client_id.strip(),
        redirect_uri=str(redirect_uri).strip(),
        device_id=device_id
    )


def _parse_icon_config(behavior_section: dict[str, Any]) -> IconConfig:
    """Parse the behavior section; unknown keys are ignored."""
    defaults = IconConfig()
    values: dict[str, str] = {}

    for name in (f.name for f in fields(IconConfig)):
        value = behavior_section.get(name, getattr(defaults, name))
        if not isinstance(value, str):
            raise ConfigError(
                f"'behavior.{name}' must be a string",
                details={"field": f"behavior.{name}"}
            )
        values[name] = value

    return IconConfig(**values)


def _parse_search_config(search_section: dict[str, Any]) -> SearchConfig:
    """
    Parse the search section.

    Raises:
        ConfigError: If a limit is not an integer in 1-50.
    """
    limits: dict[str, int] = {}

    for name, default in (
        ("large_limit", DEFAULT_LARGE_SEARCH_LIMIT),
        ("small_limit", DEFAULT_SMALL_SEARCH_LIMIT),
    ):
        value = search_section.get(name, default)
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(
                f"'search.{name}' must be an integer",
                details={"field": f"search.{name}"}
            )
        if not 1 <= value <= MAX_SEARCH_LIMIT:
            raise ConfigError(
                f"'search.{name}' must be between 1 and {MAX_SEARCH_LIMIT}",
                details={"field": f"search.{name}", "value": value}
            )
        limits[name] = value

    return SearchConfig(**limits)


def _parse_logging_config(logging_section: dict[str, Any]) -> LoggingConfig:
    """Parse the logging section, expanding ~ in the directory."""
    directory = logging_section.get("directory", DEFAULT_LOG_DIRECTORY)
    level = logging_section.get("level", "INFO")

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'logging.directory' must be a non-empty string",
            details={"field": "logging.directory"}
        )

    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(VALID_LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    return LoggingConfig(
        directory=Path(directory.strip()).expanduser(),
        level=level.upper()
    )
