"""
Exception classes for spot-remote.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, so that the command layer can print the message and the log
can keep the context.

Exception Hierarchy:
    SpotRemoteError (base)
        ConfigError - Configuration file issues
        SpotifyError - Remote call failures (network, auth, rate limit, not found)
        ValidationError - Input rejected before any remote call
        PreconditionError - Intent cannot run in the current state

Failure Policy:
    Nothing in spot-remote is fatal to the process. SpotifyError and
    PreconditionError raised while an intent executes are recorded in the
    shared state (transient.last_error) and end only that intent.
    ValidationError is raised synchronously to the caller of execute().
"""


class SpotRemoteError(Exception):
    """
    Base exception for all spot-remote errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all spot-remote errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (ids, status codes).

    Example:
        try:
            await engine.execute(intent)
        except SpotRemoteError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'track_id': Spotify track ID involved in the error
                     - 'http_status': HTTP status code returned by the API
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(SpotRemoteError):
    """
    Raised when there's an issue with the configuration file.

    This is the only error that stops the command-line program before
    any intent runs.

    Common causes:
        - config.yaml has invalid YAML syntax
        - client_id missing from both config.yaml and the environment
        - Icon values that are not strings
        - Search limits outside 1-50

    Example:
        raise ConfigError(
            "'search.large_limit' must be between 1 and 50",
            details={'field': 'search.large_limit', 'value': 80}
        )
    """
    pass


class SpotifyError(SpotRemoteError):
    """
    Raised when a call to the Spotify Web API fails.

    The engine treats every SpotifyError the same way: record it as the
    last error, abort the current intent, keep the store untouched.

    Common causes:
        - Invalid or expired token
        - Rate limiting
        - Entity not found or private
        - No active device
        - Network connectivity issues or timeouts

    Attributes:
        is_auth_error: True if this is an authentication error.
        is_rate_limit: True if this is a rate limit error.

    Example:
        raise SpotifyError(
            "Failed to fetch playlist items: playlist is private",
            details={'playlist_id': playlist_id, 'http_status': 403}
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize Spotify error with additional flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True if this is an authentication failure.
            is_rate_limit: Set to True if this is a rate limit error.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class ValidationError(SpotRemoteError):
    """
    Raised when user input is rejected before any remote call.

    Common causes:
        - Volume outside 0-100
        - Search limit outside 1-50
        - Seek input that is not a whole number of seconds
        - Unknown device name
        - Missing entity id

    Example:
        raise ValidationError(
            "volume must be between 0 and 100",
            details={'value': 150}
        )
    """
    pass


class PreconditionError(SpotRemoteError):
    """
    Raised when an intent cannot run in the current state.

    Unlike ValidationError, a precondition violation is discovered while
    the intent executes and is surfaced as an intent failure.

    Common causes:
        - Random selection from an empty collection
        - No active playback context for an operation that needs one
        - The playing item is an episode where a track is required

    Example:
        raise PreconditionError(
            "cannot pick a random item from an empty collection",
            details={'total': 0}
        )
    """
    pass
