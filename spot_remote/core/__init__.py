"""
Core module for spot-remote.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs

Usage:
    from spot_remote.core import (
        Config, load_config,
        setup_logging, get_logger,
        SpotRemoteError, ConfigError, SpotifyError
    )
"""

from spot_remote.core.config import (
    Config,
    IconConfig,
    LoggingConfig,
    SearchConfig,
    SpotifyConfig,
    load_config,
)
from spot_remote.core.exceptions import (
    ConfigError,
    PreconditionError,
    SpotifyError,
    SpotRemoteError,
    ValidationError,
)
from spot_remote.core.logger import (
    get_logger,
    log_intent_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "IconConfig",
    "SearchConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "SpotRemoteError",
    "ConfigError",
    "SpotifyError",
    "ValidationError",
    "PreconditionError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_intent_failure",
    "shutdown_logging",
]
