"""
Engine module for spot-remote.

    - intents: the closed Intent union
    - playback: seek/random/validation helpers and optimistic patches
    - dispatcher: DispatchEngine, the only writer of the SharedStore
    - worker: IntentWorker, a single queue-backed consumer of intents
"""

from spot_remote.engine.dispatcher import DispatchEngine, validate_intent
from spot_remote.engine.intents import Intent
from spot_remote.engine.playback import (
    SeekTarget,
    compute_random_offset,
    compute_seek_target,
    validate_search_limit,
    validate_volume,
)
from spot_remote.engine.worker import IntentWorker

__all__ = [
    "DispatchEngine",
    "validate_intent",
    "Intent",
    "SeekTarget",
    "compute_random_offset",
    "compute_seek_target",
    "validate_search_limit",
    "validate_volume",
    "IntentWorker",
]
