"""
Playback orchestration helpers.

Pure functions used by the dispatch engine and the command layer:
input validation for volume and search limits, seek target arithmetic,
random start positions, and the optimistic playback patches.

Two-phase Playback Updates:
    Shuffle, repeat and volume changes are applied to the cached
    PlaybackContext right after the remote call succeeds (phase 1, the
    with_* functions here), so the change shows immediately. The next
    FetchPlayback (phase 2) replaces the context unconditionally. Until
    then the patched value is a guess: if another client changed the same
    setting in between, the store shows the wrong value for the length of
    one polling interval.
"""

import random
from dataclasses import dataclass, replace

from spot_remote.core.config import MAX_SEARCH_LIMIT
from spot_remote.core.exceptions import PreconditionError, ValidationError
from spot_remote.spotify.models import PlaybackContext, RepeatState

# The remote may still report the pre-seek position right after a seek
SEEK_SETTLE_SECONDS = 1.0

MIN_VOLUME = 0
MAX_VOLUME = 100


@dataclass(frozen=True)
class SeekTarget:
    """
    Outcome of compute_seek_target().

    Attributes:
        position_ms: Where to seek, when seeking within the item.
        skip_to_next: True when the target lies past the end of the item;
                      the caller advances to the next track instead.
    """
    position_ms: int | None
    skip_to_next: bool = False


def compute_seek_target(raw: str, position_ms: int, duration_ms: int) -> SeekTarget:
    """
    Work out the seek destination from user input in seconds.

    Args:
        raw: "+N" seeks N seconds forward, "-N" N seconds back, "N" to
             N seconds from the start.
        position_ms: Current position in the item.
        duration_ms: Length of the item.

    Returns:
        SeekTarget. Backward seeks stop at 0. A target past duration_ms
        yields skip_to_next instead of a position.

    Raises:
        ValidationError: If raw is not a whole number of seconds.

    Example:
        compute_seek_target("-50", 30_000, 200_000)   # SeekTarget(0)
        compute_seek_target("+190", 30_000, 200_000)  # skip_to_next
    """
    text = raw.strip()
    try:
        seconds = abs(int(text))
    except ValueError as e:
        raise ValidationError(
            f"seek position must be a whole number of seconds, got '{raw}'",
            details={"value": raw}
        ) from e

    offset_ms = seconds * 1000
    if text.startswith("+"):
        target = position_ms + offset_ms
    elif text.startswith("-"):
        target = max(position_ms - offset_ms, 0)
    else:
        target = offset_ms

    if target > duration_ms:
        return SeekTarget(position_ms=None, skip_to_next=True)
    return SeekTarget(position_ms=target)


def compute_random_offset(total: int, rng: random.Random | None = None) -> int:
    """
    Pick a uniformly random position in a collection of `total` items.

    Raises:
        PreconditionError: If the collection is empty.
    """
    if total <= 0:
        raise PreconditionError(
            "cannot pick a random item from an empty collection",
            details={"total": total}
        )
    return (rng or random).randrange(total)


def _require_int(value: object, name: str) -> int:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer", details={"value": value})
    return value


def validate_volume(percent: int) -> int:
    """
    Check a volume percentage.

    Raises:
        ValidationError: Unless 0 <= percent <= 100.
    """
    percent = _require_int(percent, "volume")
    if not MIN_VOLUME <= percent <= MAX_VOLUME:
        raise ValidationError(
            f"volume must be between {MIN_VOLUME} and {MAX_VOLUME}",
            details={"value": percent}
        )
    return percent


def validate_search_limit(limit: int) -> int:
    """
    Check a search/page limit.

    Raises:
        ValidationError: Unless 1 <= limit <= 50.
    """
    limit = _require_int(limit, "limit")
    if not 1 <= limit <= MAX_SEARCH_LIMIT:
        raise ValidationError(
            f"limit must be between 1 and {MAX_SEARCH_LIMIT}",
            details={"value": limit}
        )
    return limit


def next_repeat_state(current: RepeatState) -> RepeatState:
    """Off -> Context -> Track -> Off."""
    return {
        RepeatState.OFF: RepeatState.CONTEXT,
        RepeatState.CONTEXT: RepeatState.TRACK,
        RepeatState.TRACK: RepeatState.OFF,
    }[current]


# =========================================================================
# Optimistic patches (phase 1)
# =========================================================================

def with_volume(context: PlaybackContext, percent: int) -> PlaybackContext:
    """Copy of `context` with the device volume set; unchanged without a device."""
    if context.device is None:
        return context
    return replace(context, device=replace(context.device, volume_percent=percent))


def with_shuffle(context: PlaybackContext, shuffle_state: bool) -> PlaybackContext:
    return replace(context, shuffle_state=shuffle_state)


def with_repeat(context: PlaybackContext, repeat_state: RepeatState) -> PlaybackContext:
    return replace(context, repeat_state=repeat_state)
