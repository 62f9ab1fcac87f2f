"""Test playback orchestration helpers"""

import random

import pytest

from spot_remote.core.exceptions import PreconditionError, ValidationError
from spot_remote.engine.playback import (
    compute_random_offset,
    compute_seek_target,
    next_repeat_state,
    validate_search_limit,
    validate_volume,
    with_repeat,
    with_shuffle,
    with_volume,
)
from spot_remote.spotify.models import PlaybackContext, RepeatState


class TestSeekTarget:
    """Test compute_seek_target with position 30s and duration 200s"""

    def test_backward_seek_saturates_at_zero(self):
        target = compute_seek_target("-50", 30_000, 200_000)

        assert target.position_ms == 0
        assert not target.skip_to_next

    def test_backward_seek(self):
        assert compute_seek_target("-10", 30_000, 200_000).position_ms == 20_000

    def test_forward_seek(self):
        assert compute_seek_target("+15", 30_000, 200_000).position_ms == 45_000

    def test_forward_past_end_skips_to_next(self):
        target = compute_seek_target("+190", 30_000, 200_000)

        assert target.skip_to_next
        assert target.position_ms is None

    def test_absolute_seek(self):
        assert compute_seek_target("90", 30_000, 200_000).position_ms == 90_000

    def test_absolute_past_end_skips_to_next(self):
        assert compute_seek_target("201", 30_000, 200_000).skip_to_next

    def test_exact_end_is_a_seek(self):
        assert compute_seek_target("200", 30_000, 200_000).position_ms == 200_000

    @pytest.mark.parametrize("raw", ["", "abc", "+1.5", "1:30"])
    def test_invalid_input(self, raw):
        with pytest.raises(ValidationError):
            compute_seek_target(raw, 30_000, 200_000)


class TestRandomOffset:
    """Test compute_random_offset"""

    def test_in_range(self):
        rng = random.Random(7)

        offsets = {compute_random_offset(5, rng) for _ in range(200)}

        assert offsets == {0, 1, 2, 3, 4}

    def test_single_item(self):
        assert compute_random_offset(1) == 0

    @pytest.mark.parametrize("total", [0, -3])
    def test_empty_collection_is_a_precondition_error(self, total):
        with pytest.raises(PreconditionError):
            compute_random_offset(total)


class TestValidators:
    """Test volume and limit validation"""

    @pytest.mark.parametrize("percent", [0, 55, 100])
    def test_valid_volume(self, percent):
        assert validate_volume(percent) == percent

    @pytest.mark.parametrize("percent", [-1, 101, 150, True, "50"])
    def test_invalid_volume(self, percent):
        with pytest.raises(ValidationError):
            validate_volume(percent)

    @pytest.mark.parametrize("limit", [1, 20, 50])
    def test_valid_limit(self, limit):
        assert validate_search_limit(limit) == limit

    @pytest.mark.parametrize("limit", [0, 51, -5, False])
    def test_invalid_limit(self, limit):
        with pytest.raises(ValidationError):
            validate_search_limit(limit)


class TestRepeatAndPatches:
    """Test the repeat cycle and the optimistic patches"""

    def test_repeat_cycle(self):
        assert next_repeat_state(RepeatState.OFF) is RepeatState.CONTEXT
        assert next_repeat_state(RepeatState.CONTEXT) is RepeatState.TRACK
        assert next_repeat_state(RepeatState.TRACK) is RepeatState.OFF

    def test_with_volume(self, sample_playback):
        patched = with_volume(sample_playback, 80)

        assert patched.volume_percent == 80
        assert sample_playback.volume_percent == 50
        assert patched.item == sample_playback.item

    def test_with_volume_without_device(self):
        context = PlaybackContext(device=None, is_playing=False)

        assert with_volume(context, 80) is context

    def test_with_shuffle(self, sample_playback):
        assert with_shuffle(sample_playback, True).shuffle_state is True

    def test_with_repeat(self, sample_playback):
        assert with_repeat(sample_playback, RepeatState.TRACK).repeat_state is RepeatState.TRACK
