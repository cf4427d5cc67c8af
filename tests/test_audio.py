import math

import pytest

from bark.audio import (
    SampleFormat,
    f32_to_s16,
    frame_count,
    s16_to_f32,
    silence,
)
from bark.time import CHANNELS


def test_s16_minimum_maps_to_minus_one():
    assert s16_to_f32(-32768) == -1.0


def test_zero_maps_to_zero_both_ways():
    assert s16_to_f32(0) == 0.0
    assert f32_to_s16(0.0) == 0


def test_round_trip_preserves_every_sampled_value():
    for value in range(-32768, 32768, 251):
        assert f32_to_s16(s16_to_f32(value)) == value


@pytest.mark.parametrize(
    "value, expected",
    [(2.0, 32767), (-2.0, -32768), (math.inf, 32767), (-math.inf, -32768)],
)
def test_out_of_range_is_clamped(value, expected):
    assert f32_to_s16(value) == expected


def test_nan_becomes_zero():
    assert f32_to_s16(math.nan) == 0


def test_conversion_truncates_toward_zero():
    half_step = 0.5 / 32768
    assert f32_to_s16(s16_to_f32(100) + half_step) == 100
    assert f32_to_s16(s16_to_f32(-100) - half_step) == -100


@pytest.mark.parametrize("fmt", list(SampleFormat))
def test_silence_is_zeroed_whole_frames(fmt):
    samples = silence(fmt, 5)
    assert frame_count(samples) == 5
    assert len(samples) == 5 * CHANNELS
    assert all(sample == 0 for sample in samples)


@pytest.mark.parametrize("fmt, kind", [(SampleFormat.S16, int), (SampleFormat.F32, float)])
def test_silence_sample_types_follow_format(fmt, kind):
    samples = silence(fmt, 2)
    assert [type(sample) for sample in samples] == [kind] * (2 * CHANNELS)


def test_negative_silence_rejected():
    with pytest.raises(ValueError):
        silence(SampleFormat.F32, -1)


def test_frame_count_rejects_partial_frame():
    with pytest.raises(ValueError):
        frame_count([0] * (CHANNELS + 1))