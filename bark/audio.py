"""Sample formats and conversions between 16-bit and float audio samples.

Audio is handled as flat lists of interleaved samples, CHANNELS per frame:
ints in the signed 16-bit range for S16, floats in [-1.0, 1.0] for F32.
"""

from __future__ import annotations

import math
from enum import Enum

from .time import CHANNELS, FRAMES_PER_PACKET

MAX_QUEUED_DECODE_SEGMENTS = 1024
DECODE_BUFFER_FRAMES = FRAMES_PER_PACKET * 2

I16_MIN = -32768
I16_MAX = 32767
_SCALE = float(-I16_MIN)


class SampleFormat(Enum):
    """In-memory sample representation."""

    S16 = "s16"
    F32 = "f32"

    @property
    def zero(self) -> int | float:
        return 0 if self is SampleFormat.S16 else 0.0


def s16_to_f32(value: int) -> float:
    """Scale a signed 16-bit sample into the float range."""
    return value / _SCALE


def f32_to_s16(value: float) -> int:
    """Scale a float sample to signed 16 bits, clamping and truncating."""
    if math.isnan(value):
        return 0
    scaled = min(max(value * _SCALE, float(I16_MIN)), float(I16_MAX))
    return int(scaled)


def silence(fmt: SampleFormat, frames: int) -> list[int | float]:
    """Interleaved zero samples for the given number of frames."""
    if frames < 0:
        raise ValueError(f"frame count must not be negative: {frames}")
    return [fmt.zero] * (frames * CHANNELS)


def frame_count(samples: list) -> int:
    """Number of whole frames in an interleaved sample list."""
    frames, rest = divmod(len(samples), CHANNELS)
    if rest:
        raise ValueError(f"{len(samples)} samples do not form whole frames")
    return frames