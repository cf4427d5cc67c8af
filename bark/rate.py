"""Playback rate adjustment that keeps a receiver in step with its stream."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .time import SAMPLE_RATE, SampleDuration, Timestamp

_START_SLEW = SampleDuration.from_std_duration_lossy(timedelta(microseconds=500))
_STOP_SLEW = SampleDuration.from_std_duration_lossy(timedelta(microseconds=100))


def _truncating_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


@dataclass(frozen=True)
class Timing:
    """When audio is really played versus when the stream wants it played."""

    real: Timestamp
    play: Timestamp


@dataclass
class RateAdjust:
    """Chooses an input sample rate from timing, with slewing hysteresis."""

    slew: bool = False

    def sample_rate(self, timing: Timing) -> int:
        rate = self._adjusted_rate(timing)
        return SAMPLE_RATE if rate is None else rate

    def _adjusted_rate(self, timing: Timing) -> int | None:
        offset = timing.real.delta(timing.play)

        if offset.abs() < _STOP_SLEW:
            self.slew = False
            return None

        if offset.abs() < _START_SLEW and not self.slew:
            return None

        base = SAMPLE_RATE
        rate = base + _truncating_div(offset.as_frames() ** 3, 48)

        # never stray more than 1% from the nominal rate
        rate = max(base * 99 // 100, rate)
        rate = min(base * 101 // 100, rate)

        self.slew = True
        return rate