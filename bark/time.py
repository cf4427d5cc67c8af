"""Timestamps and durations measured in frames at the protocol sample rate."""

from __future__ import annotations

import time as _clock
from dataclasses import dataclass
from datetime import timedelta
from typing import ClassVar

SAMPLE_RATE = 48000
CHANNELS = 2
FRAMES_PER_PACKET = 48
SAMPLES_PER_PACKET = CHANNELS * FRAMES_PER_PACKET

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

_MICROS_PER_SECOND = 1_000_000
_ONE_MICROSECOND = timedelta(microseconds=1)


def _require_u64(value: int, what: str) -> None:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{what} out of range for u64: {value}")


def _narrow_u64(value: int, what: str) -> int:
    if not 0 <= value <= U64_MAX:
        raise OverflowError(f"can't narrow {what} to u64: {value}")
    return value


def _duration_micros(duration: timedelta) -> int:
    if duration < timedelta(0):
        raise ValueError(f"duration must not be negative: {duration}")
    return duration // _ONE_MICROSECOND


def _truncating_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero, for a positive denominator."""
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


@dataclass(frozen=True, order=True)
class TimestampMicros:
    """Wall-clock time in microseconds since the Unix epoch."""

    value: int

    def __post_init__(self) -> None:
        _require_u64(self.value, "TimestampMicros")

    def saturating_sub(self, duration: timedelta) -> TimestampMicros:
        micros = min(_duration_micros(duration), U64_MAX)
        return TimestampMicros(max(self.value - micros, 0))

    def saturating_duration_since(self, other: TimestampMicros) -> timedelta:
        return timedelta(microseconds=max(self.value - other.value, 0))


@dataclass(frozen=True, order=True)
class SampleDuration:
    """A non-negative duration counted in frames."""

    value: int
    ONE_PACKET: ClassVar[SampleDuration]

    def __post_init__(self) -> None:
        _require_u64(self.value, "SampleDuration")

    @classmethod
    def zero(cls) -> SampleDuration:
        return cls(0)

    @classmethod
    def from_frame_count(cls, frames: int) -> SampleDuration:
        return cls(frames)

    @classmethod
    def from_std_duration_lossy(cls, duration: timedelta) -> SampleDuration:
        frames = _duration_micros(duration) * SAMPLE_RATE // _MICROS_PER_SECOND
        return cls(_narrow_u64(frames, "duration"))

    def to_frame_count(self) -> int:
        return self.value

    def to_std_duration_lossy(self) -> timedelta:
        return timedelta(microseconds=self.to_micros_lossy())

    def to_micros_lossy(self) -> int:
        micros = self.value * _MICROS_PER_SECOND // SAMPLE_RATE
        return _narrow_u64(micros, "usecs")

    def add(self, other: SampleDuration) -> SampleDuration:
        return SampleDuration(_narrow_u64(self.value + other.value, "SampleDuration::add"))

    def sub(self, other: SampleDuration) -> SampleDuration:
        if other.value > self.value:
            raise OverflowError("SampleDuration.sub would underflow")
        return SampleDuration(self.value - other.value)


SampleDuration.ONE_PACKET = SampleDuration(FRAMES_PER_PACKET)


@dataclass(frozen=True)
class TimestampDelta:
    """A signed difference between two timestamps, in frames."""

    value: int

    def __post_init__(self) -> None:
        if not I64_MIN <= self.value <= I64_MAX:
            raise ValueError(f"TimestampDelta out of range for i64: {self.value}")

    @classmethod
    def zero(cls) -> TimestampDelta:
        return cls(0)

    def abs(self) -> SampleDuration:
        if self.value == I64_MIN:
            raise OverflowError("absolute value of TimestampDelta overflows")
        return SampleDuration(abs(self.value))

    def as_frames(self) -> int:
        return self.value

    def to_micros_lossy(self) -> int:
        product = self.value * _MICROS_PER_SECOND
        if not I64_MIN <= product <= I64_MAX:
            raise OverflowError("TimestampDelta too large to express in microseconds")
        return _truncating_div(product, SAMPLE_RATE)

    def to_seconds(self) -> float:
        return self.value / SAMPLE_RATE


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time counted in frames since the Unix epoch."""

    value: int

    def __post_init__(self) -> None:
        _require_u64(self.value, "Timestamp")

    @classmethod
    def from_micros_lossy(cls, micros: TimestampMicros) -> Timestamp:
        frames = micros.value * SAMPLE_RATE // _MICROS_PER_SECOND
        return cls(_narrow_u64(frames, "timestamp"))

    def to_micros_lossy(self) -> TimestampMicros:
        micros = self.value * _MICROS_PER_SECOND // SAMPLE_RATE
        return TimestampMicros(_narrow_u64(micros, "timestamp"))

    def add(self, duration: SampleDuration) -> Timestamp:
        return Timestamp(_narrow_u64(self.value + duration.value, "Timestamp::add"))

    def saturating_sub(self, duration: SampleDuration) -> Timestamp:
        return Timestamp(max(self.value - duration.value, 0))

    def saturating_duration_since(self, other: Timestamp) -> SampleDuration:
        return SampleDuration(max(self.value - other.value, 0))

    def duration_since(self, other: Timestamp) -> SampleDuration:
        if other.value > self.value:
            raise OverflowError("Timestamp.duration_since would underflow")
        return SampleDuration(self.value - other.value)

    def delta(self, other: Timestamp) -> TimestampDelta:
        if self.value > I64_MAX or other.value > I64_MAX:
            raise OverflowError("timestamp does not fit in i64 in Timestamp.delta")
        return TimestampDelta(self.value - other.value)

    def adjust(self, delta: TimestampDelta) -> Timestamp:
        return Timestamp(_narrow_u64(self.value + delta.value, "Timestamp::adjust"))


def now() -> TimestampMicros:
    """Current wall-clock time."""
    return TimestampMicros(_clock.time_ns() // 1000)