"""Variable-rate stereo resampler using linear interpolation."""

from __future__ import annotations

from dataclasses import dataclass, field

from .audio import I16_MAX, I16_MIN, SampleFormat, frame_count
from .time import CHANNELS, SAMPLE_RATE


@dataclass
class ProcessResult:
    input_read: int
    output_written: int
    samples: list = field(default_factory=list)


class Resampler:
    """Converts audio from a variable input rate to the protocol sample rate.

    All input is always accepted; frames that cannot be produced within the
    output capacity are kept for the next call.
    """

    def __init__(self, fmt: SampleFormat = SampleFormat.F32) -> None:
        self._fmt = fmt
        self._step = 1.0
        self._pending: list[tuple[float, ...]] = []
        self._pos = 0.0

    def set_input_rate(self, rate: int) -> None:
        if rate <= 0:
            raise ValueError(f"input rate must be positive: {rate}")
        self._step = rate / SAMPLE_RATE

    def _emit(self, frame: tuple[float, ...]) -> list:
        if self._fmt is SampleFormat.S16:
            return [min(max(round(x), I16_MIN), I16_MAX) for x in frame]
        return [float(x) for x in frame]

    def _next_frame(self) -> tuple[float, ...] | None:
        index = int(self._pos)
        frac = self._pos - index
        if frac == 0.0:
            return self._pending[index] if index < len(self._pending) else None
        if index + 1 >= len(self._pending):
            return None
        left, right = self._pending[index], self._pending[index + 1]
        return tuple(a + (b - a) * frac for a, b in zip(left, right))

    def process(self, samples: list, capacity: int) -> ProcessResult:
        """Resample interleaved samples, producing at most capacity frames."""
        input_frames = frame_count(samples)
        self._pending.extend(zip(*[iter(samples)] * CHANNELS))

        output: list = []
        written = 0
        while written < capacity:
            frame = self._next_frame()
            if frame is None:
                break
            output.extend(self._emit(frame))
            written += 1
            self._pos += self._step

        consumed = min(int(self._pos), len(self._pending))
        del self._pending[:consumed]
        self._pos -= consumed

        return ProcessResult(input_frames, written, output)