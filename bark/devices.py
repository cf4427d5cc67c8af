"""Raw PCM audio devices paced by a real-time sample clock.

A device is a file path (or standard input/output for "default") carrying
interleaved little-endian PCM. Input and output are clocked at the protocol
sample rate so that reads and writes proceed in real time, as a sound card's
would, and the output reports how much audio is still buffered.
"""

from __future__ import annotations

import logging
import struct
import sys
import time
from dataclasses import dataclass
from typing import BinaryIO, Callable

from .audio import SampleFormat, frame_count
from .time import (
    CHANNELS,
    SAMPLE_RATE,
    U64_MAX,
    SampleDuration,
    Timestamp,
    now,
)

log = logging.getLogger(__name__)

DEFAULT_PERIOD = SampleDuration.from_frame_count(120)
DEFAULT_BUFFER = SampleDuration.from_frame_count(360)
DEFAULT_DEVICE = "default"

_CODES = {SampleFormat.S16: "h", SampleFormat.F32: "f"}


@dataclass(frozen=True)
class DeviceOpt:
    device: str | None = None
    period: SampleDuration = DEFAULT_PERIOD
    buffer: SampleDuration = DEFAULT_BUFFER


class OpenError(Exception):
    """An audio device could not be opened with the requested settings."""


def _check_sizes(opt: DeviceOpt) -> None:
    buffer = opt.buffer.to_frame_count()
    period = opt.period.to_frame_count()
    if buffer < 1:
        raise OpenError(f"invalid buffer size (min = 1, max = {U64_MAX})")
    if not 1 <= period <= buffer:
        raise OpenError(f"invalid period size (min = 1, max = {buffer})")


class _Device:
    def __init__(
        self,
        opt: DeviceOpt,
        fmt: SampleFormat,
        stream: BinaryIO | None,
        mode: str,
        clock: Callable[[], float],
        sleep: Callable[[float], None],
    ) -> None:
        _check_sizes(opt)
        self.format = fmt
        self.period = opt.period
        self._capacity = opt.buffer.to_frame_count()
        self._code = _CODES[fmt]
        self._width = struct.calcsize(f"<{self._code}")
        self._clock = clock
        self._sleep = sleep
        self._start: float | None = None
        self._frames = 0
        self._owned = False

        if stream is not None:
            self._stream = stream
        elif opt.device is None or opt.device == DEFAULT_DEVICE:
            self._stream = sys.stdout.buffer if "w" in mode else sys.stdin.buffer
        else:
            try:
                self._stream = open(opt.device, mode)
            except OSError as err:
                raise OpenError(f"opening audio device {opt.device}: {err}") from err
            self._owned = True

    def _elapsed(self, at: float) -> int:
        return round((at - self._start) * SAMPLE_RATE)

    def _close_stream(self) -> None:
        if self._owned:
            self._stream.close()
            self._owned = False

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class Input(_Device):
    """Captures interleaved samples in real time."""

    def __init__(
        self,
        opt: DeviceOpt,
        fmt: SampleFormat = SampleFormat.F32,
        *,
        stream: BinaryIO | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(opt, fmt, stream, "rb", clock, sleep)

    def _read_exact(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining:
            chunk = self._stream.read(remaining)
            if not chunk:
                raise EOFError("end of audio input")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def read(self, frames: int) -> tuple[list, Timestamp]:
        """Read frames of audio and the time at which they were captured."""
        if frames < 0:
            raise ValueError(f"frame count must not be negative: {frames}")

        at = self._clock()
        if self._start is None:
            self._start, self._frames = at, 0

        available = self._elapsed(at) - self._frames
        if available > self._capacity:
            log.warning("capture overrun, resetting clock: %d frames behind", available)
            self._start, self._frames = at, 0
            available = 0
        if available < frames:
            self._sleep((frames - available) / SAMPLE_RATE)

        count = frames * CHANNELS
        data = self._read_exact(count * self._width)
        samples = list(struct.unpack(f"<{count}{self._code}", data))
        self._frames += frames

        # the period is assumed to start when its first frame enters the
        # buffer: now, plus the period, less everything still buffered
        delay = max(self._elapsed(self._clock()) - self._frames, 0)
        timestamp = (
            Timestamp.from_micros_lossy(now())
            .add(self.period)
            .saturating_sub(SampleDuration.from_frame_count(delay + frames))
        )
        return samples, timestamp

    def close(self) -> None:
        """Close the device file if it was opened here."""
        self._close_stream()


class Output(_Device):
    """Plays interleaved samples in real time, blocking when the buffer is full."""

    def __init__(
        self,
        opt: DeviceOpt,
        metrics=None,
        fmt: SampleFormat = SampleFormat.F32,
        *,
        stream: BinaryIO | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(opt, fmt, stream, "wb", clock, sleep)
        self.metrics = metrics

    def _queued(self) -> int:
        if self._start is None:
            return 0
        at = self._clock()
        queued = self._frames - self._elapsed(at)
        if queued < 0:
            if self.metrics is not None:
                self.metrics.buffer_underruns.increment()
            self._start, self._frames = at, 0
            return 0
        return queued

    def write(self, samples: list) -> None:
        frames = frame_count(samples)
        if not frames:
            return
        queued = self._queued()
        if self._start is None:
            self._start, self._frames = self._clock(), 0
        if queued + frames > self._capacity:
            self._sleep((queued + frames - self._capacity) / SAMPLE_RATE)

        data = struct.pack(f"<{len(samples)}{self._code}", *samples)
        self._stream.write(data)
        self._stream.flush()
        self._frames += frames

    def delay(self) -> SampleDuration:
        """Audio written but not yet played."""
        return SampleDuration.from_frame_count(self._queued())

    def close(self) -> None:
        """Close the device file if it was opened here."""
        self._close_stream()