"""Decode thread for one received stream: queue, pipeline, output."""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass, field

from .audio import SampleFormat, frame_count
from .channel import QueueReceiver, channel
from .metrics import ReceiverMetrics
from .output import OutputRef
from .pipeline import Pipeline
from .queue import AudioPts, PacketQueue
from .rate import Timing
from .threads import set_name, set_realtime_priority
from .time import SampleDuration, Timestamp, TimestampDelta, now
from .types import AudioPacketHeader, StreamStatus

log = logging.getLogger(__name__)


@dataclass
class DecodeStats:
    status: StreamStatus = StreamStatus.SEEK
    audio_latency: TimestampDelta = field(default_factory=TimestampDelta.zero)
    output_latency: SampleDuration = field(default_factory=SampleDuration.zero)


class _StatsCell:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats = DecodeStats()

    def get(self) -> DecodeStats:
        with self._lock:
            return dataclasses.replace(self._stats)

    def set(self, stats: DecodeStats) -> None:
        with self._lock:
            self._stats = dataclasses.replace(stats)


class DecodeStream:
    """Feeds packets to a thread that decodes and plays them."""

    def __init__(
        self,
        header: AudioPacketHeader,
        output: OutputRef,
        metrics: ReceiverMetrics,
        fmt: SampleFormat = SampleFormat.F32,
    ) -> None:
        self._tx, rx = channel(PacketQueue(header))
        self._stats = _StatsCell()
        pipeline = Pipeline(header, fmt)

        def run() -> None:
            set_name("bark/audio")
            set_realtime_priority()
            _run_stream(rx, pipeline, output, metrics, self._stats)

        threading.Thread(target=run, name="bark/audio", daemon=True).start()

    def send(self, audio: AudioPts) -> None:
        self._tx.send(audio)

    def stats(self) -> DecodeStats:
        return self._stats.get()

    def close(self) -> None:
        """Disconnect the decode thread, which then exits."""
        self._tx.close()


def _run_stream(
    rx: QueueReceiver,
    pipeline: Pipeline,
    output: OutputRef,
    metrics: ReceiverMetrics,
    stats_cell: _StatsCell,
) -> None:
    from .channel import Disconnected

    stats = DecodeStats()
    try:
        while True:
            try:
                item, queue_len = rx.recv()
            except Disconnected:
                return

            metrics.queued_packets.observe(queue_len)

            if item is None:
                if queue_len == 0:
                    # queue empty: we are running ahead of the stream
                    metrics.packets_missed.increment()
                else:
                    metrics.packets_lost.increment()

            packet = item.audio if item is not None else None
            stream_pts = item.pts if item is not None else None

            samples = pipeline.process(packet)
            frames = frame_count(samples)
            metrics.frames_decoded.add(frames)

            with output.lock() as device:
                if device is None:
                    # the output has been stolen by a newer stream
                    return

                try:
                    delay = device.delay()
                except OSError as err:
                    log.error("error reading output delay: %s", err)
                    return
                stats.output_latency = delay
                metrics.buffer_delay.observe(delay)

                pts = Timestamp.from_micros_lossy(now()).add(delay)

                if stream_pts is not None:
                    timing = Timing(real=pts, play=stream_pts)
                    pipeline.set_timing(timing)
                    stats.status = StreamStatus.SLEW if pipeline.slew() else StreamStatus.SYNC
                    offset = timing.real.delta(timing.play)
                    stats.audio_latency = offset
                    metrics.audio_offset.observe(offset)
                elif queue_len == 0:
                    metrics.audio_offset.observe(None)

                stats_cell.set(stats)
                metrics.frames_played.add(frames)

                try:
                    device.write(samples)
                except OSError as err:
                    log.error("error playing audio: %s", err)
                    return
    finally:
        rx.close()