"""Reordering queue of received audio packets, indexed by sequence number."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from .audio import MAX_QUEUED_DECODE_SEGMENTS
from .packet import Audio
from .time import SampleDuration, Timestamp
from .types import AudioPacketHeader

log = logging.getLogger(__name__)

_U16_MAX = 0xFFFF


@dataclass
class AudioPts:
    """An audio packet with its presentation time in local frames."""

    pts: Timestamp
    audio: Audio

    def header(self) -> AudioPacketHeader:
        return self.audio.header


@dataclass
class DelayStart:
    """Counts down packets to hold back before a queue starts yielding.

    remaining is zero once the queue is live.
    """

    remaining: int = 0

    @classmethod
    def from_header(cls, header: AudioPacketHeader) -> DelayStart:
        pts = Timestamp.from_micros_lossy(header.pts)
        dts = Timestamp.from_micros_lossy(header.dts)
        delay = pts.saturating_duration_since(dts)
        packets = delay.to_frame_count() // SampleDuration.ONE_PACKET.to_frame_count() + 1
        return cls(packets if packets <= _U16_MAX else 0)

    @property
    def live(self) -> bool:
        return self.remaining == 0

    def yield_packet(self) -> bool:
        """Advance the countdown; True once packets may be yielded."""
        if self.remaining:
            self.remaining -= 1
        return self.live


class PacketQueue:
    """Bounded queue of packet slots, starting at head_seq."""

    CAPACITY = MAX_QUEUED_DECODE_SEGMENTS

    def __init__(self, initial: AudioPacketHeader) -> None:
        self._queue: deque[AudioPts | None] = deque()
        self.head_seq = initial.seq
        self._start = DelayStart.from_header(initial)

    def __len__(self) -> int:
        return len(self._queue)

    def pop_front(self) -> AudioPts | None:
        """Next packet in order, or None when held back, missing or empty."""
        if not self._start.yield_packet():
            return None
        if not self._queue:
            return None
        self.head_seq += 1
        return self._queue.popleft()

    def insert_packet(self, packet: AudioPts) -> None:
        packet_seq = packet.header().seq
        index = packet_seq - self.head_seq

        if index < 0:
            log.warning(
                "received packet in past, dropping: head_seq=%d, packet_seq=%d",
                self.head_seq,
                packet_seq,
            )
            return

        if index >= self.CAPACITY:
            log.warning(
                "received packet too far in future, resetting queue: tail_seq=%d, packet_seq=%d",
                self.head_seq + self.CAPACITY,
                packet_seq,
            )
            self.head_seq = packet_seq
            self._start = DelayStart.from_header(packet.header())
            self._queue.clear()
            self._queue.append(packet)
            return

        while len(self._queue) <= index:
            self._queue.append(None)

        if self._queue[index] is not None:
            log.warning(
                "received duplicate packet, retaining first received: packet_seq=%d",
                packet_seq,
            )
            return

        self._queue[index] = packet