"""Shared packet queue between the network thread and a decode thread."""

from __future__ import annotations

import threading

from .queue import AudioPts, PacketQueue


class Disconnected(Exception):
    """The other end of the queue has gone away."""

    def __init__(self) -> None:
        super().__init__("audio receiver thread unexpectedly disconnected")


class _Shared:
    __slots__ = ("lock", "queue")

    def __init__(self, queue: PacketQueue) -> None:
        self.lock = threading.Lock()
        self.queue: PacketQueue | None = queue

    def disconnect(self) -> None:
        with self.lock:
            self.queue = None


class QueueSender:
    """Inserts packets into the shared queue."""

    def __init__(self, shared: _Shared) -> None:
        self._shared = shared

    def send(self, packet: AudioPts) -> None:
        with self._shared.lock:
            queue = self._shared.queue
            if queue is None:
                raise Disconnected()
            queue.insert_packet(packet)

    def close(self) -> None:
        """Disconnect both ends."""
        self._shared.disconnect()

    def __enter__(self) -> QueueSender:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class QueueReceiver:
    """Takes packets from the shared queue in sequence order."""

    def __init__(self, shared: _Shared) -> None:
        self._shared = shared

    def recv(self) -> tuple[AudioPts | None, int]:
        """Next packet (or None) and the queue length before popping."""
        with self._shared.lock:
            queue = self._shared.queue
            if queue is None:
                raise Disconnected()
            length = len(queue)
            return queue.pop_front(), length

    def close(self) -> None:
        """Disconnect both ends."""
        self._shared.disconnect()

    def __enter__(self) -> QueueReceiver:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def channel(queue: PacketQueue) -> tuple[QueueSender, QueueReceiver]:
    """Wrap a queue in a connected sender and receiver."""
    shared = _Shared(queue)
    return QueueSender(shared), QueueReceiver(shared)