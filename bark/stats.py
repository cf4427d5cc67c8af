"""The stats command: polls every node and shows a live table of replies."""

from __future__ import annotations

import sys
import threading
import time
from contextlib import suppress
from dataclasses import dataclass

from .net import PeerId, ProtocolSocket, Socket
from .packet import StatsReply, StatsRequest
from .render import Padding, calculate, line
from .types import StatsReplyFlags

RETENTION = 1.0
POLL_INTERVAL = 0.1

KILL_LINE = "\x1b[2K\r"
NEW_LINE = "\n"


def _move_cursor_up(lines: int) -> str:
    return f"\x1b[{lines}F" if lines > 0 else ""


@dataclass
class Entry:
    """A stats reply and the monotonic time it arrived."""

    time: float
    reply: StatsReply

    def is_receiver(self) -> bool:
        return bool(self.reply.flags() & StatsReplyFlags.IS_RECEIVER)

    def valid_at(self, now: float) -> bool:
        return max(now - self.time, 0.0) < RETENTION


class StatsTable:
    """Latest reply per peer, rendered as a table redrawn in place."""

    def __init__(self) -> None:
        self._entries: dict[PeerId, Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def peers(self) -> list[PeerId]:
        return sorted(self._entries)

    def update(self, peer: PeerId, reply: StatsReply, now: float | None = None) -> str:
        """Record a reply, drop stale entries and return the terminal output."""
        at = time.monotonic() if now is None else now
        prev_entries = len(self._entries)

        self._entries[peer] = Entry(at, reply)
        self._entries = {p: e for p, e in self._entries.items() if e.valid_at(at)}
        current_entries = len(self._entries)

        out = [_move_cursor_up(prev_entries)]

        # stream sources first, then receivers
        rows = sorted(self._entries.items(), key=lambda item: (item[1].is_receiver(), item[0]))

        padding = Padding()
        for row_peer, entry in rows:
            calculate(padding, entry.reply.data(), row_peer)

        for row_peer, entry in rows:
            out.append(KILL_LINE + line(padding, entry.reply, row_peer) + NEW_LINE)

        if current_entries < prev_entries:
            remove_lines = prev_entries - current_entries
            out.append((KILL_LINE + NEW_LINE) * remove_lines)
            out.append(_move_cursor_up(remove_lines))

        return "".join(out)


def run(multicast: tuple[str, int]) -> None:
    """Poll for stats and redraw the table until receiving fails."""
    with Socket.open(multicast) as socket:
        protocol = ProtocolSocket(socket)
        stop = threading.Event()

        def poll() -> None:
            request = StatsRequest.new()
            while not stop.is_set():
                with suppress(OSError):
                    protocol.broadcast(request.packet)
                stop.wait(POLL_INTERVAL)

        threading.Thread(target=poll, name="bark/stats-poll", daemon=True).start()

        table = StatsTable()
        try:
            while True:
                packet, peer = protocol.recv_from()
                reply = packet.parse()
                if not isinstance(reply, StatsReply):
                    continue
                sys.stdout.write(table.update(peer, reply))
                sys.stdout.flush()
        finally:
            stop.set()