"""One-line terminal rendering of stats replies."""

from __future__ import annotations

from dataclasses import dataclass

from .net import PeerId
from .node import display
from .packet import StatsReply
from .types import ReceiverStats, StatsReplyFlags, StatsReplyPacket, StreamStatus

RESET = "\x1b[0m"
_BOLD = "\x1b[1m"
_DIM = "\x1b[2m"
_FG_BLUE = "\x1b[34m"
_FG_WHITE = "\x1b[37m"
_FG_BLACK_RGB = "\x1b[38;2;0;0;0m"
_BG_GREEN = "\x1b[102m"
_BG_YELLOW = "\x1b[103m"
_BG_RED = "\x1b[101m"


@dataclass
class Padding:
    node_width: int = 0
    peer_width: int = 0


def calculate(padding: Padding, stats: StatsReplyPacket, peer: PeerId) -> None:
    """Widen the padding to fit this node and peer."""
    padding.node_width = max(padding.node_width, len(display(stats.node)))
    padding.peer_width = max(padding.peer_width, len(str(peer)))


def indicator_style(status: StreamStatus | None) -> tuple[str, str]:
    """Escape sequence and four-letter label for a stream status."""
    match status:
        case StreamStatus.SEEK:
            return RESET + _DIM, "SEEK"
        case StreamStatus.SYNC:
            return RESET + _BOLD + _FG_BLACK_RGB + _BG_GREEN, "SYNC"
        case StreamStatus.SLEW:
            return RESET + _BOLD + _FG_BLACK_RGB + _BG_YELLOW, "SLEW"
        case StreamStatus.MISS:
            return RESET + _BOLD + _FG_BLACK_RGB + _BG_RED, "MISS"
    return RESET, "    "


def time_field(name: str, value: float | None) -> str:
    """A latency in seconds shown in milliseconds, blank when unknown."""
    if value is None:
        return f"  {name}:[        ms]"
    return f"  {name}:[{value * 1000.0:>8.3f} ms]"


def _node(padding: Padding, stats: StatsReplyPacket, peer: PeerId) -> str:
    return (
        RESET + _BOLD + _FG_BLUE
        + display(stats.node).ljust(padding.node_width) + "  "
        + RESET + _DIM
        + str(peer).ljust(padding.peer_width) + "  "
        + RESET
    )


def _receiver(stats: ReceiverStats) -> str:
    style, label = indicator_style(stats.stream())
    return (
        style + f"  {label}  " + RESET
        + time_field("Audio", stats.audio_latency())
        + time_field("Output", stats.output_latency())
        + time_field("Network", stats.network_latency())
    )


def line(padding: Padding, reply: StatsReply, peer: PeerId) -> str:
    """Render one stats reply as a coloured line (without newline)."""
    data = reply.data()
    out = _node(padding, data, peer)
    flags = reply.flags()
    if flags & StatsReplyFlags.IS_RECEIVER:
        out += _receiver(data.receiver)
    elif flags & StatsReplyFlags.IS_STREAM:
        out += RESET + _BOLD + _FG_WHITE + "stream source" + RESET
    return out