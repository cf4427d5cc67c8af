"""Counters, gauges and the HTTP endpoint that exposes them."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Iterable

from .time import I64_MAX, I64_MIN, SampleDuration, TimestampDelta

log = logging.getLogger(__name__)

DEFAULT_LISTEN = "0.0.0.0:1530"

_U64_MOD = 2**64
GAUGE_NO_VALUE = I64_MIN


class Counter:
    """A monotonically increasing count."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._value = 0
        self._lock = threading.Lock()

    def get(self) -> int:
        return self._value

    def add(self, n: int) -> None:
        with self._lock:
            self._value = (self._value + n) % _U64_MOD

    def increment(self) -> None:
        self.add(1)

    def __str__(self) -> str:
        return f"# TYPE {self.name} counter\n{self.name} {self.get()}\n\n"


def _to_i64(value: Any) -> int:
    if value is None:
        return GAUGE_NO_VALUE
    if isinstance(value, TimestampDelta):
        return value.to_micros_lossy()
    if isinstance(value, SampleDuration):
        value = value.to_micros_lossy()
    elif isinstance(value, timedelta):
        value = value // timedelta(microseconds=1)
    value = int(value)
    return value if I64_MIN <= value <= I64_MAX else GAUGE_NO_VALUE


class Gauge:
    """A last-observed value; unset until observed with something other than None."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._value = GAUGE_NO_VALUE

    def get(self) -> int | None:
        value = self._value
        return None if value == GAUGE_NO_VALUE else value

    def observe(self, value: Any) -> None:
        self._value = _to_i64(value)

    def __str__(self) -> str:
        value = self.get()
        if value is None:
            return ""
        return f"# TYPE {self.name} gauge\n{self.name} {value}\n\n"


def _gauge(name: str):
    return field(default_factory=lambda: Gauge(name))


def _counter(name: str):
    return field(default_factory=lambda: Counter(name))


@dataclass(eq=False)
class ReceiverMetrics:
    audio_offset: Gauge = _gauge("bark_receiver_audio_offset_usec")
    buffer_delay: Gauge = _gauge("bark_receiver_buffer_delay_usec")
    buffer_underruns: Counter = _counter("bark_receiver_buffer_underruns")
    network_latency: Gauge = _gauge("bark_receiver_network_latency_usec")
    queued_packets: Gauge = _gauge("bark_receiver_queued_packet_count")
    packets_received: Counter = _counter("bark_receiver_packets_received")
    packets_lost: Counter = _counter("bark_receiver_packets_lost")
    packets_missed: Counter = _counter("bark_receiver_packets_missed")
    frames_decoded: Counter = _counter("bark_receiver_frames_decoded")
    frames_played: Counter = _counter("bark_receiver_frames_played")
    server: ThreadingHTTPServer | None = field(default=None, repr=False)

    def _exported(self) -> tuple:
        return (
            self.audio_offset,
            self.buffer_delay,
            self.buffer_underruns,
            self.network_latency,
            self.queued_packets,
            self.packets_received,
            self.packets_lost,
            self.packets_missed,
            self.frames_decoded,
            self.frames_played,
        )


@dataclass(eq=False)
class SourceMetrics:
    server: ThreadingHTTPServer | None = field(default=None, repr=False)

    def _exported(self) -> tuple:
        # a source exports no metrics of its own yet
        return ()


class StartError(Exception):
    """The metrics server could not be started."""

    def __init__(self, err: OSError) -> None:
        super().__init__(f"starting metrics server: {err}")
        self.error = err


def parse_listen(text: str) -> tuple[str, int]:
    """Parse a 'host:port' listen address; IPv6 hosts go in brackets."""
    host, sep, port_text = text.rpartition(":")
    if not sep or not host or not port_text.isdigit() or int(port_text) > 0xFFFF:
        raise ValueError(f"invalid listen address: {text!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port_text)


def _render(items: Iterable) -> str:
    return "".join(str(item) for item in items)


def render_receiver_metrics(metrics: ReceiverMetrics) -> str:
    return _render(metrics._exported())


def render_source_metrics(metrics: SourceMetrics) -> str:
    return _render(metrics._exported())


def _serve(listen: str, render: Callable[[], str]) -> ThreadingHTTPServer:
    host, port = parse_listen(listen)

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            if self.path != "/metrics":
                self.send_error(404)
                return
            body = render().encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: Any) -> None:
            log.debug("metrics request from %s: %s", self.address_string(), format % args)

    try:
        server = ThreadingHTTPServer((host, port), Handler)
    except OSError as err:
        raise StartError(err) from err
    server.daemon_threads = True
    threading.Thread(target=server.serve_forever, name="bark/metrics", daemon=True).start()
    return server


def start_receiver(listen: str = DEFAULT_LISTEN) -> ReceiverMetrics:
    metrics = ReceiverMetrics()
    metrics.server = _serve(listen, lambda: render_receiver_metrics(metrics))
    return metrics


def start_source(listen: str = DEFAULT_LISTEN) -> SourceMetrics:
    metrics = SourceMetrics()
    metrics.server = _serve(listen, lambda: render_source_metrics(metrics))
    return metrics