"""Identity of this node: user and host name."""

from __future__ import annotations

import os
import socket

from .types import NodeStats

_FIELD_LENGTH = 32


def as_fixed(text: str) -> bytes:
    """Encode text as a NUL padded fixed-width field."""
    data = text.encode("utf-8")
    if len(data) > _FIELD_LENGTH:
        raise ValueError(f"{text!r} longer than {_FIELD_LENGTH} bytes")
    return data.ljust(_FIELD_LENGTH, b"\0")


def from_fixed(data: bytes) -> str:
    """Text up to the first NUL; empty if it is not valid UTF-8."""
    end = data.find(b"\0")
    if end >= 0:
        data = data[:end]
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return ""


def _username() -> str:
    uid = os.getuid()
    try:
        import pwd

        return pwd.getpwuid(uid).pw_name
    except (ImportError, KeyError):
        return str(uid)


def get() -> NodeStats:
    return NodeStats(username=as_fixed(_username()), hostname=as_fixed(socket.gethostname()))


def display(stats: NodeStats) -> str:
    return f"{from_fixed(stats.username)}@{from_fixed(stats.hostname)}"