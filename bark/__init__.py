"""Synchronised multicast audio streaming: wire format, codecs, receive pipeline and commands."""

__version__ = "0.1.0"