"""Configuration file loading (bark.toml) and export into the environment."""

from __future__ import annotations

import ipaddress
import logging
import os
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, MutableMapping

log = logging.getLogger(__name__)

CONFIG_NAME = "bark.toml"


class ConfigError(Exception):
    """The configuration file could not be parsed or holds invalid values."""


class Codec(Enum):
    S16LE = "s16le"
    F32LE = "f32le"

    def __str__(self) -> str:
        return self.value


class Format(Enum):
    S16 = "s16"
    F32 = "f32"

    def __str__(self) -> str:
        return self.value


def _socket_addr(value: Any, name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{name}: expected socket address string")
    host, sep, port_text = value.rpartition(":")
    if not sep or not port_text.isdigit():
        raise ConfigError(f"{name}: invalid socket address: {value!r}")
    port = int(port_text)
    if port > 0xFFFF:
        raise ConfigError(f"{name}: invalid port: {value!r}")
    bracketed = host.startswith("[") and host.endswith("]")
    try:
        ip = ipaddress.ip_address(host[1:-1] if bracketed else host)
    except ValueError:
        raise ConfigError(f"{name}: invalid socket address: {value!r}") from None
    if isinstance(ip, ipaddress.IPv6Address):
        if not bracketed:
            raise ConfigError(f"{name}: invalid socket address: {value!r}")
        return f"[{ip}]:{port}"
    if bracketed:
        raise ConfigError(f"{name}: invalid socket address: {value!r}")
    return f"{ip}:{port}"


def _int(value: Any, name: str, low: int, high: int) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ConfigError(f"{name}: expected integer in [{low}, {high}], got {value!r}")
    return value


def _enum(cls: type[Enum], value: Any, name: str):
    if value is None:
        return None
    try:
        return cls(value)
    except ValueError:
        raise ConfigError(f"{name}: unknown variant {value!r}") from None


def _table(data: dict, key: str) -> dict:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"{key}: expected a table")
    return value


_U64 = 2**64 - 1


@dataclass
class Device:
    device: str | None = None
    period: int | None = None
    buffer: int | None = None
    format: Format | None = None

    @classmethod
    def from_table(cls, data: dict, prefix: str) -> Device:
        device = data.get("device")
        if device is not None and not isinstance(device, str):
            raise ConfigError(f"{prefix}.device: expected a string")
        return cls(
            device=device,
            period=_int(data.get("period"), f"{prefix}.period", 0, _U64),
            buffer=_int(data.get("buffer"), f"{prefix}.buffer", 0, _U64),
            format=_enum(Format, data.get("format"), f"{prefix}.format"),
        )


@dataclass
class Source:
    input: Device = field(default_factory=Device)
    delay_ms: int | None = None
    codec: Codec | None = None
    priority: int | None = None


@dataclass
class Receive:
    output: Device = field(default_factory=Device)


@dataclass
class Metrics:
    listen: str | None = None


@dataclass
class Config:
    multicast: str | None = None
    source: Source = field(default_factory=Source)
    receive: Receive = field(default_factory=Receive)
    metrics: Metrics = field(default_factory=Metrics)


def parse_config(text: str) -> Config:
    """Parse TOML configuration text."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as err:
        raise ConfigError(str(err)) from err

    source = _table(data, "source")
    receive = _table(data, "receive")
    metrics = _table(data, "metrics")

    return Config(
        multicast=_socket_addr(data.get("multicast"), "multicast"),
        source=Source(
            input=Device.from_table(_table(source, "input"), "source.input"),
            delay_ms=_int(source.get("delay_ms"), "source.delay_ms", 0, _U64),
            codec=_enum(Codec, source.get("codec"), "source.codec"),
            priority=_int(source.get("priority"), "source.priority", -128, 127),
        ),
        receive=Receive(output=Device.from_table(_table(receive, "output"), "receive.output")),
        metrics=Metrics(listen=_socket_addr(metrics.get("listen"), "metrics.listen")),
    )


def load_into_env(config: Config, environ: MutableMapping[str, str] | None = None) -> None:
    """Export every set option as a BARK_* environment variable."""
    env = os.environ if environ is None else environ
    pairs = [
        ("BARK_MULTICAST", config.multicast),
        ("BARK_SOURCE_DELAY_MS", config.source.delay_ms),
        ("BARK_SOURCE_INPUT_DEVICE", config.source.input.device),
        ("BARK_SOURCE_INPUT_PERIOD", config.source.input.period),
        ("BARK_SOURCE_INPUT_BUFFER", config.source.input.buffer),
        ("BARK_SOURCE_INPUT_FORMAT", config.source.input.format),
        ("BARK_SOURCE_CODEC", config.source.codec),
        ("BARK_SOURCE_PRIORITY", config.source.priority),
        ("BARK_RECEIVE_OUTPUT_DEVICE", config.receive.output.device),
        ("BARK_RECEIVE_OUTPUT_PERIOD", config.receive.output.period),
        ("BARK_RECEIVE_OUTPUT_BUFFER", config.receive.output.buffer),
        ("BARK_RECEIVE_OUTPUT_FORMAT", config.receive.output.format),
        ("BARK_METRICS_LISTEN", config.metrics.listen),
    ]
    for name, value in pairs:
        if value is not None:
            env[name] = str(value)


def load_file(path: str | os.PathLike) -> Config | None:
    """Load a config file; None if it cannot be read, ConfigError if invalid."""
    path = Path(path)
    log.debug("looking for config in %s", path)
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    try:
        config = parse_config(contents)
    except ConfigError as err:
        log.error("error reading config: %s", err)
        raise
    log.info("reading config from %s", path)
    return config


def _xdg_config_dirs() -> list[Path]:
    home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    dirs = os.environ.get("XDG_CONFIG_DIRS") or "/etc/xdg"
    return [Path(home)] + [Path(d) for d in dirs.split(":") if d]


def read() -> Config | None:
    """Read bark.toml from the current directory, else the XDG config dirs."""
    config = load_file(CONFIG_NAME)
    if config is not None:
        return config
    for directory in _xdg_config_dirs():
        candidate = directory / CONFIG_NAME
        if candidate.is_file():
            return load_file(candidate)
    return None