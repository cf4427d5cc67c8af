"""Command line entry point: stream, receive or stats."""

from __future__ import annotations

import argparse
import logging
import os

from . import config
from . import receiver as receiver_cmd
from . import source as source_cmd
from . import stats as stats_cmd
from .channel import Disconnected
from .config import Codec, ConfigError, Format
from .devices import OpenError
from .metrics import DEFAULT_LISTEN, StartError, parse_listen
from .net import parse_multicast

log = logging.getLogger(__name__)

_DEFAULT_VERSION = "0.1.0"
_FATAL = (OSError, OpenError, StartError, Disconnected, EOFError)


def _version() -> str:
    return os.environ.get("BARK_PKG_VERSION") or _DEFAULT_VERSION


def _listen(text: str) -> str:
    try:
        parse_listen(text)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err)) from None
    return text


def _multicast(text: str) -> tuple[str, int]:
    try:
        return parse_multicast(text)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err)) from None


def _ranged(low: int, high: int):
    def convert(text: str) -> int:
        try:
            value = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
        if not low <= value <= high:
            raise argparse.ArgumentTypeError(f"{value} not in [{low}, {high}]")
        return value

    return convert


_i8 = _ranged(-128, 127)
_u64 = _ranged(0, 2**64 - 1)


def _enum(cls):
    def convert(text: str):
        try:
            return cls(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid choice: {text!r}") from None

    return convert


def _option(parser, flag: str, env: str, *, type, default=None, help=None) -> None:
    parser.add_argument(flag, type=type, default=os.environ.get(env, default), help=help)


def _add_socket(parser: argparse.ArgumentParser) -> None:
    env = os.environ.get("BARK_MULTICAST")
    parser.add_argument(
        "--multicast",
        metavar="ADDR",
        type=_multicast,
        default=env,
        required=env is None,
        help="Multicast group address including port, eg. 224.100.100.100:1530",
    )


def _run_stream(args: argparse.Namespace) -> None:
    opt = source_cmd.StreamOpt(
        multicast=args.multicast,
        input_device=args.input_device,
        input_period=args.input_period,
        input_buffer=args.input_buffer,
        input_format=args.input_format,
        delay_ms=args.delay_ms,
        format=args.format,
        priority=args.priority,
    )
    source_cmd.run(opt, args.metrics_listen)


def _run_receive(args: argparse.Namespace) -> None:
    opt = receiver_cmd.ReceiveOpt(
        multicast=args.multicast,
        output_device=args.output_device,
        output_period=args.output_period,
        output_buffer=args.output_buffer,
        output_format=args.output_format,
    )
    receiver_cmd.run(opt, args.metrics_listen)


def _run_stats(args: argparse.Namespace) -> None:
    stats_cmd.run(args.multicast)


def build_parser() -> argparse.ArgumentParser:
    """The argument parser; defaults come from BARK_* environment variables."""
    parser = argparse.ArgumentParser(prog="bark")
    parser.add_argument("--version", action="version", version=_version())
    _option(
        parser, "--metrics-listen", "BARK_METRICS_LISTEN",
        type=_listen, default=DEFAULT_LISTEN, help="Address of the metrics HTTP server",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    stream = commands.add_parser("stream", help="Capture audio and stream it")
    _add_socket(stream)
    _option(stream, "--input-device", "BARK_SOURCE_INPUT_DEVICE", type=str,
            help="Audio device name")
    _option(stream, "--input-period", "BARK_SOURCE_INPUT_PERIOD", type=_u64,
            help="Size of discrete audio transfer buffer in frames")
    _option(stream, "--input-buffer", "BARK_SOURCE_INPUT_BUFFER", type=_u64,
            help="Size of decoded audio buffer in frames")
    _option(stream, "--input-format", "BARK_SOURCE_INPUT_FORMAT", type=_enum(Format),
            default="f32")
    _option(stream, "--delay-ms", "BARK_SOURCE_DELAY_MS", type=_u64, default="20")
    _option(stream, "--format", "BARK_SOURCE_CODEC", type=_enum(Codec), default="f32le")
    _option(stream, "--priority", "BARK_SOURCE_PRIORITY", type=_i8, default="0")
    stream.set_defaults(handler=_run_stream)

    receive = commands.add_parser("receive", help="Receive a stream and play it")
    _add_socket(receive)
    _option(receive, "--output-device", "BARK_RECEIVE_OUTPUT_DEVICE", type=str,
            help="Audio device name")
    _option(receive, "--output-period", "BARK_RECEIVE_OUTPUT_PERIOD", type=_u64,
            help="Size of discrete audio transfer buffer in frames")
    _option(receive, "--output-buffer", "BARK_RECEIVE_OUTPUT_BUFFER", type=_u64,
            help="Size of decoded audio buffer in frames")
    _option(receive, "--output-format", "BARK_RECEIVE_OUTPUT_FORMAT", type=_enum(Format),
            default="f32")
    receive.set_defaults(handler=_run_receive)

    stats = commands.add_parser("stats", help="Show live stats of every node")
    _add_socket(stats)
    stats.set_defaults(handler=_run_stats)

    return parser


def _init_log() -> None:
    level = os.environ.get("BARK_LOG", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def main(argv=None) -> int:
    """Run a bark command; returns the process exit status."""
    _init_log()

    try:
        loaded = config.read()
    except ConfigError:
        return 1
    if loaded is not None:
        config.load_into_env(loaded)

    args = build_parser().parse_args(argv)

    try:
        args.handler(args)
    except _FATAL as err:
        log.error("fatal: %s", err)
        return 1
    return 0