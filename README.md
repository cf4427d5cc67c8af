# bark

Synchronised audio streaming over a local network using UDP multicast.

A **stream** source reads audio, encodes it into small packets (48 frames
of stereo audio at 48 kHz) and multicasts them to a group. Any number of
**receivers** join the group, buffer the packets in a reordering queue, and
play them at the presentation time stamped by the source, adjusting their
playback rate (by up to 1%) to stay in sync. A **stats** view shows every
node on the group and how well each receiver is keeping up.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Audio input and output

Audio devices are raw PCM streams: interleaved, little-endian, two
channels at 48 kHz, as signed 16-bit (`s16`) or 32-bit float (`f32`)
samples. A device is a file path; the device `default` (also used when no
device is given) is standard input for `bark stream` and standard output
for `bark receive`. Reads and writes are paced by a clock at the sample
rate, so a device behaves as a sound card would, and the output keeps
track of how much audio is still buffered.

Log messages go to standard error, so standard output carries only audio
when receiving.

## Usage

Every command needs a multicast group address including port, given with
`--multicast` or the `BARK_MULTICAST` environment variable.

Start a source:

```
bark stream --multicast 224.100.100.100:1530
```

Options: `--delay-ms` (playback delay, default 20), `--format` (`f32le` or
`s16le`, default `f32le`), `--priority` (-128 to 127, default 0; a higher
priority stream, or a newer one of equal priority, takes over receivers),
`--input-device`, `--input-period`, `--input-buffer` (in frames, defaults
120 and 360) and `--input-format` (`f32` or `s16`, default `f32`).

Start a receiver:

```
bark receive --multicast 224.100.100.100:1530
```

Options: `--output-device`, `--output-period`, `--output-buffer` and
`--output-format`, with the same meanings and defaults. A receiver drops a
stream it has not heard from for 100 ms.

Watch the group:

```
bark stats --multicast 224.100.100.100:1530
```

The table is redrawn in place. Sources are listed first, then each
receiver with its stream status (`SEEK`, `SYNC`, `SLEW`, `MISS`) and its
audio, output and network latencies. Nodes that have not replied within a
second are removed.

Sources and receivers serve Prometheus-style metrics over HTTP at
`/metrics` on the address given by `--metrics-listen` or
`BARK_METRICS_LISTEN` (default `0.0.0.0:1530`). A receiver reports packet,
frame and latency counters and gauges; a source reports none yet.

Other switches: `--version` (overridden by `BARK_PKG_VERSION`). The log
level is taken from `BARK_LOG` (default `INFO`). Fatal errors are logged
and give exit status 1.

## Configuration

Settings can be kept in a `bark.toml`, looked up first in the current
directory and then in `$XDG_CONFIG_HOME` (or `~/.config`) and
`$XDG_CONFIG_DIRS` (or `/etc/xdg`). Values from the file are exported as
`BARK_*` environment variables before the command line is read, so
command-line options still win. An invalid file stops the program with
exit status 1.

```toml
multicast = "224.100.100.100:1530"

[source]
delay_ms = 20
codec = "f32le"
priority = 0

[source.input]
device = "default"
format = "f32"

[receive.output]
device = "default"
period = 120
buffer = 360
format = "f32"

[metrics]
listen = "0.0.0.0:1530"
```

## Library use

- `bark.time`: `Timestamp`, `SampleDuration`, `TimestampDelta` and
  `TimestampMicros`, plus `now()`.
- `bark.types` and `bark.packet`: the wire structures and packets
  (`Audio`, `StatsRequest`, `StatsReply`, `Ping`, `Pong`), with
  `Packet.from_bytes` and `Packet.parse`.
- `bark.codec`: `S16LEEncoder`, `F32LEEncoder` and `Decoder`.
- `bark.queue`, `bark.rate`, `bark.resample` and `bark.pipeline`: the
  receive-side jitter buffer, rate control, linear-interpolation resampler
  and decode chain.
- `bark.config`: `parse_config`, `read` and `load_into_env`.

## Limitations

- There is no direct sound-card access: audio goes through raw PCM files
  or pipes as described above.
- Only the PCM codecs `s16le` and `f32le` are available; streams in any
  other format are received but play as silence.
- Multicast groups are IPv4 only.