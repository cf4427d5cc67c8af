import pytest

from bark.config import (
    Codec,
    ConfigError,
    Format,
    load_file,
    load_into_env,
    parse_config,
    read,
)

SAMPLE = """
multicast = "224.100.100.100:1530"

[source]
delay_ms = 30
codec = "s16le"
priority = -3

[source.input]
device = "hw:0"
period = 120
format = "s16"

[receive.output]
buffer = 360
format = "f32"

[metrics]
listen = "127.0.0.1:9000"
"""


def test_parse_full():
    config = parse_config(SAMPLE)
    assert config.multicast == "224.100.100.100:1530"
    assert config.source.delay_ms == 30
    assert config.source.codec is Codec.S16LE
    assert config.source.priority == -3
    assert config.source.input.device == "hw:0"
    assert config.source.input.period == 120
    assert config.source.input.format is Format.S16
    assert config.receive.output.buffer == 360
    assert config.receive.output.format is Format.F32
    assert config.metrics.listen == "127.0.0.1:9000"


def test_parse_empty_defaults():
    config = parse_config("")
    assert config.multicast is None
    assert config.source.input.device is None
    assert config.receive.output.period is None


@pytest.mark.parametrize(
    "text",
    [
        'multicast = "nope"',
        '[source]\ncodec = "mp3"',
        "[source]\npriority = 200",
        '[receive.output]\nformat = "s24"',
        "this is not toml =",
    ],
)
def test_parse_errors(text):
    with pytest.raises(ConfigError):
        parse_config(text)


def test_load_into_env():
    env = {}
    load_into_env(parse_config(SAMPLE), env)
    assert env["BARK_MULTICAST"] == "224.100.100.100:1530"
    assert env["BARK_SOURCE_CODEC"] == "s16le"
    assert env["BARK_SOURCE_INPUT_FORMAT"] == "s16"
    assert env["BARK_SOURCE_PRIORITY"] == "-3"
    assert env["BARK_RECEIVE_OUTPUT_BUFFER"] == "360"
    assert "BARK_RECEIVE_OUTPUT_DEVICE" not in env


def test_load_file_missing(tmp_path):
    assert load_file(tmp_path / "absent.toml") is None


def test_load_file_invalid(tmp_path):
    path = tmp_path / "bark.toml"
    path.write_text('[source]\ncodec = "bogus"\n')
    with pytest.raises(ConfigError):
        load_file(path)


def test_read_from_cwd(tmp_path, monkeypatch):
    (tmp_path / "bark.toml").write_text(SAMPLE)
    monkeypatch.chdir(tmp_path)
    config = read()
    assert config.source.delay_ms == 30


def test_read_from_xdg(tmp_path, monkeypatch):
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    xdg = tmp_path / "xdg"
    xdg.mkdir()
    (xdg / "bark.toml").write_text('multicast = "224.1.1.1:1530"\n')
    monkeypatch.chdir(cwd)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.setenv("XDG_CONFIG_DIRS", str(tmp_path / "none"))
    assert read().multicast == "224.1.1.1:1530"


def test_read_nothing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "a"))
    monkeypatch.setenv("XDG_CONFIG_DIRS", str(tmp_path / "b"))
    assert read() is None