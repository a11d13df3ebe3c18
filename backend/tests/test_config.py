from pathlib import Path

import pytest

from snote.__main__ import build_parser
from snote.config import CONFIG_FILE_ENV, DEFAULT_DATA_DIR, ENV_VARS, ConfigError, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (*ENV_VARS.values(), CONFIG_FILE_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def config_file(tmp_path):
    def write(text):
        path = tmp_path / "snote.yaml"
        path.write_text(text, encoding="utf-8")
        return path
    return write


def test_defaults():
    s = load_settings()
    assert s.data_dir == DEFAULT_DATA_DIR
    assert s.host == "0.0.0.0"
    assert s.port == 4000
    assert s.request_timeout == 5.0
    assert s.max_body_bytes == 2 * 1_048_576
    assert s.purge_interval == 300.0
    assert s.log_level == "INFO"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "0.5")
    monkeypatch.setenv("PURGE_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    s = load_settings()
    assert s.data_dir == Path(tmp_path)
    assert s.port == 8080
    assert s.request_timeout == 0.5
    assert s.purge_interval == 60.0
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize("port", ["80", "1023", "65536", "http"])
def test_invalid_port(monkeypatch, port):
    monkeypatch.setenv("PORT", port)
    with pytest.raises(ConfigError):
        load_settings()


@pytest.mark.parametrize(
    "name, value",
    [
        ("REQUEST_TIMEOUT_SECONDS", "0"),
        ("MAX_BODY_BYTES", "-1"),
        ("PURGE_INTERVAL_SECONDS", "soon"),
        ("LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_settings()


def test_config_file(tmp_path, config_file):
    path = config_file(
        "server:\n"
        "  host: 127.0.0.1\n"
        "  port: 5000\n"
        "  request_timeout_seconds: 2.5\n"
        "storage:\n"
        f"  data_dir: {tmp_path / 'notes-data'}\n"
        "  purge_interval_seconds: 30\n"
        "logging:\n"
        "  level: warning\n"
    )

    s = load_settings(config_file=path)
    assert s.host == "127.0.0.1"
    assert s.port == 5000
    assert s.request_timeout == 2.5
    assert s.data_dir == tmp_path / "notes-data"
    assert s.purge_interval == 30.0
    assert s.log_level == "WARNING"
    # untouched keys keep their defaults
    assert s.max_body_bytes == 2 * 1_048_576


def test_config_file_from_env(monkeypatch, config_file):
    path = config_file("server:\n  port: 5001\n")
    monkeypatch.setenv(CONFIG_FILE_ENV, str(path))
    assert load_settings().port == 5001


def test_empty_config_file_uses_defaults(config_file):
    assert load_settings(config_file=config_file("")).port == 4000


def test_argument_beats_file_beats_env(monkeypatch, config_file):
    monkeypatch.setenv("PORT", "6000")
    monkeypatch.setenv("HOST", "10.0.0.1")
    path = config_file("server:\n  port: 5000\n  host: 127.0.0.1\n")

    s = load_settings(config_file=path)
    assert (s.host, s.port) == ("127.0.0.1", 5000)

    s = load_settings(config_file=path, overrides={"host": None, "port": 7000})
    assert (s.host, s.port) == ("127.0.0.1", 7000)


def test_port_is_checked_after_merge(config_file):
    path = config_file("server:\n  port: 80\n")
    with pytest.raises(ConfigError, match="invalid port value 80"):
        load_settings(config_file=path)
    # a valid argument replaces the bad file value
    assert load_settings(config_file=path, overrides={"port": 4001}).port == 4001
    with pytest.raises(ConfigError, match="invalid port value 70000"):
        load_settings(overrides={"port": 70000})


@pytest.mark.parametrize(
    "text",
    [
        "server: [1, 2]\n",
        "- port\n",
        "server:\n  port: [4000\n",
        "server:\n  colour: blue\n",
        "db:\n  host: localhost\n",
        "server:\n  port: true\n",
    ],
)
def test_invalid_config_file(config_file, text):
    with pytest.raises(ConfigError, match="config file loader|must be an integer"):
        load_settings(config_file=config_file(text))


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="config file loader"):
        load_settings(config_file=tmp_path / "absent.yaml")


def test_cli_accepts_config_file():
    args = build_parser().parse_args(["--config-file", "snote.yaml", "--port", "4500"])
    assert args.config_file == "snote.yaml"
    assert args.port == 4500
