"""
Server settings.

Sources, highest precedence first: command-line arguments, the YAML config
file, environment variables, defaults. Values are range-checked after the
merge, so a bad value is reported whichever source it came from.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, TypeVar, Union

import yaml

# Base data dir: repository_root/data (we are in backend/snote/)
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CONFIG_FILE_ENV = "SNOTE_CONFIG_FILE"

ENV_VARS = {
    "data_dir": "APP_DATA_DIR",
    "host": "HOST",
    "port": "PORT",
    "request_timeout": "REQUEST_TIMEOUT_SECONDS",
    "max_body_bytes": "MAX_BODY_BYTES",
    "purge_interval": "PURGE_INTERVAL_SECONDS",
    "log_level": "LOG_LEVEL",
}

# section -> key -> Settings field
FILE_KEYS = {
    "server": {
        "host": "host",
        "port": "port",
        "request_timeout_seconds": "request_timeout",
        "max_body_bytes": "max_body_bytes",
    },
    "storage": {
        "data_dir": "data_dir",
        "purge_interval_seconds": "purge_interval",
    },
    "logging": {
        "level": "log_level",
    },
}

T = TypeVar("T")

# field -> (raw value, where it came from)
RawValues = dict[str, tuple[Any, str]]


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    host: str = "0.0.0.0"
    port: int = 4000
    request_timeout: float = 5.0
    max_body_bytes: int = 2 * 1_048_576
    purge_interval: float = 300.0
    log_level: str = "INFO"


def _int(raw: Any, source: str) -> int:
    if isinstance(raw, bool):
        raise ConfigError(f"{source} must be an integer, got {raw!r}")
    try:
        return int(str(raw))
    except ValueError:
        raise ConfigError(f"{source} must be an integer, got {raw!r}") from None


def _float(raw: Any, source: str) -> float:
    if isinstance(raw, bool):
        raise ConfigError(f"{source} must be a number, got {raw!r}")
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{source} must be a number, got {raw!r}") from None


def _positive(convert: Callable[[Any, str], T]) -> Callable[[Any, str], T]:
    def check(raw: Any, source: str) -> T:
        value = convert(raw, source)
        if value <= 0:
            raise ConfigError(f"{source} must be positive")
        return value
    return check


def _log_level(raw: Any, source: str) -> str:
    level = str(raw).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"{source} must be one of {', '.join(LOG_LEVELS)}")
    return level


def check_port(port: int) -> int:
    if not 1024 <= port <= 65535:
        raise ConfigError(f"invalid port value {port}. Should be in-between 1024 and 65535")
    return port


def _from_env() -> RawValues:
    values: RawValues = {}
    for field, name in ENV_VARS.items():
        raw = os.getenv(name)
        if raw:
            values[field] = (raw, name)
    return values


def load_config_file(path: Union[str, Path]) -> RawValues:
    """
    Read a YAML config file such as::

        server:
          port: 4000
        storage:
          data_dir: /var/lib/snote

    Unknown sections and keys are rejected.
    """
    try:
        with open(path, encoding="utf-8") as f:
            doc = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"config file loader: {exc}") from exc

    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ConfigError("config file loader: expected a mapping of sections")

    values: RawValues = {}
    for section, body in doc.items():
        keys = FILE_KEYS.get(section)
        if keys is None:
            raise ConfigError(f"config file loader: unknown section {section!r}")
        if body is None:
            continue
        if not isinstance(body, dict):
            raise ConfigError(f"config file loader: section {section!r} must be a mapping")
        for key, raw in body.items():
            field = keys.get(key)
            if field is None:
                raise ConfigError(f"config file loader: unknown key {section}.{key}")
            if raw is not None:
                values[field] = (raw, f"{section}.{key}")
    return values


def _pick(values: RawValues, field: str, default: T, convert: Callable[[Any, str], T]) -> T:
    if field not in values:
        return default
    raw, source = values[field]
    return convert(raw, source)


def load_settings(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Settings:
    """
    Merge every settings source. ``config_file`` defaults to $SNOTE_CONFIG_FILE;
    ``overrides`` holds command-line values by field name, None meaning unset.
    """
    values = _from_env()

    config_file = config_file or os.getenv(CONFIG_FILE_ENV)
    if config_file:
        values.update(load_config_file(config_file))

    for field, raw in (overrides or {}).items():
        if raw is not None:
            values[field] = (raw, "--" + field.replace("_", "-"))

    return Settings(
        data_dir=_pick(values, "data_dir", DEFAULT_DATA_DIR, lambda raw, _: Path(str(raw))),
        host=_pick(values, "host", "0.0.0.0", lambda raw, _: str(raw)),
        port=check_port(_pick(values, "port", 4000, _int)),
        request_timeout=_pick(values, "request_timeout", 5.0, _positive(_float)),
        max_body_bytes=_pick(values, "max_body_bytes", 2 * 1_048_576, _positive(_int)),
        purge_interval=_pick(values, "purge_interval", 300.0, _positive(_float)),
        log_level=_pick(values, "log_level", "INFO", _log_level),
    )
