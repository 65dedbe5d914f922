"""Configuration — frozen dataclass built from defaults, an optional YAML file,
environment variables and CLI flags (later sources win)."""

import codecs
import logging
import os
from dataclasses import dataclass, fields, replace

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_ENV_VARS = {
    "output_dir": "EVTX_OUTPUT_DIR",
    "output_prefix": "EVTX_OUTPUT_PREFIX",
    "reserved_header": "EVTX_RESERVED_HEADER",
    "encoding": "EVTX_ENCODING",
    "recursive": "EVTX_RECURSIVE",
    "workers": "EVTX_WORKERS",
    "log_level": "EVTX_LOG_LEVEL",
}


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    output_dir: str = "."
    output_prefix: str = "timeline_"
    reserved_header: str = "UserData"
    encoding: str = "utf-8"
    recursive: bool = False
    workers: int = 1
    log_level: str = "INFO"

    def __post_init__(self):
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if not self.output_prefix:
            raise ValueError("output_prefix must not be empty")
        if not self.reserved_header:
            raise ValueError("reserved_header must not be empty")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {self.encoding}") from e


def _coerce(name: str, value):
    if name == "recursive":
        return _parse_bool(value)
    if name == "workers":
        try:
            return int(value)
        except TypeError as e:
            raise ValueError(f"workers must be an integer, got {value!r}") from e
    if name == "log_level":
        return str(value).upper()
    return str(value)


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def load_config(cli_args=None, yaml_data: dict | None = None) -> Config:
    """Build Config: defaults < YAML < environment < CLI flags."""
    known = {f.name for f in fields(Config)}
    overrides = {}

    for key, value in (yaml_data or {}).items():
        if key not in known:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        if value is None:
            continue
        overrides[key] = _coerce(key, value)

    for name, env_var in _ENV_VARS.items():
        raw = os.environ.get(env_var)
        if raw is not None:
            overrides[name] = _coerce(name, raw)

    if cli_args is not None:
        for name in known:
            value = getattr(cli_args, name, None)
            if value is not None:
                overrides[name] = _coerce(name, value)

    return replace(Config(), **overrides)
