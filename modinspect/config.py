"""User configuration: proxy location, timeouts and concurrency.

Configuration is read from the first existing file of

    $XDG_CONFIG_HOME/modinspect/config.yaml   (~/Library/Application Support on macOS)
    ~/.modinspect.yaml

and then overridden by the environment:

    MODINSPECT_PROXY            proxy origin
    MODINSPECT_TIMEOUT          per-request timeout, e.g. "30s" or "30"
    MODINSPECT_CACHE_TTL        lifetime of "latest" lookups, e.g. "5m"
    MODINSPECT_MAX_CONCURRENT   maximum requests in flight
"""

import logging
import os
import platform
import re
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from modinspect.constants import (
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_PROXY_URL,
    DEFAULT_TIMEOUT,
    SHORT_TTL,
)

logger = logging.getLogger(__name__)

APP_NAME = "modinspect"
ENV_PREFIX = "MODINSPECT_"

_home = os.path.expanduser("~")

xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(_home, ".config")

if platform.system() == "Darwin":
    config_dir = Path("~/Library/Application Support/modinspect").expanduser()
else:
    config_dir = Path(os.path.join(xdg_config_home, APP_NAME))


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or holds invalid values."""

    pass


_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Convert a duration to seconds.

    Accepts numbers (seconds) and strings such as ``"30s"``, ``"5m"``,
    ``"1h"`` or ``"250ms"``.

    Raises:
        ValueError: If the value is not a duration
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    match = _DURATION_RE.match(str(value))
    if match is None:
        raise ValueError(f"invalid duration: {value!r}")
    return float(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def default_config_paths() -> List[Path]:
    return [config_dir / "config.yaml", Path(_home) / f".{APP_NAME}.yaml"]


@dataclass
class Config:
    """Settings for the registry client and the command line output."""

    proxy_url: str = DEFAULT_PROXY_URL
    timeout: float = DEFAULT_TIMEOUT
    cache_ttl: float = SHORT_TTL
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    default_verbose: bool = False
    default_quiet: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        """
        Build a configuration from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: If a known key holds a value of the wrong kind
        """
        cfg = cls()
        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown configuration key '{key}'")
                continue
            try:
                setattr(cfg, key, _coerce(key, value))
            except ValueError as e:
                raise ConfigError(f"Invalid value for '{key}': {e}") from e
        return cfg

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read configuration {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {path} must be a mapping")
        return cls.from_dict(data)

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Override settings from MODINSPECT_* variables. Invalid values are ignored."""
        environ = os.environ if environ is None else environ
        overrides = {
            "proxy_url": environ.get(f"{ENV_PREFIX}PROXY"),
            "timeout": environ.get(f"{ENV_PREFIX}TIMEOUT"),
            "cache_ttl": environ.get(f"{ENV_PREFIX}CACHE_TTL"),
            "max_concurrent": environ.get(f"{ENV_PREFIX}MAX_CONCURRENT"),
        }
        for key, value in overrides.items():
            if not value:
                continue
            try:
                setattr(self, key, _coerce(key, value))
            except ValueError as e:
                logger.warning(f"Ignoring environment override for {key}: {e}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(key: str, value: Any) -> Any:
    if key == "timeout":
        seconds = parse_duration(value)
        if seconds <= 0:
            raise ValueError(f"must be positive, got {value!r}")
        return seconds
    if key == "cache_ttl":
        return parse_duration(value)
    if key == "max_concurrent":
        if isinstance(value, bool):
            raise ValueError(f"expected an integer, got {value!r}")
        number = int(value)
        if number < 1:
            raise ValueError(f"must be at least 1, got {number}")
        return number
    if key in ("default_verbose", "default_quiet"):
        if not isinstance(value, bool):
            raise ValueError(f"expected true or false, got {value!r}")
        return value
    return str(value)


def load_config(
    paths: Optional[List[Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load the configuration from the first existing file, then the environment.

    Args:
        paths: Candidate files, defaults to default_config_paths()
        environ: Environment mapping, defaults to os.environ

    Returns:
        The effective configuration
    """
    cfg = Config()
    for path in paths if paths is not None else default_config_paths():
        if path.is_file():
            cfg = Config.from_file(path)
            logger.debug(f"Loaded configuration from {path}")
            break

    return cfg.apply_env(environ)
