"""
Application Configuration

Defaults for the dashboard, optionally overridden from a JSON file and
then from command-line flags.
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional, Union

from .controller import DEFAULT_TICK_INTERVAL_MS
from .errors import ConfigError
from .rate_adjuster import DEFAULT_PARAMS, SyncParams

DEFAULT_SERVE_PORT = 8000
DEFAULT_SERVE_ROOT = "hls"


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class AppConfig:
    """Everything the launcher needs to build a session."""
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    sync_enabled: bool = True
    master_index: int = 0
    params: SyncParams = field(default_factory=lambda: DEFAULT_PARAMS)

    preset: str = "local"
    streams_file: Optional[str] = None

    serve: bool = False
    serve_root: str = DEFAULT_SERVE_ROOT
    serve_port: int = DEFAULT_SERVE_PORT

    log_level: str = "INFO"
    log_file: Optional[str] = None

    def validate(self) -> "AppConfig":
        for flag in ("sync_enabled", "serve"):
            if not isinstance(getattr(self, flag), bool):
                raise ConfigError(f"{flag} must be true or false (got {getattr(self, flag)!r})")
        if not _is_int(self.tick_interval_ms) or self.tick_interval_ms <= 0:
            raise ConfigError(f"tick_interval_ms must be a positive integer (got {self.tick_interval_ms!r})")
        if not _is_int(self.master_index) or self.master_index < 0:
            raise ConfigError(f"master_index must be a non-negative integer (got {self.master_index!r})")
        if not _is_int(self.serve_port) or not 0 < self.serve_port < 65536:
            raise ConfigError(f"serve_port out of range: {self.serve_port}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"unknown log level: {self.log_level!r}")
        return self


_PARAM_KEYS = {f.name for f in fields(SyncParams)}
_CONFIG_KEYS = {f.name for f in fields(AppConfig)} - {"params"}


def config_from_dict(data: dict, base: Optional[AppConfig] = None) -> AppConfig:
    """
    Build an AppConfig from a mapping.

    Threshold keys may appear either at the top level or under a
    ``"sync"`` object. Unknown keys are rejected.
    """
    base = base or AppConfig()
    data = dict(data)
    sync_section = data.pop("sync", {}) or {}
    if not isinstance(sync_section, dict):
        raise ConfigError("'sync' must be an object")

    param_values = {k: data.pop(k) for k in list(data) if k in _PARAM_KEYS}
    param_values.update(sync_section)

    unknown = set(data) - _CONFIG_KEYS
    unknown |= set(param_values) - _PARAM_KEYS
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(sorted(unknown))}")

    try:
        params = replace(base.params, **param_values) if param_values else base.params
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid sync parameters: {e}") from e

    return replace(base, params=params, **data).validate()


def load_config(path: Union[str, Path], base: Optional[AppConfig] = None) -> AppConfig:
    """Read a JSON configuration file on top of ``base``."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a JSON object")
    return config_from_dict(data, base)
