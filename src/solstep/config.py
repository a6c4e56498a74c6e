"""
Debugger configuration.

Settings come from (lowest to highest precedence) the dataclass defaults, a
``solstep.config.yaml`` file and ``SOLSTEP_*`` environment variables.
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .utils.exceptions import ConfigError

DEFAULT_CONFIG_FILE = "solstep.config.yaml"
ENV_PREFIX = "SOLSTEP_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class DebuggerConfig:
    """Configuration for a debugging session."""
    log_level: str = "INFO"
    log_file: Optional[str] = None
    use_colors: bool = True
    # Publish call targets in EIP-55 form instead of the raw lowercase word
    checksum_addresses: bool = False
    # Function depth at the first step of a trace
    initial_function_depth: int = 1

    def __post_init__(self):
        if not isinstance(self.level, int):
            raise ConfigError(f"Unknown log level '{self.log_level}'")
        if self.initial_function_depth < 0:
            raise ConfigError("initial_function_depth must not be negative")

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "DebuggerConfig":
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                config_file=source
            )
        values = {}
        for key, value in data.items():
            values[key] = _coerce(known[key].type, value, key, source)
        return cls(**values)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None, env: Optional[Dict[str, str]] = None) -> "DebuggerConfig":
        """
        Load configuration.

        Args:
            path: YAML file; defaults to ``solstep.config.yaml`` in the
                working directory when it exists
            env: Environment to read overrides from (defaults to os.environ)
        """
        data: Dict[str, Any] = {}
        config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML: {e}", config_file=str(config_path))
            if not isinstance(loaded, dict):
                raise ConfigError("Configuration must be a mapping", config_file=str(config_path))
            data.update(loaded.get("solstep", loaded))
        elif path:
            raise ConfigError("Configuration file not found", config_file=str(config_path))

        env = os.environ if env is None else env
        for f in fields(cls):
            name = ENV_PREFIX + f.name.upper()
            if name in env:
                data[f.name] = env[name]

        return cls.from_dict(data, source=str(config_path))

    def save(self, path: Union[str, Path] = DEFAULT_CONFIG_FILE) -> None:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"solstep": asdict(self)}, f, sort_keys=False)


def _coerce(field_type, value, key: str, source: Optional[str]):
    """Convert YAML/env values to the field's type."""
    if value is None:
        return None
    target = field_type
    if target in (bool, "bool"):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    elif target in (int, "int"):
        try:
            return int(value)
        except (TypeError, ValueError):
            pass
    else:
        return str(value)
    raise ConfigError(f"Invalid value for {key}: {value!r}", config_file=source)
