"""
Hub configuration: optional YAML file plus environment overrides.

Example config.yml:

    hub:
      db_url: sqlite:////var/lib/pulse/monitoring.db
      host: 127.0.0.1
      port: 4777
      retention_hours: 24
      history_limit: 24
"""
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from pulse_hub.db import DEFAULT_DB_URL
from pulse_hub.errors import ConfigError

ENV_OVERRIDES = {
    'db_url': 'PULSE_DB_URL',
    'host': 'PULSE_HOST',
    'port': 'PULSE_PORT',
}

UNSET_VAR = re.compile(r'\$\{\w+\}')


@dataclass
class HubConfig:
    """Collector settings"""

    db_url: str = DEFAULT_DB_URL
    host: str = '127.0.0.1'
    port: int = 4777
    retention_hours: int = 24
    history_limit: int = 24

    @property
    def retention_seconds(self) -> int:
        return self.retention_hours * 60 * 60

    def validate(self) -> None:
        if not self.db_url:
            raise ConfigError("db_url must not be empty")
        if not 0 < self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}")
        if self.retention_hours <= 0:
            raise ConfigError("retention_hours must be positive")
        if self.history_limit <= 0:
            raise ConfigError("history_limit must be positive")


def _coerce(config: HubConfig, name: str, value):
    expected = type(getattr(config, name))
    if isinstance(value, str):
        value = os.path.expandvars(value)
        unset = UNSET_VAR.search(value)
        if unset:
            raise ConfigError(f"Environment variable {unset.group()} in {name} is not set")
    try:
        return expected(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid value for {name}: {value!r}")


def load_config(config_path: Optional[str] = None) -> HubConfig:
    """
    Build the hub configuration.

    Values come from defaults, then the 'hub' section of the YAML file (if
    given), then PULSE_DB_URL / PULSE_HOST / PULSE_PORT.

    Raises:
        ConfigError: unreadable file, invalid YAML or bad values
    """
    config = HubConfig()
    known = {f.name for f in fields(HubConfig)}

    if config_path:
        try:
            with Path(config_path).open() as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}")

        # A section with every line commented out loads as None
        section = (data.get('hub') or {}) if isinstance(data, dict) else None
        if not isinstance(section, dict):
            raise ConfigError("'hub' section must be a mapping")

        for name, value in section.items():
            if name not in known:
                raise ConfigError(f"Unknown hub setting: {name}")
            setattr(config, name, _coerce(config, name, value))

    for name, env_var in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            setattr(config, name, _coerce(config, name, value))

    config.validate()
    return config
