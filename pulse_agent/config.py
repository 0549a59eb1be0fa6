"""
Agent configuration: command line values over an optional YAML file.

Example config.yml:

    agent:
      manager_url: http://collector.internal:4777/metrics
      server_name: web-1
      interval: 30
      timeout: 10
"""

import os
import re
import socket
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

UNSET_VAR = re.compile(r'\$\{\w+\}')


class ConfigError(Exception):
    """Configuration validation error"""
    pass


@dataclass
class AgentConfig:
    manager_url: str = ''
    server_name: str = ''
    interval: int = 30
    timeout: float = 10.0

    def validate(self) -> None:
        # Presence only: a bad URL shows up as a transport error every cycle
        if not self.manager_url:
            raise ConfigError("manager_url is required")
        if self.interval <= 0:
            raise ConfigError("interval must be positive")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")


def load_config(
    config_path: Optional[str] = None,
    manager_url: Optional[str] = None,
    server_name: Optional[str] = None,
    interval: Optional[int] = None
) -> AgentConfig:
    """
    Build the agent configuration.

    The 'agent' section of the YAML file (with ${VAR} expansion) is read
    first, then explicit arguments win. server_name defaults to the hostname.

    Raises:
        ConfigError: unreadable file, invalid YAML or bad values
    """
    config = AgentConfig()
    known = {f.name for f in fields(AgentConfig)}

    if config_path:
        try:
            with Path(config_path).open() as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}")

        # A section with every line commented out loads as None
        section = (data.get('agent') or {}) if isinstance(data, dict) else None
        if not isinstance(section, dict):
            raise ConfigError("'agent' section must be a mapping")

        for name, value in section.items():
            if name not in known:
                raise ConfigError(f"Unknown agent setting: {name}")
            if isinstance(value, str):
                value = os.path.expandvars(value)
                unset = UNSET_VAR.search(value)
                if unset:
                    raise ConfigError(f"Environment variable {unset.group()} in {name} is not set")
            try:
                setattr(config, name, type(getattr(config, name))(value))
            except (TypeError, ValueError):
                raise ConfigError(f"Invalid value for {name}: {value!r}")

    if manager_url:
        config.manager_url = manager_url
    if server_name:
        config.server_name = server_name
    if interval is not None:
        config.interval = interval

    if not config.server_name:
        config.server_name = socket.gethostname()

    config.validate()
    return config
