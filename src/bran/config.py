"""Configuration loader for bran."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_CONFIG = "bran.yml"

HOST_KEYS = ("user", "build_dir", "host", "identity_file")


@dataclass(frozen=True)
class Host:
    """A remote machine targeted for builds."""

    name: str
    user: str
    build_dir: str
    host: str | None = None
    identity_file: str | None = None

    @property
    def address(self) -> str:
        """Address to connect to; falls back to the host name."""
        return self.host or self.name

    @property
    def identity_path(self) -> str | None:
        if self.identity_file:
            return os.path.expanduser(self.identity_file)
        return None

    @property
    def client_keys(self) -> list[str] | None:
        if self.identity_path:
            return [self.identity_path]
        return None

    @property
    def git_ssh_command(self) -> str | None:
        if self.identity_file:
            return f'ssh -i "{self.identity_path}"'
        return None

    @property
    def git_ssh_url(self) -> str:
        return f"{self.user}@{self.address}:{self.build_dir}"


@dataclass
class Config:
    """Hosts and build commands for a run."""

    hosts: dict[str, Host]
    build: list[str]
    source_path: Path | None = field(default=None, compare=False)


def load_config(config_path: str | Path = DEFAULT_CONFIG) -> Config:
    """Load and validate configuration from a YAML file."""
    config_path = Path(config_path)

    try:
        with open(config_path) as f:
            contents = f.read()
        config = parse_config(contents)
    except (OSError, ConfigError) as e:
        reason = e.strerror if isinstance(e, OSError) and e.strerror else e
        raise ConfigError(f"Failed to read {config_path}: {reason}") from e

    config.source_path = config_path.resolve()
    return config


def parse_config(contents: str) -> Config:
    """Parse raw YAML text into a Config object."""
    try:
        raw = yaml.safe_load(contents)
    except yaml.YAMLError as e:
        raise ConfigError(str(e)) from e

    if raw is None:
        raise ConfigError("no configuration found")
    if not isinstance(raw, dict):
        raise ConfigError("configuration must be a mapping")

    hosts = _parse_hosts(raw.get("hosts"))
    build = _parse_build(raw.get("build"))
    return Config(hosts=hosts, build=build)


def _parse_hosts(raw: Any) -> dict[str, Host]:
    if raw is None:
        raise ConfigError('missing "hosts" configuration')
    if not isinstance(raw, dict):
        raise ConfigError('invalid "hosts" configuration')

    hosts = {}
    for name, host_raw in raw.items():
        if not isinstance(name, str):
            raise ConfigError('"hosts" keys must be strings')
        hosts[name] = _parse_host(name, host_raw)

    return hosts


def _parse_host(name: str, raw: Any) -> Host:
    """Parse a single host configuration."""
    if not isinstance(raw, dict):
        raise ConfigError(f'invalid configuration for host "{name}"')

    for key in raw:
        if key not in HOST_KEYS:
            raise ConfigError(f'unknown key "{key}" in host "{name}"')

    return Host(
        name=name,
        user=_get_str(raw, name, "user"),
        build_dir=_get_str(raw, name, "build_dir"),
        host=_get_optional_str(raw, name, "host"),
        identity_file=_get_optional_str(raw, name, "identity_file"),
    )


def _get_optional_str(raw: dict[str, Any], host: str, key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f'invalid value for "{key}" in host "{host}"')
    return value


def _get_str(raw: dict[str, Any], host: str, key: str) -> str:
    value = _get_optional_str(raw, host, key)
    if value is None:
        raise ConfigError(f'missing value for "{key}" in host "{host}"')
    return value


def _parse_build(raw: Any) -> list[str]:
    """Parse the build section: a single command or a list of commands."""
    if raw is None:
        raise ConfigError('missing "build" configuration')

    if isinstance(raw, str):
        return [raw]

    err_msg = '"build" configuration must be a string or an array of strings'
    if isinstance(raw, list):
        if not all(isinstance(cmd, str) for cmd in raw):
            raise ConfigError(err_msg)
        return list(raw)

    raise ConfigError(err_msg)
