"""Host alias lookup against an OpenSSH client config file."""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass
from typing import Optional

import paramiko
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_SSH_CONFIG = "~/.ssh/config"

HOST_KEYS = ("user", "hostname", "port", "identityfile")

# Appended as the last Host block. First value wins, so it only shows up when
# no earlier block matching the alias set HostName.
UNSET_HOSTNAME = "logfetch.unset-hostname.invalid"
_UNSET_HOSTNAME_BLOCK = f"\nHost *\n    HostName {UNSET_HOSTNAME}\n"


@dataclass(frozen=True)
class HostParams:
    """Connection parameters for one alias. Missing values are empty strings."""

    user: str = ""
    hostname: str = ""
    port: str = ""
    identityfile: str = ""


def _load(config_path: Optional[str]) -> paramiko.SSHConfig:
    path = os.path.expanduser(config_path or DEFAULT_SSH_CONFIG)
    if not os.path.isfile(path):
        logger.debug("SSH config not found", path=path)
        return paramiko.SSHConfig()
    try:
        with open(path, "r") as f:
            text = f.read()
        return paramiko.SSHConfig.from_text(text + _UNSET_HOSTNAME_BLOCK)
    except (OSError, UnicodeDecodeError, paramiko.ConfigParseError) as e:
        logger.warning("Failed to read SSH config", path=path, error=str(e))
        return paramiko.SSHConfig()


def _is_known(config: paramiko.SSHConfig, alias: str) -> bool:
    """True if a Host pattern other than the bare ``*`` catch-all matches ``alias``."""
    for pattern in config.get_hostnames():
        if pattern == "*" or pattern.startswith("!"):
            continue
        if fnmatch.fnmatch(alias, pattern):
            return True
    return False


def _lookup(config: paramiko.SSHConfig, alias: str) -> dict[str, object]:
    if not _is_known(config, alias):
        return {}
    options = dict(config.lookup(alias))
    if options.get("hostname") == UNSET_HOSTNAME:
        del options["hostname"]
    return options


def _value(options: dict[str, object], key: str) -> str:
    value = options.get(key)
    if value is None:
        return ""
    if isinstance(value, list):
        return str(value[0]) if value else ""
    return str(value)


def resolve(alias: str, key: str, config_path: Optional[str] = None) -> str:
    """Return ``key`` for ``alias`` from the SSH config, or ``""`` if it is not set."""
    options = _lookup(_load(config_path), alias)
    return _value(options, key.lower())


def resolve_host(alias: str, config_path: Optional[str] = None) -> HostParams:
    """Resolve user, hostname, port and identityfile for ``alias`` in one read."""
    options = _lookup(_load(config_path), alias)
    params = HostParams(**{key: _value(options, key) for key in HOST_KEYS})
    logger.debug("Resolved host alias", alias=alias, hostname=params.hostname, port=params.port, user=params.user)
    return params
