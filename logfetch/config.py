"""Configuration management for the log fetcher."""

import os
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

logger = structlog.get_logger(__name__)


class LogFetchSettings(BaseModel):
    """Settings that are not per-invocation flags."""

    ssh_config_path: str = Field(default="~/.ssh/config", description="OpenSSH client config holding host aliases")
    known_hosts_file: Optional[str] = Field(default=None, description="Extra known_hosts file to trust")
    verify_host_key: bool = Field(default=True, description="Reject hosts whose key is not already known")
    connect_timeout: Optional[float] = Field(default=None, description="TCP connect/banner timeout in seconds")
    log_level: str = Field(default="INFO", description="Logging level")


def _read_file(config_path: str) -> Dict[str, Any]:
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read settings file, using defaults", path=config_path, error=str(e))
        return {}
    if not isinstance(data, dict):
        logger.warning("Settings file is not a mapping, using defaults", path=config_path)
        return {}
    return {str(key): value for key, value in data.items()}


def load_config(config_path: Optional[str] = None) -> LogFetchSettings:
    """Load settings from a YAML file, then apply environment overrides.

    Values pydantic cannot coerce are logged and replaced by their defaults.
    """
    if config_path is None:
        config_path = os.getenv("LOGFETCH_CONFIG", "config/logfetch.yaml")

    config_data = _read_file(config_path)

    # Override with environment variables
    env_overrides = {
        "ssh_config_path": os.getenv("LOGFETCH_SSH_CONFIG"),
        "known_hosts_file": os.getenv("LOGFETCH_KNOWN_HOSTS"),
        "verify_host_key": os.getenv("LOGFETCH_VERIFY_HOST_KEY"),
        "connect_timeout": os.getenv("LOGFETCH_CONNECT_TIMEOUT"),
        "log_level": os.getenv("LOG_LEVEL"),
    }
    for key, value in env_overrides.items():
        if value is not None:
            config_data[key] = value

    try:
        return LogFetchSettings(**config_data)
    except ValidationError as e:
        invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        logger.warning("Invalid settings, using defaults for them", fields=sorted(invalid), error=str(e))
        return LogFetchSettings(**{k: v for k, v in config_data.items() if k not in invalid})
