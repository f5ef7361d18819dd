"""Fetch and clear a remote log file over SSH using a host alias from ~/.ssh/config."""

from .errors import LocalWriteError, LogFetchError, RemoteCommandError
from .fetcher import clear_log, fetch_log
from .remote import SSHConnection, run_command

__all__ = [
    "LogFetchError",
    "RemoteCommandError",
    "LocalWriteError",
    "SSHConnection",
    "run_command",
    "fetch_log",
    "clear_log",
]
