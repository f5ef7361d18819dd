"""Fetch a remote log into a local file and clear it afterwards."""

from __future__ import annotations

import os
import shlex
from typing import Callable

import structlog

from .errors import LocalWriteError
from .remote import SSHConnection, run_command

logger = structlog.get_logger(__name__)

LOCAL_FILE_MODE = 0o644

Runner = Callable[[str, SSHConnection], bytes]


def truncate_command(remote_file: str) -> str:
    # truncate prints nothing, so the fetched content is normally empty.
    return "sudo truncate -s 0 " + shlex.quote(remote_file)


def clear_command(remote_file: str) -> str:
    # The redirection runs in the login user's shell, not under sudo.
    return 'sudo echo "" > ' + shlex.quote(remote_file)


def write_local(local_file: str, data: bytes) -> None:
    """Overwrite ``local_file`` with ``data`` and set its mode to 0644."""
    try:
        with open(local_file, "wb") as f:
            f.write(data)
        os.chmod(local_file, LOCAL_FILE_MODE)
    except OSError as e:
        raise LocalWriteError(f"Failed to write {local_file}: {e}") from e


def fetch_log(
    remote_file: str,
    local_file: str,
    connection: SSHConnection,
    runner: Runner = run_command,
) -> int:
    """Truncate ``remote_file`` and save what the command printed to ``local_file``.

    The local file is always overwritten, never appended to.

    Returns:
        Number of bytes written locally.

    Raises:
        RemoteCommandError: If the remote command could not be run.
        LocalWriteError: If the local file could not be written.
    """
    output = runner(truncate_command(remote_file), connection)
    write_local(local_file, output)
    logger.info("Fetched remote log", remote_file=remote_file, local_file=local_file, bytes=len(output))
    return len(output)


def clear_log(remote_file: str, connection: SSHConnection, runner: Runner = run_command) -> None:
    """Replace the remote file's content with a single newline."""
    runner(clear_command(remote_file), connection)
    logger.info("Cleared remote log", remote_file=remote_file)
