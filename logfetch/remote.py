"""Run a single command on a remote host over SSH and capture its stdout."""

from __future__ import annotations

import os
import select
from dataclasses import dataclass, field
from typing import List, Optional

import paramiko
import structlog

from .errors import RemoteCommandError

logger = structlog.get_logger(__name__)

READ_SIZE = 32768
POLL_INTERVAL = 1.0


@dataclass
class SSHConnection:
    """Everything needed to open one SSH connection for a run."""

    host: str
    port: str
    user: str = ""
    credential: List[paramiko.PKey] = field(default_factory=list)
    verify_host_key: bool = True
    known_hosts_file: Optional[str] = None
    connect_timeout: Optional[float] = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class AcceptAnyHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """Accept every host key without recording it."""

    def missing_host_key(self, client, hostname, key):
        logger.warning(
            "Host key verification disabled, accepting key",
            host=hostname,
            key_type=key.get_name(),
            fingerprint=key.get_fingerprint().hex(),
        )


def _configure_host_keys(client: paramiko.SSHClient, connection: SSHConnection) -> None:
    if not connection.verify_host_key:
        client.set_missing_host_key_policy(AcceptAnyHostKeyPolicy())
        return
    client.load_system_host_keys()
    if connection.known_hosts_file:
        client.load_host_keys(os.path.expanduser(connection.known_hosts_file))
    client.set_missing_host_key_policy(paramiko.RejectPolicy())


def _connect(client: paramiko.SSHClient, connection: SSHConnection) -> None:
    _configure_host_keys(client, connection)
    pkey = connection.credential[0] if connection.credential else None
    logger.info("Connecting to remote server", address=connection.address, user=connection.user)
    client.connect(
        hostname=connection.host,
        port=int(connection.port),
        username=connection.user or None,
        pkey=pkey,
        allow_agent=False,
        look_for_keys=False,
        timeout=connection.connect_timeout,
        banner_timeout=connection.connect_timeout,
    )


def _read_stdout(session: paramiko.Channel) -> bytes:
    """Read stdout until EOF, discarding stderr so the channel window keeps moving."""
    chunks: List[bytes] = []
    while True:
        while session.recv_stderr_ready():
            session.recv_stderr(READ_SIZE)
        if session.recv_ready():
            chunks.append(session.recv(READ_SIZE))
            continue
        if session.eof_received or session.closed:
            if not session.recv_ready() and not session.recv_stderr_ready():
                break
            continue
        select.select([session], [], [], POLL_INTERVAL)
    return b"".join(chunks)


def run_command(cmd: str, connection: SSHConnection) -> bytes:
    """Connect, run ``cmd`` in a new session and return everything it wrote to stdout.

    Stderr and the exit status are ignored. A command with no output returns
    ``b""``. The session and the connection are closed before returning.

    Raises:
        RemoteCommandError: If connecting, opening the session or starting
            the command fails.
    """
    try:
        with paramiko.SSHClient() as client:
            _connect(client, connection)
            transport = client.get_transport()
            if transport is None:
                raise paramiko.SSHException("No transport after connect")
            session = transport.open_session()
            try:
                logger.debug("Executing command", command=cmd)
                session.exec_command(cmd)
                output = _read_stdout(session)
            finally:
                session.close()
    except (paramiko.SSHException, OSError, EOFError, ValueError) as e:
        raise RemoteCommandError(f"{connection.address}: {cmd!r} failed: {e}") from e

    logger.debug("Command finished", command=cmd, bytes=len(output))
    return output
