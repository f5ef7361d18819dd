from __future__ import annotations

import io

import paramiko
import pytest

SETTINGS_ENV = (
    "LOGFETCH_CONFIG",
    "LOGFETCH_SSH_CONFIG",
    "LOGFETCH_KNOWN_HOSTS",
    "LOGFETCH_VERIFY_HOST_KEY",
    "LOGFETCH_CONNECT_TIMEOUT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("LOGFETCH_CONFIG", str(tmp_path / "missing.yaml"))


@pytest.fixture(scope="session")
def rsa_key() -> paramiko.RSAKey:
    return paramiko.RSAKey.generate(2048)


@pytest.fixture
def rsa_key_pem(rsa_key: paramiko.RSAKey) -> bytes:
    buf = io.StringIO()
    rsa_key.write_private_key(buf)
    return buf.getvalue().encode("utf-8")


class FakeChannel:
    """Buffers all output up front and reports EOF, like a command that already finished."""

    def __init__(self, output: bytes = b"", exec_error: Exception | None = None, stderr: bytes = b"") -> None:
        self.stdout = io.BytesIO(output)
        self.stderr = io.BytesIO(stderr)
        self.exec_error = exec_error
        self.commands: list[str] = []
        self.stderr_discarded = 0
        self.eof_received = False
        self.closed = False

    def exec_command(self, command: str) -> None:
        self.commands.append(command)
        if self.exec_error is not None:
            raise self.exec_error
        self.eof_received = True

    def _remaining(self, buf: io.BytesIO) -> bool:
        return buf.tell() < len(buf.getbuffer())

    def recv_ready(self) -> bool:
        return self._remaining(self.stdout)

    def recv(self, nbytes: int) -> bytes:
        return self.stdout.read(nbytes)

    def recv_stderr_ready(self) -> bool:
        return self._remaining(self.stderr)

    def recv_stderr(self, nbytes: int) -> bytes:
        data = self.stderr.read(nbytes)
        self.stderr_discarded += len(data)
        return data

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    def __init__(self, channel: FakeChannel) -> None:
        self.channel = channel

    def open_session(self) -> FakeChannel:
        return self.channel


class FakeSSHClient:
    """Stands in for paramiko.SSHClient; records what the code under test did."""

    def __init__(self, output: bytes = b"", connect_error: Exception | None = None, exec_error: Exception | None = None, stderr: bytes = b"") -> None:
        self.channel = FakeChannel(output=output, exec_error=exec_error, stderr=stderr)
        self.connect_error = connect_error
        self.connect_kwargs: dict | None = None
        self.policy = None
        self.system_host_keys_loaded = False
        self.host_key_files: list[str] = []
        self.closed = False

    def __enter__(self) -> "FakeSSHClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def load_system_host_keys(self) -> None:
        self.system_host_keys_loaded = True

    def load_host_keys(self, filename: str) -> None:
        self.host_key_files.append(filename)

    def set_missing_host_key_policy(self, policy) -> None:
        self.policy = policy

    def connect(self, **kwargs) -> None:
        self.connect_kwargs = kwargs
        if self.connect_error is not None:
            raise self.connect_error

    def get_transport(self) -> FakeTransport:
        return FakeTransport(self.channel)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_clients(monkeypatch: pytest.MonkeyPatch):
    """Patch paramiko.SSHClient; append FakeSSHClient instances to the returned list to script them."""
    queue: list[FakeSSHClient] = []
    created: list[FakeSSHClient] = []

    def factory() -> FakeSSHClient:
        client = queue.pop(0) if queue else FakeSSHClient()
        created.append(client)
        return client

    monkeypatch.setattr(paramiko, "SSHClient", factory)
    return queue, created


@pytest.fixture
def make_client():
    return FakeSSHClient
